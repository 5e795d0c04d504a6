import re


def redact_secrets(text: str) -> str:
    """Redact API keys and tokens from log lines and error strings."""
    if not isinstance(text, str):
        return text

    redacted = text

    # Query params like apikey=, api_key=, key=, token=, access_token=
    redacted = re.sub(r"(?i)(api[_-]?key|key|token|secret)=([^&\s]+)", r"\1=***REDACTED***", redacted)

    # Authorization: token <pat> / Authorization: Bearer <token>
    redacted = re.sub(
        r"(?i)Authorization:\s*(token|Bearer)\s+[A-Za-z0-9._\-]+",
        r"Authorization: \1 ***REDACTED***",
        redacted,
    )

    # Bare GitHub personal access tokens
    redacted = re.sub(r"gh[pousr]_[A-Za-z0-9]{8,}", "***REDACTED***", redacted)

    return redacted


_PLACEHOLDER_MARKERS = ("your_", "changeme", "<")


def is_configured_key(value) -> bool:
    """True when a credential is set and is not a template placeholder such as YOUR_API_KEY."""
    if not value:
        return False
    token = str(value).strip().lower()
    return bool(token) and not any(marker in token for marker in _PLACEHOLDER_MARKERS)
