"""API routes for the trend engine."""
from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request

from trends.models import Platform
from trends.pipeline import TrendEngine
from trends.settings import TrendSettings, load_settings
from trends.status import build_status

logger = logging.getLogger(__name__)


def register_routes(app: Flask, engine: TrendEngine, settings: TrendSettings) -> None:
    """Register the trend endpoints with the Flask app.

    Args:
        app: Flask app instance.
        engine: TrendEngine serving the requests.
        settings: Settings the engine was built from (used by the status view).
    """

    @app.route("/api/trends")
    def api_trends():
        """Aggregated trends, optionally narrowed to one provider with ?platform=."""
        logger.info("Received request for platform trends")
        payload = engine.get_all_platform_trends()

        key = request.args.get("platform")
        if key:
            try:
                platform = Platform.from_key(key)
            except ValueError:
                return jsonify({"error": f"unknown platform '{key}'"}), 400
            payload = {
                "trends": {platform.value: payload["trends"].get(platform.value, [])},
                "analysis": payload["analysis"],
            }
        return jsonify(payload)

    @app.route("/api/trends/status")
    def api_trends_status():
        """Provider health, limiter windows and cache state."""
        status = build_status(engine, settings)
        health = status["engine"]["health"]
        status["degraded"] = [entry["name"] for entry in health if not entry["healthy"]]
        return jsonify(status)


def create_app(engine: Optional[TrendEngine] = None, settings: Optional[TrendSettings] = None) -> Flask:
    settings = settings or load_settings()
    engine = engine or TrendEngine.from_settings(settings)
    app = Flask(__name__)
    register_routes(app, engine, settings)
    return app
