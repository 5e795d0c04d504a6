"""
Command line entry point: fetch trends once, inspect status, or serve the API.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Optional

import click
from dotenv import load_dotenv

from trends.models import Platform
from trends.pipeline import TrendEngine
from trends.settings import load_settings
from trends.status import build_status


def _configure(verbose: bool) -> None:
    load_dotenv(os.getenv("TRENDS_DOTENV", ".env"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    _configure(verbose)


@cli.command()
@click.option("--platform", "platform_key", default=None, help="Only print one provider (news, video, reddit, ...).")
@click.option("--pretty", is_flag=True, help="Indent the JSON output.")
def fetch(platform_key: Optional[str], pretty: bool):
    """Aggregate all providers once and print the JSON payload."""
    platform = None
    if platform_key:
        try:
            platform = Platform.from_key(platform_key)
        except ValueError:
            raise click.BadParameter(f"unknown platform '{platform_key}'", param_hint="--platform")

    engine = TrendEngine.from_settings(load_settings())
    try:
        payload = engine.get_all_platform_trends()
    finally:
        engine.close()

    if platform is not None:
        payload = {"trends": {platform.value: payload["trends"][platform.value]}, "analysis": payload["analysis"]}
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None))


@cli.command()
def status():
    """Print provider configuration, limiter windows and cache state."""
    settings = load_settings()
    engine = TrendEngine.from_settings(settings)
    try:
        click.echo(json.dumps(build_status(engine, settings), ensure_ascii=False, indent=2))
    finally:
        engine.close()


@cli.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=5000, type=int)
@click.option("--debug", is_flag=True)
def serve(host: str, port: int, debug: bool):
    """Run the Flask API (GET /api/trends, GET /api/trends/status)."""
    from trends.api import create_app

    create_app().run(host=host, port=port, debug=debug)


if __name__ == "__main__":  # pragma: no cover
    cli()
