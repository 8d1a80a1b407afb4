"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .tokens import tokens_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI command groups (``flask tokens ...``)."""
    app.cli.add_command(tokens_cli)
