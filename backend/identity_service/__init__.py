"""Identity service: registration, credentials and token lifecycle.

Exposes :func:`identity_service.factory.create_app` at package level so
callers can ``from identity_service import create_app``.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
