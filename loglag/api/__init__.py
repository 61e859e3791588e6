"""Read-only status API for loglag.

Exposes:
    create_app -- FastAPI application factory.
"""

from loglag.api.app import create_app

__all__ = ["create_app"]
