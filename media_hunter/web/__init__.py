"""Web backend for the curriculum catalog."""

from .server import create_app

__all__ = ["create_app"]
