"""HTTP upload server package."""

from tallyboard.server.api_app import create_app

__all__ = ["create_app"]
