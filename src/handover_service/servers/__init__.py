"""HTTP transport for the handover service."""

from .main import create_app

__all__ = ["create_app"]
