"""
Core business logic for the live-class reminder service.
Used by the HTTP trigger, the in-process scheduler and the CLI script.
"""

from .database import close_engine, get_connection, get_engine, is_configured

__all__ = [
    "get_connection",
    "get_engine",
    "close_engine",
    "is_configured",
]
