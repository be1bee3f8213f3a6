"""
HTTP server exposing a TaskStorage.
"""
from .app import create_app

__all__ = ["create_app"]
