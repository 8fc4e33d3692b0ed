"""Expose the application factory at package level.

``from tokenlife import create_app`` is the supported entry point for WSGI
servers, the Flask CLI and the test-suite.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
