"""
HTTP hook server for the Ralph Loop controller.
"""

from .app import create_app, main

__all__ = ["create_app", "main"]
