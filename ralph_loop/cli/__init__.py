"""
Command-line interface for the Ralph Loop controller.
"""

from .main import build_parser, main

__all__ = ["build_parser", "main"]
