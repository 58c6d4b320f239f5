"""
CLI package for SheetSync.

Contains command-line interface components.
"""

from .cli import app, main

__all__ = ["app", "main"]
