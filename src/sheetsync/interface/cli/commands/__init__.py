"""
CLI sub-command groups.
"""

from .source import source_app

__all__ = ["source_app"]
