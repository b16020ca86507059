"""
Command-line interface for snippet_viewer.
"""

from .main import main, run

__all__ = ["main", "run"]
