"""
Command line interface for dropkit.
"""
from .main import app

__all__ = ["app"]
