"""
Command-line interface for the arborbuild package.
"""

from .main import bootstrap_cli, main_cli

__all__ = [
    "bootstrap_cli",
    "main_cli",
]
