"""
CLI Commands.

Organized by domain/feature area.
"""

from modules.cli.commands.query import app as query_app
from modules.cli.commands.system import app as system_app

__all__ = [
    "query_app",
    "system_app",
]
