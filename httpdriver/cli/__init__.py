"""
httpdriver - Command Line Interface
"""

from httpdriver.cli.main import cli, main

__all__ = ["cli", "main"]
