"""
CLI entry point for hue-bot.

Commands: ls, run, check, get-state, set-ip, clear-ip, unregister.
"""

from .main import main

__all__ = ["main"]
