"""Gamebox: a social API for gamers."""

__version__ = "0.1.0"
