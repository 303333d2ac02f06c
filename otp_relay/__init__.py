"""Relay one-time passcodes by email."""

__version__ = "1.0.0"
