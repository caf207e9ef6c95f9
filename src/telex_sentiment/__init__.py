"""Telex sentiment modifier integration."""

__version__ = "1.0.0"
