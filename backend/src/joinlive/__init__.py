"""Coordination core for the Join Live editor and participant clients."""

__version__ = "0.1.0"
