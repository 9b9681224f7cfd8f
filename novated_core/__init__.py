"""Novated Core - novated lease salary packaging calculator."""

__version__ = "1.0.0"
