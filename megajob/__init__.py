"""MegaJobNepal auth and data-access service."""

__version__ = "1.0.0"
