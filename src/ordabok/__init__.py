"""Offline dictionary lookup: prefix search, fuzzy ranking, cached results."""

__version__ = "0.1.0"
