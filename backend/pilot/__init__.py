"""Pilot: local retrieval-augmented code completion backend."""

__version__ = "0.1.0"
