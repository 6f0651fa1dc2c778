"""Retrieval-augmented question answering over CSV files."""

__version__ = "0.1.0"
