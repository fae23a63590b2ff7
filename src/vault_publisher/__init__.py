"""Publish a curated subset of a note vault into a GitHub repository tree."""

__version__ = "1.0.0"
