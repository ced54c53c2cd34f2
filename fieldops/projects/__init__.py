"""Project administration module."""
