"""Email module."""
