"""Verification queue module."""

from fieldops.verification.service import VerificationService

__all__ = ["VerificationService"]
