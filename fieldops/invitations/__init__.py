"""Invitation registry module."""

from fieldops.invitations.service import InvitationRegistry

__all__ = ["InvitationRegistry"]
