"""Account provisioning module."""

from fieldops.provisioning.service import ProvisioningSaga, build_role_details

__all__ = ["ProvisioningSaga", "build_role_details"]
