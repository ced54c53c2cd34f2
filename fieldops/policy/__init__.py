"""Access policy: row-level checks and the elevated gateway."""

from fieldops.policy.gateway import AccessPolicyGateway, open_gateway
from fieldops.policy.rows import RowPolicy

__all__ = [
    "AccessPolicyGateway",
    "RowPolicy",
    "open_gateway",
]
