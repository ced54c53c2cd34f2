"""Found/Unknown result type for display lookups.

Lookups that may legitimately miss (a contractor name the gateway did not
return, a project row the degraded read could not join) return a
``Resolved`` value instead of raising, so partial results compose.

Example usage:
    names = NameLookup({"c1": "Acme Co"})
    names.resolve("c1").or_else("Unknown Contractor")  # "Acme Co"
    names.resolve("c9").or_else("Unknown Contractor")  # "Unknown Contractor"
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T

    def or_else(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class _Unknown:
    def or_else(self, default: T) -> T:
        return default


Unknown = _Unknown()

Resolved = Found | _Unknown


class NameLookup:
    """Read-only id -> display name table returning Resolved values."""

    def __init__(self, names: Mapping[str, str] | None = None):
        self._names: dict[str, str] = dict(names or {})

    def resolve(self, key: str | None) -> Found[str] | _Unknown:
        if key is None:
            return Unknown
        name = self._names.get(key)
        if not name:
            return Unknown
        return Found(name)
