"""Value types shared by the reconciliation steps."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class UserSpec:
    """Desired state for one workshop participant.

    ``keys`` is never empty once resolved: the operator fallback key is
    always appended last.
    """

    identity: str
    resource_name: str
    keys: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ObservedInstance:
    """Snapshot of a tagged droplet as reported by the provider."""

    name: str
    public_address: str | None
    tag: str
    instance_id: int | None = None
    status: str | None = None


@dataclass(frozen=True, slots=True)
class DomainRecord:
    """An ``A`` record in the workshop zone."""

    name: str
    data: str
    record_id: int
    record_type: str = "A"
    ttl: int | None = None


@dataclass(frozen=True, slots=True)
class QuotaInfo:
    """Rate-limit headroom reported with a provider response."""

    limit: int | None = None
    remaining: int | None = None
    reset: int | None = None


@dataclass(frozen=True, slots=True)
class CreateInstanceRequest:
    """Everything needed to create one workshop droplet."""

    name: str
    region: str
    size: str
    image: str
    ssh_fingerprints: tuple[str, ...]
    tags: tuple[str, ...]
    user_data: str

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for ``POST /v2/droplets``.

        Examples
        --------
        >>> req = CreateInstanceRequest("a.example", "fra1", "s-1", "ubuntu", ("fp",), ("t",), "")
        >>> req.to_payload()["ssh_keys"]
        ['fp']
        """
        return {
            "name": self.name,
            "region": self.region,
            "size": self.size,
            "image": self.image,
            "ssh_keys": list(self.ssh_fingerprints),
            "tags": list(self.tags),
            "user_data": self.user_data,
        }


@dataclass(frozen=True, slots=True)
class Listing:
    """Items returned by a paginated listing plus the last quota snapshot."""

    items: tuple[Any, ...] = ()
    quota: QuotaInfo = field(default_factory=QuotaInfo)


def public_ipv4(droplet: Mapping[str, Any]) -> str | None:
    """Return the first public IPv4 address of a droplet payload.

    Examples
    --------
    >>> public_ipv4({"networks": {"v4": [
    ...     {"type": "private", "ip_address": "10.0.0.5"},
    ...     {"type": "public", "ip_address": "203.0.113.10"},
    ... ]}})
    '203.0.113.10'
    >>> public_ipv4({"networks": {}}) is None
    True
    """
    networks = droplet.get("networks") or {}
    for interface in networks.get("v4") or []:
        if interface.get("type") != "public":
            continue
        ip = interface.get("ip_address")
        if ip:
            return str(ip)
    return None
