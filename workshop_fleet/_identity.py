"""Canonical participant identities and the names derived from them."""

from __future__ import annotations


def normalize_identity(raw: str) -> str:
    """Return the canonical identity for a raw user name.

    Surrounding whitespace is trimmed, the name is lowercased, and every
    ``.`` becomes ``-`` so the result is usable as a DNS label. The function
    is total and idempotent.

    Examples
    --------
    >>> normalize_identity("Alice.Smith ")
    'alice-smith'
    >>> normalize_identity(normalize_identity("Alice.Smith "))
    'alice-smith'
    """
    return raw.strip().lower().replace(".", "-")


def resource_name(identity: str, domain: str) -> str:
    """Droplet name (and fully-qualified host) for *identity*.

    Examples
    --------
    >>> resource_name("alice-smith", "encero.xyz")
    'alice-smith.encero.xyz'
    """
    return f"{identity}.{domain}"


def label_for(name: str, domain: str) -> str:
    """Strip the zone suffix from a droplet name to get its DNS label.

    Names outside the zone are returned unchanged.

    Examples
    --------
    >>> label_for("alice-smith.encero.xyz", "encero.xyz")
    'alice-smith'
    >>> label_for("manual-box", "encero.xyz")
    'manual-box'
    """
    suffix = f".{domain}"
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return name


def wildcard_label(label: str) -> str:
    """Wildcard companion of *label*."""
    return f"*.{label}"
