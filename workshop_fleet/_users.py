"""Load the desired participant list.

The list is plain text with one participant per line::

    Alice.Smith;ssh-ed25519 AAAA... alice@laptop
    bob

Everything after the first ``;`` is an optional inline public key. Blank
lines and ``#`` comments are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from workshop_fleet._errors import UserListError
from workshop_fleet._identity import normalize_identity, resource_name
from workshop_fleet._keys import KeySource, resolve_keys
from workshop_fleet._models import UserSpec


def parse_user_line(line: str) -> tuple[str, str | None] | None:
    """Split one user-list line into ``(raw name, inline key)``.

    Examples
    --------
    >>> parse_user_line("Alice.Smith; ssh-ed25519 AAA")
    ('Alice.Smith', 'ssh-ed25519 AAA')
    >>> parse_user_line("bob")
    ('bob', None)
    >>> parse_user_line("  # comment") is None
    True
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    name, _, key = stripped.partition(";")
    if not name.strip():
        return None
    key = key.strip()
    return name, key or None


def read_user_lines(path: Path) -> list[tuple[str, str | None]]:
    """Read and parse every participant line of *path*."""
    try:
        contents = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        msg = f"reading users from {path}: {exc}"
        raise UserListError(msg) from exc
    entries: list[tuple[str, str | None]] = []
    for line in contents.splitlines():
        parsed = parse_user_line(line)
        if parsed is not None:
            entries.append(parsed)
    return entries


def build_users(
    entries: Iterable[tuple[str, str | None]],
    *,
    domain: str,
    source: KeySource,
    fallback_key: str,
    logger: logging.Logger,
) -> list[UserSpec]:
    """Turn parsed lines into :class:`UserSpec` values, preserving order."""
    users: list[UserSpec] = []
    for raw_name, inline_key in entries:
        identity = normalize_identity(raw_name)
        keys = resolve_keys(
            identity,
            inline_key,
            source=source,
            fallback_key=fallback_key,
            logger=logger,
        )
        users.append(
            UserSpec(
                identity=identity,
                resource_name=resource_name(identity, domain),
                keys=keys,
            )
        )
    return users
