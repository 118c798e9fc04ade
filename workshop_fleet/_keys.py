"""Assemble the public keys authorised on a participant's droplet.

Keys come from three places, in this order: the inline key from the user
list, every key the :class:`KeySource` knows for the identity, and finally
the operator fallback key. No deduplication is done; cloud-init tolerates
repeated entries in ``ssh_authorized_keys``.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from workshop_fleet._errors import KeySourceError

GITHUB_KEYS_URL = "https://github.com/{identity}.keys"


class KeySource(Protocol):
    """Looks up published public keys for an identity."""

    def fetch_keys(self, identity: str) -> list[str]: ...


def parse_key_lines(body: str) -> list[str]:
    """Split a ``.keys`` response into trimmed, non-empty lines.

    Examples
    --------
    >>> parse_key_lines("ssh-ed25519 AAA\\n\\n ssh-rsa BBB \\n")
    ['ssh-ed25519 AAA', 'ssh-rsa BBB']
    """
    return [line.strip() for line in body.splitlines() if line.strip()]


class GitHubKeySource:
    """Fetch keys from ``https://github.com/<identity>.keys``."""

    def __init__(
        self,
        *,
        http_client: httpx.Client | None = None,
        url_template: str = GITHUB_KEYS_URL,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout), follow_redirects=True
        )
        self._url_template = url_template

    def close(self) -> None:
        self._http.close()

    def fetch_keys(self, identity: str) -> list[str]:
        try:
            url = self._url_template.format(identity=identity)
            response = self._http.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            msg = f"cannot load keys for user {identity}: {exc}"
            raise KeySourceError(msg) from exc
        if response.status_code != httpx.codes.OK:
            msg = f"cannot load keys for user {identity}: status {response.status_code}"
            raise KeySourceError(msg)
        return parse_key_lines(response.text)


class NoKeySource:
    """Key source that never finds anything, used with ``--no-key-lookup``."""

    def fetch_keys(self, identity: str) -> list[str]:
        return []


def resolve_keys(
    identity: str,
    inline_key: str | None,
    *,
    source: KeySource,
    fallback_key: str,
    logger: logging.Logger,
) -> tuple[str, ...]:
    """Return the ordered keys for *identity*; never empty.

    A failing key source is logged and contributes nothing.
    """
    keys: list[str] = []
    if inline_key and inline_key.strip():
        keys.append(inline_key.strip())

    try:
        keys.extend(source.fetch_keys(identity))
    except KeySourceError as exc:
        logger.error("%s", exc)

    keys.append(fallback_key)
    return tuple(keys)
