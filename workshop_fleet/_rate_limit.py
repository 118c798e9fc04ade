"""Warn when the DigitalOcean request quota runs low.

This is an observability signal only: nothing here delays or retries calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from workshop_fleet._models import QuotaInfo

LIMIT_HEADER = "ratelimit-limit"
REMAINING_HEADER = "ratelimit-remaining"
RESET_HEADER = "ratelimit-reset"


def _header_int(headers: Mapping[str, str], key: str) -> int | None:
    value = headers.get(key)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def quota_from_headers(headers: Mapping[str, str]) -> QuotaInfo:
    """Parse the ``ratelimit-*`` headers of a response.

    ``httpx.Headers`` is case-insensitive; plain dicts must use lowercase keys.

    Examples
    --------
    >>> quota_from_headers({"ratelimit-remaining": "150"}).remaining
    150
    >>> quota_from_headers({}).remaining is None
    True
    """
    return QuotaInfo(
        limit=_header_int(headers, LIMIT_HEADER),
        remaining=_header_int(headers, REMAINING_HEADER),
        reset=_header_int(headers, RESET_HEADER),
    )


def check_headroom(
    quota: QuotaInfo | None,
    threshold: int,
    logger: logging.Logger,
) -> bool:
    """Log a warning when fewer than *threshold* calls remain.

    Returns ``True`` when a warning was emitted. Responses without quota
    metadata are ignored.
    """
    if quota is None or quota.remaining is None:
        return False
    if quota.remaining >= threshold:
        return False
    logger.warning(
        "reaching DigitalOcean request limit, remaining: %d of %s",
        quota.remaining,
        quota.limit if quota.limit is not None else "?",
    )
    return True
