"""Exception hierarchy for workshop fleet reconciliation.

Adapters raise these; the reconciliation steps catch them at the unit-of-work
boundary and turn them into :class:`~workshop_fleet._report.Outcome` values.

Examples
--------
>>> ProviderError("list droplets failed", status_code=429).status_code
429
"""

from __future__ import annotations


class FleetError(Exception):
    """Base error for workshop fleet helpers."""


class ProviderError(FleetError):
    """Raised when a DigitalOcean API call fails.

    Parameters
    ----------
    message
        Human-readable description of the failed call.
    status_code
        HTTP status returned by the API, or ``None`` for transport failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class KeySourceError(FleetError):
    """Raised when public keys cannot be fetched for an identity."""


class TemplateRenderError(FleetError):
    """Raised when the bootstrap payload cannot be rendered."""


class UserListError(FleetError):
    """Raised when the user list cannot be read."""
