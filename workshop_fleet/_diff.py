"""Work out which participants still lack a droplet."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from workshop_fleet._models import ObservedInstance, UserSpec


def missing_users(
    desired: Sequence[UserSpec],
    observed: Iterable[ObservedInstance],
) -> list[UserSpec]:
    """Return desired users with no observed droplet, in desired order.

    Matching is exact on the droplet name; a droplet renamed by hand is
    unrelated and its owner gets a fresh one.

    Examples
    --------
    >>> a = UserSpec("a", "a.example", ("k",))
    >>> b = UserSpec("b", "b.example", ("k",))
    >>> [u.identity for u in missing_users([a, b], [ObservedInstance("b.example", None, "t")])]
    ['a']
    """
    existing = {instance.name for instance in observed}
    return [user for user in desired if user.resource_name not in existing]
