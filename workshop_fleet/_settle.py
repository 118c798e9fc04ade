"""Wait for freshly created droplets to receive a public address.

Each tracked droplet moves through a small state machine::

    PROVISIONING --address seen--> ADDRESSED
    PROVISIONING --deadline------> TIMED_OUT

The listing is polled every ``interval`` seconds until all droplets are
addressed or ``timeout`` seconds have elapsed. A failed poll is logged and
retried on the next tick.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from workshop_fleet._context import RunContext
from workshop_fleet._errors import ProviderError
from workshop_fleet._models import ObservedInstance


class Readiness(StrEnum):
    PROVISIONING = "provisioning"
    ADDRESSED = "addressed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class SettleResult:
    """Final readiness per droplet and the last successful listing."""

    states: dict[str, Readiness]
    instances: tuple[ObservedInstance, ...]

    @property
    def pending(self) -> list[str]:
        return [n for n, s in self.states.items() if s is not Readiness.ADDRESSED]


def _advance(
    states: dict[str, Readiness],
    instances: Iterable[ObservedInstance],
) -> None:
    addressed = {i.name for i in instances if i.public_address}
    for name, state in states.items():
        if state is Readiness.PROVISIONING and name in addressed:
            states[name] = Readiness.ADDRESSED


def wait_for_addresses(
    ctx: RunContext,
    names: Iterable[str],
    list_instances: Callable[[], tuple[ObservedInstance, ...]],
) -> SettleResult:
    """Poll *list_instances* until every droplet in *names* has an address."""
    log = ctx.logger
    timeout = ctx.config.settle_timeout
    interval = ctx.config.settle_interval
    states = {name: Readiness.PROVISIONING for name in names}
    instances: tuple[ObservedInstance, ...] = ()
    deadline = ctx.clock() + timeout

    log.info("waiting for %d droplets to start up", len(states))
    while True:
        try:
            instances = list_instances()
        except ProviderError as exc:
            log.warning("polling droplets failed: %s", exc)
        else:
            _advance(states, instances)

        if all(s is Readiness.ADDRESSED for s in states.values()):
            break
        remaining = deadline - ctx.clock()
        if remaining <= 0:
            for name, state in states.items():
                if state is Readiness.PROVISIONING:
                    states[name] = Readiness.TIMED_OUT
                    log.warning("droplet %s has no address after %.0fs", name, timeout)
            break
        ctx.sleep(min(interval, remaining))

    return SettleResult(states=states, instances=instances)
