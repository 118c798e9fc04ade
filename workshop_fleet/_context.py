"""Explicit dependencies handed to every reconciliation step."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from workshop_fleet._config import FleetConfig
from workshop_fleet._provider import ComputeProvider, DnsProvider
from workshop_fleet._userdata import UserDataRenderer


@dataclass(frozen=True, slots=True)
class RunContext:
    """Configuration, collaborators, and side-effect hooks for one run.

    ``emit`` receives text meant for the operator (dry-run request dumps);
    ``sleep`` and ``clock`` drive the settle wait so tests never block.
    """

    config: FleetConfig
    logger: logging.Logger
    compute: ComputeProvider
    dns: DnsProvider
    renderer: UserDataRenderer
    emit: Callable[[str], object] = print
    sleep: Callable[[float], object] = field(default=time.sleep)
    clock: Callable[[], float] = field(default=time.monotonic)
