from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

import pytest

from workshop_fleet._config import FleetConfig
from workshop_fleet._context import RunContext
from workshop_fleet._errors import ProviderError
from workshop_fleet._models import (
    CreateInstanceRequest,
    DomainRecord,
    Listing,
    ObservedInstance,
    QuotaInfo,
)
from workshop_fleet._userdata import UserDataRenderer

DOMAIN = "encero.xyz"
TAG = "nice-workshop"


@dataclass
class FakeCloud:
    """In-memory droplets and zone records implementing both provider protocols."""

    instances: list[ObservedInstance] = field(default_factory=list)
    records: list[DomainRecord] = field(default_factory=list)
    calls: list[tuple[str, object]] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)
    fail_names: set[str] = field(default_factory=set)
    next_address: str | None = None
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1000))

    def _maybe_fail(self, op: str, name: str = "") -> None:
        if op in self.fail_on or (name and name in self.fail_names):
            msg = f"{op} {name} failed (500): boom".strip()
            raise ProviderError(msg, status_code=500)

    @property
    def mutations(self) -> list[tuple[str, object]]:
        return [c for c in self.calls if c[0] in {"create_instance", "delete_instances", "create_record", "update_record"}]

    def list_instances(self, tag: str) -> Listing:
        self.calls.append(("list_instances", tag))
        self._maybe_fail("list_instances")
        return Listing(items=tuple(i for i in self.instances if i.tag == tag))

    def create_instance(
        self, request: CreateInstanceRequest
    ) -> tuple[ObservedInstance, QuotaInfo]:
        self.calls.append(("create_instance", request))
        self._maybe_fail("create_instance", request.name)
        instance = ObservedInstance(
            name=request.name,
            public_address=self.next_address,
            tag=request.tags[0],
            instance_id=next(self._ids),
            status="new",
        )
        self.instances.append(instance)
        return instance, QuotaInfo()

    def delete_instances(self, tag: str) -> QuotaInfo:
        self.calls.append(("delete_instances", tag))
        self._maybe_fail("delete_instances")
        self.instances = [i for i in self.instances if i.tag != tag]
        return QuotaInfo()

    def list_records(self, domain: str, record_type: str = "A") -> Listing:
        self.calls.append(("list_records", domain))
        self._maybe_fail("list_records")
        return Listing(items=tuple(r for r in self.records if r.record_type == record_type))

    def create_record(
        self, domain: str, *, name: str, data: str, ttl: int, record_type: str = "A"
    ) -> QuotaInfo:
        self.calls.append(("create_record", (name, data, ttl)))
        self._maybe_fail("create_record", name)
        self.records.append(DomainRecord(name, data, next(self._ids), record_type, ttl))
        return QuotaInfo()

    def update_record(self, domain: str, record_id: int, *, data: str) -> QuotaInfo:
        self.calls.append(("update_record", (record_id, data)))
        self._maybe_fail("update_record")
        self.records = [
            replace(r, data=data) if r.record_id == record_id else r for r in self.records
        ]
        return QuotaInfo()

    def assign_addresses(self, address: str) -> None:
        self.instances = [
            i if i.public_address else replace(i, public_address=address)
            for i in self.instances
        ]


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_config(tmp_path: Path, **overrides: object) -> FleetConfig:
    defaults: dict[str, object] = {
        "token": "do-token",
        "domain": DOMAIN,
        "region": "fra1",
        "size": "s-2vcpu-4gb-amd",
        "image": "ubuntu-21-04-x64",
        "ssh_fingerprint": "aa:bb",
        "tag": TAG,
        "fallback_key": "ssh-ed25519 FALLBACK",
        "users_file": tmp_path / "users.list",
        "userdata_template": None,
        "settle_timeout": 20.0,
        "settle_interval": 5.0,
    }
    defaults.update(overrides)
    return FleetConfig(**defaults)


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def emitted() -> list[str]:
    return []


@pytest.fixture
def make_context(tmp_path: Path, cloud: FakeCloud, fake_clock: FakeClock, emitted: list[str]):
    def _make(**overrides: object) -> RunContext:
        renderer = overrides.pop("renderer", None) or UserDataRenderer()
        config = make_config(tmp_path, **overrides)
        return RunContext(
            config=config,
            logger=logging.getLogger("fleet-tests"),
            compute=cloud,
            dns=cloud,
            renderer=renderer,
            emit=emitted.append,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

    return _make
