"""Tests for the workshop CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from workshop_fleet import workshop
from workshop_fleet._config import FleetConfig
from workshop_fleet._context import RunContext
from workshop_fleet._models import ObservedInstance
from workshop_fleet._userdata import UserDataRenderer
from workshop_fleet.tests.conftest import TAG, FakeClock, FakeCloud


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch) -> FakeCloud:
    cloud = FakeCloud(next_address="203.0.113.1")
    clock = FakeClock()

    def fake_build_context(config: FleetConfig, logger: logging.Logger) -> RunContext:
        return RunContext(
            config=config,
            logger=logger,
            compute=cloud,
            dns=cloud,
            renderer=UserDataRenderer(config.userdata_template),
            emit=lambda _text: None,
            sleep=clock.sleep,
            clock=clock,
        )

    monkeypatch.setattr(workshop, "build_context", fake_build_context)
    monkeypatch.setenv("DO_TOKEN", "do-token")
    monkeypatch.delenv("DRY_RUN", raising=False)
    return cloud


def test_usage_without_subcommand(capsys: pytest.CaptureFixture[str]) -> None:
    assert workshop.usage() == 1, "Missing subcommand exits 1"
    assert "setup, teardown" in capsys.readouterr().out, "Usage should list commands"


def test_teardown_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DO_TOKEN", raising=False)
    with pytest.raises(SystemExit, match="DO_TOKEN env missing"):
        workshop.teardown()


def test_teardown_deletes_by_tag(wired: FakeCloud) -> None:
    assert workshop.teardown() == 0, "Teardown should succeed"
    assert wired.calls == [("delete_instances", TAG)], "Expected one delete-by-tag"


def test_setup_end_to_end(wired: FakeCloud, tmp_path: Path) -> None:
    users_file = tmp_path / "users.list"
    users_file.write_text("Alice.Smith;ssh-ed25519 AAA\n", encoding="utf-8")

    code = workshop.setup(users_file=users_file, key_lookup=False)

    assert code == 0, "Setup should succeed"
    request = next(c[1] for c in wired.calls if c[0] == "create_instance")
    assert request.name == "alice-smith.encero.xyz", "Expected normalised droplet name"
    assert "ssh-ed25519 AAA" in request.user_data, "Inline key should be injected"
    assert {r.name for r in wired.records} == {"alice-smith", "*.alice-smith"}, (
        "Expected both DNS records"
    )


def test_setup_dry_run(wired: FakeCloud, tmp_path: Path) -> None:
    users_file = tmp_path / "users.list"
    users_file.write_text("bob\n", encoding="utf-8")
    wired.instances = [ObservedInstance("carol.encero.xyz", "203.0.113.4", TAG)]

    code = workshop.setup(users_file=users_file, key_lookup=False, dry_run=True)

    assert code == 0, "Dry run should succeed"
    assert wired.mutations == [], "Dry run must not mutate"


def test_setup_missing_user_list_fails_before_remote_calls(
    wired: FakeCloud, tmp_path: Path
) -> None:
    code = workshop.setup(users_file=tmp_path / "absent.list", key_lookup=False)
    assert code == 1, "Unreadable user list is a configuration error"
    assert wired.calls == [], "No remote call should happen"
