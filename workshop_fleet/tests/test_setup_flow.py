"""End-to-end tests for a setup run against the in-memory provider."""

from __future__ import annotations

from workshop_fleet._models import DomainRecord, ObservedInstance, UserSpec
from workshop_fleet._report import OutcomeStatus
from workshop_fleet._setup_flow import run_setup
from workshop_fleet.tests.conftest import TAG, FakeClock, FakeCloud


def _user(identity: str) -> UserSpec:
    return UserSpec(identity, f"{identity}.encero.xyz", ("fallback",))


def test_setup_creates_missing_and_syncs_dns(make_context, cloud: FakeCloud) -> None:
    cloud.instances = [ObservedInstance("bob.encero.xyz", "203.0.113.2", TAG)]
    cloud.next_address = "203.0.113.1"

    report = run_setup(make_context(), [_user("alice"), _user("bob")])

    created = [c[1].name for c in cloud.calls if c[0] == "create_instance"]
    assert created == ["alice.encero.xyz"], "Only alice lacked a droplet"
    assert {(r.name, r.data) for r in cloud.records} == {
        ("alice", "203.0.113.1"),
        ("*.alice", "203.0.113.1"),
        ("bob", "203.0.113.2"),
        ("*.bob", "203.0.113.2"),
    }, "Every droplet should get bare and wildcard records"
    assert report.exit_code == 0, "Run should succeed"


def test_setup_waits_for_addresses(
    make_context, cloud: FakeCloud, fake_clock: FakeClock
) -> None:
    original = cloud.list_instances
    polls: list[int] = []

    def list_instances(tag: str):
        polls.append(1)
        if len(polls) == 3:
            cloud.assign_addresses("203.0.113.7")
        return original(tag)

    cloud.list_instances = list_instances  # type: ignore[method-assign]
    report = run_setup(make_context(), [_user("alice")])

    assert fake_clock.sleeps == [5.0], "Expected one poll interval before the address"
    assert ("alice", "203.0.113.7") in {
        (r.name, r.data) for r in cloud.records
    }, "DNS should use the settled address"
    assert report.ok, "Run should succeed"


def test_setup_unaddressed_droplet_is_skipped_after_timeout(
    make_context, cloud: FakeCloud
) -> None:
    report = run_setup(make_context(settle_timeout=10.0), [_user("alice")])
    statuses = {(o.action, o.status) for o in report.outcomes}
    assert ("settle", OutcomeStatus.SKIPPED) in statuses, "Timed out droplet is noted"
    assert ("dns", OutcomeStatus.SKIPPED) in statuses, "DNS skips it without address"
    assert cloud.records == [], "No records without an address"
    assert report.ok, "A slow droplet is not a failure"


def test_setup_second_run_is_a_noop(make_context, cloud: FakeCloud) -> None:
    cloud.next_address = "203.0.113.1"
    ctx = make_context()
    run_setup(ctx, [_user("alice")])
    before = len(cloud.mutations)

    report = run_setup(ctx, [_user("alice")])
    assert len(cloud.mutations) == before, "Converged state needs no mutations"
    assert report.ok, "Second run should succeed"


def test_setup_dry_run_lists_but_never_mutates(
    make_context, cloud: FakeCloud, fake_clock: FakeClock
) -> None:
    cloud.instances = [ObservedInstance("bob.encero.xyz", "203.0.113.2", TAG)]
    report = run_setup(make_context(dry_run=True), [_user("alice"), _user("bob")])
    assert cloud.mutations == [], "Dry run must not mutate"
    assert fake_clock.sleeps == [], "Nothing was created, nothing to wait for"
    assert report.ok, "Dry run should succeed"


def test_setup_listing_failure_stops_run(make_context, cloud: FakeCloud) -> None:
    cloud.fail_on.add("list_instances")
    report = run_setup(make_context(), [_user("alice")])
    assert cloud.mutations == [], "Nothing happens without observed state"
    assert [(o.action, o.status) for o in report.outcomes] == [
        ("list-instances", OutcomeStatus.FAILED)
    ], "Expected the listing failure only"
    assert report.exit_code == 1, "Listing failure fails the run"


def test_setup_record_listing_failure_is_reported(make_context, cloud: FakeCloud) -> None:
    cloud.instances = [ObservedInstance("alice.encero.xyz", "203.0.113.1", TAG)]
    cloud.fail_on.add("list_records")
    report = run_setup(make_context(), [_user("alice")])
    assert report.failures[0].action == "list-records", "Expected record listing failure"


def test_setup_updates_moved_addresses(make_context, cloud: FakeCloud) -> None:
    cloud.instances = [ObservedInstance("alice.encero.xyz", "203.0.113.9", TAG)]
    cloud.records = [
        DomainRecord("alice", "203.0.113.1", 1),
        DomainRecord("*.alice", "203.0.113.1", 2),
    ]
    run_setup(make_context(), [_user("alice")])
    assert {r.data for r in cloud.records} == {"203.0.113.9"}, "Both records moved"
