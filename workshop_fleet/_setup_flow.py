"""Single-pass convergence of the workshop fleet.

A setup run loads the desired users, lists tagged droplets, creates the
missing ones, waits for them to obtain addresses, lists again, and finally
synchronises the zone's ``A`` records. Every unit of work lands in one
:class:`~workshop_fleet._report.RunReport`; a failed listing ends the run
early because there is nothing trustworthy left to reconcile against.
"""

from __future__ import annotations

from collections.abc import Sequence

from workshop_fleet._context import RunContext
from workshop_fleet._diff import missing_users
from workshop_fleet._dns_sync import sync_dns
from workshop_fleet._errors import ProviderError
from workshop_fleet._models import DomainRecord, ObservedInstance, UserSpec
from workshop_fleet._provision import created_names, provision_missing
from workshop_fleet._report import RunReport
from workshop_fleet._settle import Readiness, wait_for_addresses


def _list_instances(ctx: RunContext) -> tuple[ObservedInstance, ...]:
    return tuple(ctx.compute.list_instances(ctx.config.tag).items)


def _list_records(ctx: RunContext) -> tuple[DomainRecord, ...]:
    return tuple(ctx.dns.list_records(ctx.config.domain, "A").items)


def run_setup(ctx: RunContext, users: Sequence[UserSpec]) -> RunReport:
    """Converge droplets and DNS records on *users*."""
    log = ctx.logger
    config = ctx.config
    report = RunReport()

    log.info("found %d users in configuration", len(users))

    try:
        observed = _list_instances(ctx)
    except ProviderError as exc:
        log.error("%s", exc)
        report.failed(config.tag, "list-instances", str(exc))
        return report

    if observed:
        log.info("found %d droplets already registered", len(observed))

    missing = missing_users(users, observed)
    if not missing:
        log.info("all droplets already created")
    else:
        log.info("%d users don't have their droplets", len(missing))
        provisioned = provision_missing(ctx, missing)
        report.extend(provisioned)

        created = created_names(provisioned)
        if created:
            settled = wait_for_addresses(ctx, created, lambda: _list_instances(ctx))
            for name, state in settled.states.items():
                if state is Readiness.TIMED_OUT:
                    report.skipped(name, "settle", "no public address before deadline")

    try:
        observed = _list_instances(ctx)
    except ProviderError as exc:
        log.error("%s", exc)
        report.failed(config.tag, "list-instances", str(exc))
        return report

    try:
        records = _list_records(ctx)
    except ProviderError as exc:
        log.error("%s", exc)
        report.failed(config.domain, "list-records", str(exc))
        return report

    report.extend(sync_dns(ctx, observed, records))
    return report
