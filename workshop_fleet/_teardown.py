"""Remove every droplet carrying the workshop tag."""

from __future__ import annotations

from workshop_fleet._context import RunContext
from workshop_fleet._errors import ProviderError
from workshop_fleet._report import RunReport

ACTION = "teardown"


def teardown_all(ctx: RunContext, tag: str | None = None) -> RunReport:
    """Issue one delete-by-tag call; no listing, no confirmation."""
    tag = tag or ctx.config.tag
    report = RunReport()
    log = ctx.logger
    log.info("removing all droplets with tag %r", tag)

    if ctx.config.dry_run:
        log.info("dry run: not deleting droplets tagged %r", tag)
        report.skipped(tag, ACTION, "dry run")
        return report

    try:
        ctx.compute.delete_instances(tag)
    except ProviderError as exc:
        log.error("%s", exc)
        report.failed(tag, ACTION, str(exc))
        return report

    report.succeeded(tag, ACTION)
    return report
