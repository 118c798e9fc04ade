"""Keep the workshop zone's ``A`` records pointed at droplet addresses.

Each droplet owns two labels: its bare label (the droplet name without the
zone suffix) and the wildcard ``*.<label>``. For every label the engine
decides between creating a record, updating the existing one in place, or
leaving it alone. With unchanged provider state a second pass issues no
mutating calls.

The zone is expected to hold at most one ``A`` record per label. Labels that
appear more than once are reported as failures and left untouched.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum

from workshop_fleet._context import RunContext
from workshop_fleet._errors import ProviderError
from workshop_fleet._identity import label_for, wildcard_label
from workshop_fleet._models import DomainRecord, ObservedInstance
from workshop_fleet._report import RunReport

ACTION = "dns"


class DnsAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    NOOP = "noop"


@dataclass(frozen=True, slots=True)
class DnsDecision:
    """What to do with one label."""

    label: str
    address: str
    action: DnsAction
    record: DomainRecord | None = None


def index_records(
    records: Iterable[DomainRecord],
) -> tuple[dict[str, DomainRecord], set[str]]:
    """Map labels to their ``A`` record and collect duplicated labels.

    Examples
    --------
    >>> recs = [DomainRecord("a", "1.1.1.1", 1), DomainRecord("a", "2.2.2.2", 2)]
    >>> index_records(recs)[1]
    {'a'}
    """
    a_records = [r for r in records if r.record_type == "A"]
    counts = Counter(r.name for r in a_records)
    duplicates = {name for name, count in counts.items() if count > 1}
    mapping = {r.name: r for r in a_records if r.name not in duplicates}
    return mapping, duplicates


def decide(
    label: str,
    address: str,
    records: Mapping[str, DomainRecord],
) -> DnsDecision:
    """Pick create, update, or no-op for *label* pointing at *address*.

    Examples
    --------
    >>> decide("a", "1.1.1.1", {}).action
    <DnsAction.CREATE: 'create'>
    >>> decide("a", "1.1.1.1", {"a": DomainRecord("a", "1.1.1.1", 7)}).action
    <DnsAction.NOOP: 'noop'>
    """
    existing = records.get(label)
    if existing is None:
        return DnsDecision(label, address, DnsAction.CREATE)
    if existing.data == address:
        return DnsDecision(label, address, DnsAction.NOOP, existing)
    return DnsDecision(label, address, DnsAction.UPDATE, existing)


def plan_dns(
    ctx: RunContext,
    instances: Iterable[ObservedInstance],
    records: Mapping[str, DomainRecord],
    duplicates: set[str],
    report: RunReport,
) -> list[DnsDecision]:
    """Decide the change for both labels of every addressed droplet."""
    log = ctx.logger
    decisions: list[DnsDecision] = []
    planned: set[str] = set()
    for instance in instances:
        if not instance.public_address:
            log.warning("missing public IPv4 address for droplet %s", instance.name)
            report.skipped(instance.name, ACTION, "no public address")
            continue

        label = label_for(instance.name, ctx.config.domain)
        for name in (label, wildcard_label(label)):
            if name in duplicates:
                log.error("multiple A records for %s, not touching them", name)
                report.failed(name, ACTION, "duplicate A records for label")
                continue
            if name in planned:
                log.warning("label %s already claimed by another droplet", name)
                report.skipped(name, ACTION, "label already synchronised in this run")
                continue
            planned.add(name)
            decisions.append(decide(name, instance.public_address, records))
    return decisions


def apply_decision(ctx: RunContext, decision: DnsDecision, report: RunReport) -> None:
    """Issue the call for one decision and record what happened."""
    log = ctx.logger
    config = ctx.config
    label = decision.label

    if decision.action is DnsAction.NOOP:
        log.info("no domain change %s", label)
        report.succeeded(label, ACTION, "unchanged")
        return

    record = decision.record
    if decision.action is DnsAction.UPDATE and record is None:
        msg = f"update decision for {label} carries no record"
        raise ValueError(msg)

    if record is None:
        change = f"create {label} -> {decision.address}"
        done = f"created domain {label} {decision.address}"
    else:
        change = f"update {label} {record.data} -> {decision.address}"
        done = f"changed domain record for {label} {record.data} -> {decision.address}"

    if config.dry_run:
        log.info("dry run: would %s", change)
        report.skipped(label, ACTION, f"dry run: {change}")
        return

    try:
        if record is None:
            ctx.dns.create_record(
                config.domain,
                name=label,
                data=decision.address,
                ttl=config.record_ttl,
            )
        else:
            ctx.dns.update_record(config.domain, record.record_id, data=decision.address)
    except ProviderError as exc:
        log.error("%s", exc)
        report.failed(label, ACTION, str(exc))
        return

    log.info("%s", done)
    report.succeeded(label, ACTION, change)


def sync_dns(
    ctx: RunContext,
    instances: Iterable[ObservedInstance],
    records: Iterable[DomainRecord],
) -> RunReport:
    """Converge the zone's ``A`` records on the observed droplet addresses."""
    report = RunReport()
    mapping, duplicates = index_records(records)
    for decision in plan_dns(ctx, instances, mapping, duplicates, report):
        apply_decision(ctx, decision, report)
    return report
