"""Per-unit outcomes collected over a reconciliation run."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum


class OutcomeStatus(StrEnum):
    """Result of a single unit of work."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """What happened to one user, record, or bulk call."""

    subject: str
    action: str
    status: OutcomeStatus
    detail: str = ""


@dataclass(slots=True)
class RunReport:
    """Outcomes accumulated in the order they occurred."""

    outcomes: list[Outcome] = field(default_factory=list)

    def record(
        self,
        subject: str,
        action: str,
        status: OutcomeStatus,
        detail: str = "",
    ) -> Outcome:
        outcome = Outcome(subject, action, status, detail)
        self.outcomes.append(outcome)
        return outcome

    def succeeded(self, subject: str, action: str, detail: str = "") -> Outcome:
        return self.record(subject, action, OutcomeStatus.SUCCEEDED, detail)

    def skipped(self, subject: str, action: str, detail: str = "") -> Outcome:
        return self.record(subject, action, OutcomeStatus.SKIPPED, detail)

    def failed(self, subject: str, action: str, detail: str = "") -> Outcome:
        return self.record(subject, action, OutcomeStatus.FAILED, detail)

    def extend(self, other: RunReport) -> None:
        self.outcomes.extend(other.outcomes)

    @property
    def failures(self) -> list[Outcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def by_action(self, action: str) -> list[Outcome]:
        return [o for o in self.outcomes if o.action == action]

    def summarise(self, logger: logging.Logger) -> None:
        """Log a one-line tally followed by every failure."""
        counts = Counter(o.status for o in self.outcomes)
        logger.info(
            "run finished: %d succeeded, %d skipped, %d failed",
            counts[OutcomeStatus.SUCCEEDED],
            counts[OutcomeStatus.SKIPPED],
            counts[OutcomeStatus.FAILED],
        )
        for outcome in self.failures:
            logger.error("%s %s: %s", outcome.action, outcome.subject, outcome.detail)
