import logging
from contextlib import contextmanager
from dataclasses import dataclass, field

from django.db import transaction

logger = logging.getLogger(__name__)

COMMITTED = "committed"
PARTIAL_FAILURE = "partial_failure"


@dataclass
class LedgerOutcome:
    """Result of the secondary (best-effort) ledger writes of one operation."""

    failures: list = field(default_factory=list)  # [(step, reason), ...]

    @property
    def status(self):
        return PARTIAL_FAILURE if self.failures else COMMITTED

    @property
    def ok(self):
        return not self.failures

    def record_failure(self, step, reason):
        self.failures.append((step, str(reason)))

    def merge(self, other):
        self.failures.extend(other.failures)
        return self

    def as_dict(self):
        return {
            "status": self.status,
            "failures": [{"step": s, "reason": r} for s, r in self.failures],
        }


@contextmanager
def best_effort(outcome: LedgerOutcome, step: str):
    """
    Run a secondary ledger write inside its own savepoint.
    A failure rolls back only this step, is logged with its traceback
    and is recorded on the outcome instead of propagating.
    """
    try:
        with transaction.atomic():
            yield
    except Exception as exc:
        logger.exception("Ledger step %r failed", step)
        outcome.record_failure(step, exc)
