"""Per-stage outcomes composed into one result per extraction job.

Handlers never re-raise to the dispatcher. Instead each stage of a job
records a typed ``StageOutcome`` and the handler logs the composed
``JobResult`` once.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import classify_error


class StageStatus(str, Enum):
    """Outcome of a single stage, ordered by severity."""

    OK = "ok"
    SKIPPED = "skipped"
    DEGRADED = "degraded"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    StageStatus.OK: 0,
    StageStatus.SKIPPED: 0,
    StageStatus.DEGRADED: 1,
    StageStatus.FAILED: 2,
}


@dataclass(frozen=True)
class StageOutcome:
    stage: str
    status: StageStatus
    detail: Optional[str] = None
    error_category: Optional[str] = None


@dataclass
class JobResult:
    """All stage outcomes of one job for one asset."""
    job: str
    asset_id: str
    outcomes: List[StageOutcome] = field(default_factory=list)

    def ok(self, stage: str, detail: Optional[str] = None) -> None:
        self.outcomes.append(StageOutcome(stage, StageStatus.OK, detail))

    def skipped(self, stage: str, detail: Optional[str] = None) -> None:
        self.outcomes.append(StageOutcome(stage, StageStatus.SKIPPED, detail))

    def degraded(self, stage: str, error: BaseException) -> None:
        self.outcomes.append(
            StageOutcome(stage, StageStatus.DEGRADED, str(error), classify_error(error))
        )

    def failed(self, stage: str, error: BaseException) -> None:
        self.outcomes.append(
            StageOutcome(stage, StageStatus.FAILED, str(error), classify_error(error))
        )

    def outcome(self, stage: str) -> Optional[StageOutcome]:
        """Last outcome recorded for ``stage``."""
        for outcome in reversed(self.outcomes):
            if outcome.stage == stage:
                return outcome
        return None

    @property
    def status(self) -> StageStatus:
        """Worst status across all stages (OK for a job with no stages)."""
        worst = StageStatus.OK
        for outcome in self.outcomes:
            if outcome.status.severity > worst.severity:
                worst = outcome.status
        if worst is StageStatus.OK and self.outcomes and all(
            o.status is StageStatus.SKIPPED for o in self.outcomes
        ):
            return StageStatus.SKIPPED
        return worst

    def log(self, logger: logging.Logger) -> None:
        """Emit one summary line for the job."""
        summary = {
            'job': self.job,
            'asset_id': self.asset_id,
            'status': self.status.value,
            'stages': {o.stage: o.status.value for o in self.outcomes},
        }
        problems = [
            {'stage': o.stage, 'category': o.error_category, 'detail': o.detail}
            for o in self.outcomes
            if o.status in (StageStatus.DEGRADED, StageStatus.FAILED)
        ]
        if problems:
            summary['problems'] = problems

        if self.status is StageStatus.FAILED:
            logger.error(f"Metadata job failed: {summary}")
        elif self.status is StageStatus.DEGRADED:
            logger.warning(f"Metadata job completed with degraded fields: {summary}")
        else:
            logger.info(f"Metadata job completed: {summary}")
