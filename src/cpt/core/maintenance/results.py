# src/cpt/core/maintenance/results.py
"""Result records for cascading maintenance operations.

Every statement of a cascade produces a StepResult. Results are aggregated
per instance (InstanceOutcome) and per command (BatchResult) instead of
stopping at the first exception.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class StepResult:
    """Outcome of one statement in a cascade."""

    step: str
    ok: bool
    target: str = ""  # Table the statement works on
    rowcount: int = 0
    error: str | None = None


@dataclass
class InstanceOutcome:
    """All step results for one workflow instance id."""

    instance_id: str
    steps: list[StepResult] = field(default_factory=list)
    halted_at: str | None = None  # Step whose failure stopped this id's cascade

    @property
    def failed_steps(self) -> list[StepResult]:
        return [step for step in self.steps if not step.ok]

    @property
    def succeeded(self) -> bool:
        """True if every attempted step succeeded and nothing was skipped."""
        return self.halted_at is None and not self.failed_steps

    def rowcount(self, step: str) -> int:
        """Rows affected by a named step, 0 if it did not run or failed."""
        for result in self.steps:
            if result.step == step:
                return result.rowcount
        return 0


@dataclass
class BatchResult:
    """Outcome of a cascading operation over a list of ids."""

    outcomes: list[InstanceOutcome]
    duration_seconds: float

    @property
    def succeeded_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed_outcomes(self) -> list[InstanceOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def nothing_succeeded(self) -> bool:
        """True if ids were given and none of them completed cleanly."""
        return bool(self.outcomes) and self.succeeded_count == 0


@dataclass
class CleanupResult:
    """Outcome of a retention cleanup.

    Step failures are recorded here but are not fatal: cleanup always issues
    every statement.
    """

    cutoff: datetime
    steps: list[StepResult]
    duration_seconds: float

    @property
    def deleted_count(self) -> int:
        return sum(step.rowcount for step in self.steps if step.ok)

    @property
    def failed_steps(self) -> list[StepResult]:
        return [step for step in self.steps if not step.ok]
