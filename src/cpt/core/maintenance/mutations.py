# src/cpt/core/maintenance/mutations.py
"""Cascading delete and restart of workflow instances.

A workflow instance owns rows in several dependent tables (waits, responses,
error rows, queue entries). Deleting or restarting it touches all of them in
a fixed order. The cascades are best effort, not transactional:

- each statement runs in its own short transaction
- a failing statement is recorded and, unless the step gates the rest of
  the cascade, the next statement still runs
- a failing id never stops the next id

Partial deletions are therefore possible and are reported, not rolled back.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Executable, delete, insert, literal, select, update
from sqlalchemy.exc import SQLAlchemyError

from cpt.contracts.enums import WorkflowState
from cpt.core.logging import get_logger
from cpt.core.maintenance.results import BatchResult, InstanceOutcome, StepResult
from cpt.core.store.schema import (
    queue_table,
    response_table,
    wait_table,
    workflow_instance_error_table,
    workflow_instance_table,
)

if TYPE_CHECKING:
    from cpt.core.store.database import WorkflowDB

logger = get_logger(__name__)

# Restart enqueues instances in these states.
RESTART_ENQUEUE_STATES: tuple[WorkflowState, ...] = (WorkflowState.FINISHED, WorkflowState.ERROR)

# Restart resets the state of instances in these states. Narrower than
# RESTART_ENQUEUE_STATES: FINISHED instances are enqueued but keep their state.
# See DESIGN.md "Open questions" before widening.
RESTART_RESET_STATES: tuple[WorkflowState, ...] = (WorkflowState.ERROR,)


@dataclass(frozen=True)
class MutationStep:
    """One statement of a cascade.

    Attributes:
        name: Step identifier used in results and messages
        target: Table the statement works on, for operator messages
        build: Builds the statement for an instance id
        halt_on_failure: Skip the remaining steps of this id if the step fails
    """

    name: str
    target: str
    build: Callable[[str], Executable]
    halt_on_failure: bool = False


def is_restartable(state: int) -> bool:
    """Whether restart would enqueue an instance in this state."""
    return state in RESTART_ENQUEUE_STATES


def delete_steps() -> list[MutationStep]:
    """Ordered steps removing an instance and everything referencing it."""
    instances = workflow_instance_table
    errors = workflow_instance_error_table

    return [
        # Locking read; on SQLite FOR UPDATE is omitted and this is a plain read
        MutationStep(
            "lock",
            instances.name,
            lambda instance_id: select(literal(1)).select_from(instances).where(instances.c.id == instance_id).with_for_update(),
            halt_on_failure=True,
        ),
        MutationStep(
            "delete_responses",
            response_table.name,
            lambda instance_id: delete(response_table).where(
                response_table.c.correlation_id.in_(
                    select(wait_table.c.correlation_id).where(wait_table.c.workflow_instance_id == instance_id)
                )
            ),
        ),
        MutationStep(
            "delete_waits",
            wait_table.name,
            lambda instance_id: delete(wait_table).where(wait_table.c.workflow_instance_id == instance_id),
        ),
        MutationStep(
            "delete_error",
            errors.name,
            lambda instance_id: delete(errors).where(errors.c.workflow_instance_id == instance_id),
        ),
        MutationStep(
            "delete_instance",
            instances.name,
            lambda instance_id: delete(instances).where(instances.c.id == instance_id),
        ),
    ]


def restart_steps(now: datetime) -> list[MutationStep]:
    """Ordered steps re-enqueueing an instance.

    Args:
        now: Timestamp written to the queue entry and last_mod_ts
    """
    instances = workflow_instance_table
    errors = workflow_instance_error_table
    enqueue_states = [int(state) for state in RESTART_ENQUEUE_STATES]
    reset_states = [int(state) for state in RESTART_RESET_STATES]

    return [
        MutationStep(
            "enqueue",
            queue_table.name,
            lambda instance_id: insert(queue_table).from_select(
                ["ppool_id", "priority", "last_mod_ts", "workflow_instance_id"],
                select(
                    instances.c.ppool_id,
                    instances.c.priority,
                    literal(now, DateTime),
                    instances.c.id,
                ).where(instances.c.id == instance_id, instances.c.state.in_(enqueue_states)),
            ),
            halt_on_failure=True,
        ),
        MutationStep(
            "reset_state",
            instances.name,
            lambda instance_id: update(instances)
            .where(instances.c.id == instance_id, instances.c.state.in_(reset_states))
            .values(state=int(WorkflowState.ENQUEUED), last_mod_ts=now),
            halt_on_failure=True,
        ),
        MutationStep(
            "delete_error",
            errors.name,
            lambda instance_id: delete(errors).where(errors.c.workflow_instance_id == instance_id),
        ),
    ]


class InstanceMutator:
    """Runs cascading delete and restart over lists of instance ids."""

    def __init__(self, db: "WorkflowDB") -> None:
        """Initialize InstanceMutator.

        Args:
            db: Workflow engine database handle
        """
        self._db = db

    def delete_instances(self, instance_ids: Iterable[str]) -> BatchResult:
        """Delete instances and their dependent rows.

        An id whose row lock fails is skipped entirely. After a successful
        lock every delete step runs, even if an earlier one failed.
        """
        start_time = perf_counter()
        steps = delete_steps()
        outcomes = [self._run_cascade(instance_id, steps) for instance_id in instance_ids]
        return BatchResult(outcomes=outcomes, duration_seconds=perf_counter() - start_time)

    def restart_instances(self, instance_ids: Iterable[str], *, now: datetime | None = None) -> BatchResult:
        """Re-enqueue finished or failed instances and clear their error rows.

        Instances in other states produce no queue entry and keep their state.
        A failed enqueue or state reset skips the rest of that id.

        Args:
            instance_ids: Ids to restart
            now: Fixed timestamp for all writes (defaults to the wall clock per id)
        """
        start_time = perf_counter()
        outcomes = []
        for instance_id in instance_ids:
            steps = restart_steps(now if now is not None else datetime.now())
            outcomes.append(self._run_cascade(instance_id, steps))
        return BatchResult(outcomes=outcomes, duration_seconds=perf_counter() - start_time)

    def _run_cascade(self, instance_id: str, steps: list[MutationStep]) -> InstanceOutcome:
        outcome = InstanceOutcome(instance_id=instance_id)
        for step in steps:
            result = self._execute_step(instance_id, step)
            outcome.steps.append(result)
            if not result.ok and step.halt_on_failure:
                outcome.halted_at = step.name
                break
        return outcome

    def _execute_step(self, instance_id: str, step: MutationStep) -> StepResult:
        try:
            with self._db.connection() as conn:
                result = conn.execute(step.build(instance_id))
                # SELECTs report -1 on some drivers
                rowcount = max(result.rowcount, 0)
        except SQLAlchemyError as e:
            logger.debug("cascade_step_failed", instance_id=instance_id, step=step.name, target=step.target, error=str(e))
            return StepResult(step=step.name, ok=False, target=step.target, error=str(e))
        logger.debug("cascade_step_done", instance_id=instance_id, step=step.name, rowcount=rowcount)
        return StepResult(step=step.name, ok=True, target=step.target, rowcount=rowcount)
