# src/cpt/core/maintenance/cleanup.py
"""Retention cleanup of workflow instances and audit trail events.

Deletes everything older than a cutoff instant. Dependent rows go first,
then the instances they reference. Every statement is issued even if an
earlier one failed: one broken table must not block cleanup of the rest.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
from typing import TYPE_CHECKING

from sqlalchemy import ColumnElement, Select, Table, delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from cpt.core.logging import get_logger
from cpt.core.maintenance.results import CleanupResult, StepResult
from cpt.core.store.schema import (
    adapter_call_table,
    audit_trail_event_table,
    lock_table,
    queue_table,
    response_table,
    wait_table,
    workflow_instance_error_table,
    workflow_instance_table,
)

if TYPE_CHECKING:
    from cpt.core.store.database import WorkflowDB

logger = get_logger(__name__)


@dataclass(frozen=True)
class CleanupTarget:
    """A table and the condition selecting its expired rows."""

    table: Table
    expired: Callable[[datetime], ColumnElement[bool]]

    @property
    def name(self) -> str:
        return self.table.name


def _expired_instance_ids(cutoff: datetime) -> Select:
    instances = workflow_instance_table
    return select(instances.c.id).where(instances.c.creation_ts < cutoff)


# Order matters: rows referencing instances before the instances themselves.
INSTANCE_TARGETS: tuple[CleanupTarget, ...] = (
    CleanupTarget(workflow_instance_error_table, lambda cutoff: workflow_instance_error_table.c.error_ts < cutoff),
    CleanupTarget(response_table, lambda cutoff: response_table.c.response_ts < cutoff),
    CleanupTarget(wait_table, lambda cutoff: wait_table.c.workflow_instance_id.in_(_expired_instance_ids(cutoff))),
    CleanupTarget(adapter_call_table, lambda cutoff: adapter_call_table.c.workflowid.in_(_expired_instance_ids(cutoff))),
    CleanupTarget(lock_table, lambda cutoff: lock_table.c.workflow_instance_id.in_(_expired_instance_ids(cutoff))),
    CleanupTarget(queue_table, lambda cutoff: queue_table.c.workflow_instance_id.in_(_expired_instance_ids(cutoff))),
    CleanupTarget(workflow_instance_table, lambda cutoff: workflow_instance_table.c.creation_ts < cutoff),
)

AUDIT_TARGETS: tuple[CleanupTarget, ...] = (
    CleanupTarget(audit_trail_event_table, lambda cutoff: audit_trail_event_table.c.occurrence < cutoff),
)


def cleanup_targets(*, purge_instances: bool, purge_audit: bool) -> list[CleanupTarget]:
    """Targets in execution order for the selected purge kinds."""
    targets: list[CleanupTarget] = []
    if purge_instances:
        targets.extend(INSTANCE_TARGETS)
    if purge_audit:
        targets.extend(AUDIT_TARGETS)
    return targets


class CleanupManager:
    """Deletes engine records older than a retention cutoff."""

    def __init__(self, db: "WorkflowDB") -> None:
        self._db = db

    def count_expired(self, cutoff: datetime, *, purge_instances: bool, purge_audit: bool) -> dict[str, int]:
        """Count rows a cleanup would delete, per table, without deleting.

        Counts are taken independently; the actual cleanup may delete fewer
        dependent rows if the engine changes data in between.
        """
        counts: dict[str, int] = {}
        with self._db.connection() as conn:
            for target in cleanup_targets(purge_instances=purge_instances, purge_audit=purge_audit):
                query = select(func.count()).select_from(target.table).where(target.expired(cutoff))
                counts[target.name] = conn.execute(query).scalar_one()
        return counts

    def cleanup(self, cutoff: datetime, *, purge_instances: bool, purge_audit: bool) -> CleanupResult:
        """Delete expired rows.

        Args:
            cutoff: Rows older than this instant are deleted
            purge_instances: Delete expired instances and their dependent rows
            purge_audit: Delete expired audit trail events

        Returns:
            CleanupResult with one StepResult per table, in execution order.
        """
        start_time = perf_counter()
        steps = [
            self._delete_expired(target, cutoff)
            for target in cleanup_targets(purge_instances=purge_instances, purge_audit=purge_audit)
        ]
        return CleanupResult(cutoff=cutoff, steps=steps, duration_seconds=perf_counter() - start_time)

    def _delete_expired(self, target: CleanupTarget, cutoff: datetime) -> StepResult:
        try:
            with self._db.connection() as conn:
                result = conn.execute(delete(target.table).where(target.expired(cutoff)))
                rowcount = max(result.rowcount, 0)
        except SQLAlchemyError as e:
            logger.debug("cleanup_step_failed", table=target.name, cutoff=cutoff.isoformat(), error=str(e))
            return StepResult(step=target.name, ok=False, target=target.name, error=str(e))
        logger.debug("cleanup_step_done", table=target.name, rowcount=rowcount)
        return StepResult(step=target.name, ok=True, target=target.name, rowcount=rowcount)
