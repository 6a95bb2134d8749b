# src/cpt/core/store/queries.py
"""Read-side queries backing the count, broken, show and data commands."""

from typing import TYPE_CHECKING

from sqlalchemy import select

from cpt.contracts.enums import WorkflowState
from cpt.contracts.errors import AuditDecodeError
from cpt.core.audit_codec import decode_message
from cpt.core.filters import (
    BrokenFilters,
    build_broken_query,
    build_count_query,
    build_json_selector_query,
)
from cpt.core.logging import get_logger
from cpt.core.store.models import AuditEntry, WorkflowInstance
from cpt.core.store.schema import audit_trail_event_table, workflow_instance_table

if TYPE_CHECKING:
    from cpt.core.store.database import WorkflowDB

logger = get_logger(__name__)


class InstanceQueries:
    """Read-only access to workflow instances and their audit trail."""

    def __init__(self, db: "WorkflowDB") -> None:
        self._db = db

    def count_instances(self, state: WorkflowState | None) -> int:
        """Number of instances in a state, or of all instances if state is None."""
        with self._db.connection() as conn:
            return conn.execute(build_count_query(state)).scalar_one()

    def find_broken(self, filters: BrokenFilters) -> list[str]:
        """Ids of instances with an error row matching the filters.

        Raises:
            FilterValidationError: If a filter is invalid (nothing is executed).
        """
        query = build_broken_query(filters)
        with self._db.connection() as conn:
            return [row[0] for row in conn.execute(query)]

    def count_broken(self, filters: BrokenFilters) -> int:
        """Number of error rows matching the filters."""
        query = build_broken_query(filters, count=True)
        with self._db.connection() as conn:
            return conn.execute(query).scalar_one()

    def find_by_json_selector(self, selector: str, state: WorkflowState | None) -> list[str]:
        """Ids of instances whose JSON data matches a raw SQL predicate."""
        query = build_json_selector_query(selector, state, dialect_name=self._db.dialect_name)
        with self._db.connection() as conn:
            return [row[0] for row in conn.execute(query)]

    def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        """Load one instance, or None if no row has this id."""
        instances = workflow_instance_table
        query = select(
            instances.c.id,
            instances.c.state,
            instances.c.priority,
            instances.c.ppool_id,
            instances.c.cs_waitmode,
            instances.c.min_numb_of_resp,
            instances.c.numb_of_waits,
            instances.c.creation_ts,
            instances.c.last_mod_ts,
            instances.c.classname,
            instances.c.data,
            instances.c.timeout,
        ).where(instances.c.id == instance_id)

        with self._db.connection() as conn:
            row = conn.execute(query).fetchone()
        if row is None:
            return None

        return WorkflowInstance(
            id=row.id,
            state=row.state,
            priority=row.priority,
            pool_id=row.ppool_id,
            wait_mode=row.cs_waitmode,
            min_responses=row.min_numb_of_resp,
            num_waits=row.numb_of_waits,
            creation_time=row.creation_ts,
            last_modified=row.last_mod_ts,
            class_name=row.classname,
            data=row.data,
            timeout=row.timeout,
        )

    def list_audit_events(self, instance_id: str) -> list[AuditEntry]:
        """Decoded audit trail of an instance, oldest first.

        Entries whose message cannot be decoded are skipped.
        """
        events = audit_trail_event_table
        query = (
            select(events.c.long_message, events.c.occurrence)
            .where(events.c.instance_id == instance_id)
            .order_by(events.c.occurrence, events.c.seq_id)
        )

        with self._db.connection() as conn:
            rows = conn.execute(query).fetchall()

        entries: list[AuditEntry] = []
        for row in rows:
            try:
                message = decode_message(row.long_message or "")
            except AuditDecodeError as e:
                logger.debug("audit_message_skipped", instance_id=instance_id, occurrence=str(row.occurrence), error=str(e))
                continue
            entries.append(AuditEntry(occurrence=row.occurrence, message=message))
        return entries
