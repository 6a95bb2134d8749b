# tests/unit/core/maintenance/test_cleanup.py
"""Tests for retention cleanup."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from cpt.core.maintenance import CleanupManager
from cpt.core.maintenance.cleanup import cleanup_targets
from cpt.core.store import WorkflowDB
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
from tests.fixtures.store import (
    NOW,
    insert_adapter_call,
    insert_audit_event,
    insert_error,
    insert_instance,
    insert_lock,
    insert_queue_entry,
    insert_wait_with_response,
)

CUTOFF = NOW - timedelta(days=30)
OLD = NOW - timedelta(days=40)


def _ids(db: WorkflowDB, column) -> list[str]:
    with db.connection() as conn:
        return sorted(conn.execute(select(column)).scalars().all())


def _count(db: WorkflowDB, table) -> int:
    with db.connection() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()


@pytest.fixture
def seeded_db(workflow_db: WorkflowDB) -> WorkflowDB:
    """One old and one recent instance, each with a full set of dependent rows."""
    with workflow_db.connection() as conn:
        for instance_id, created in (("old", OLD), ("new", NOW)):
            insert_instance(conn, instance_id, created=created)
            insert_error(conn, instance_id, error_ts=created)
            insert_wait_with_response(conn, instance_id, f"{instance_id}-c", response_ts=created)
            insert_lock(conn, instance_id, f"{instance_id}-l", inserted=created)
            insert_adapter_call(conn, instance_id, f"{instance_id}-a")
            insert_queue_entry(conn, instance_id)
            insert_audit_event(conn, instance_id, "event", occurrence=created)
    return workflow_db


class TestCleanupTargets:
    """Targets and their order."""

    def test_dependents_before_instances(self) -> None:
        names = [target.name for target in cleanup_targets(purge_instances=True, purge_audit=False)]

        assert names == [
            "cop_workflow_instance_error",
            "cop_response",
            "cop_wait",
            "cop_adaptercall",
            "cop_lock",
            "cop_queue",
            "cop_workflow_instance",
        ]

    def test_audit_only(self) -> None:
        names = [target.name for target in cleanup_targets(purge_instances=False, purge_audit=True)]
        assert names == ["cop_audit_trail_event"]

    def test_nothing_selected(self) -> None:
        assert cleanup_targets(purge_instances=False, purge_audit=False) == []


class TestCleanup:
    """Tests for deleting expired rows."""

    def test_instances_and_dependents(self, seeded_db: WorkflowDB) -> None:
        result = CleanupManager(seeded_db).cleanup(CUTOFF, purge_instances=True, purge_audit=False)

        assert not result.failed_steps
        assert result.cutoff == CUTOFF
        assert result.deleted_count == 7
        assert _ids(seeded_db, workflow_instance_table.c.id) == ["new"]
        assert _ids(seeded_db, workflow_instance_error_table.c.workflow_instance_id) == ["new"]
        assert _ids(seeded_db, wait_table.c.workflow_instance_id) == ["new"]
        assert _ids(seeded_db, response_table.c.correlation_id) == ["new-c"]
        assert _ids(seeded_db, lock_table.c.workflow_instance_id) == ["new"]
        assert _ids(seeded_db, adapter_call_table.c.workflowid) == ["new"]
        assert _ids(seeded_db, queue_table.c.workflow_instance_id) == ["new"]
        # Audit trail untouched without purge_audit
        assert _count(seeded_db, audit_trail_event_table) == 2

    def test_audit_trail_only(self, seeded_db: WorkflowDB) -> None:
        result = CleanupManager(seeded_db).cleanup(CUTOFF, purge_instances=False, purge_audit=True)

        assert [step.target for step in result.steps] == ["cop_audit_trail_event"]
        assert result.deleted_count == 1
        assert _ids(seeded_db, audit_trail_event_table.c.instance_id) == ["new"]
        assert _count(seeded_db, workflow_instance_table) == 2

    def test_nothing_older_than_cutoff(self, seeded_db: WorkflowDB) -> None:
        result = CleanupManager(seeded_db).cleanup(OLD - timedelta(days=1), purge_instances=True, purge_audit=True)

        assert result.deleted_count == 0
        assert _count(seeded_db, workflow_instance_table) == 2

    def test_failed_table_does_not_block_the_rest(self, seeded_db: WorkflowDB) -> None:
        lock_table.drop(seeded_db.engine)

        result = CleanupManager(seeded_db).cleanup(CUTOFF, purge_instances=True, purge_audit=True)

        assert [step.target for step in result.failed_steps] == ["cop_lock"]
        assert _ids(seeded_db, workflow_instance_table.c.id) == ["new"]
        assert _ids(seeded_db, audit_trail_event_table.c.instance_id) == ["new"]


class TestCountExpired:
    """Tests for the dry-run counts."""

    def test_counts_without_deleting(self, seeded_db: WorkflowDB) -> None:
        counts = CleanupManager(seeded_db).count_expired(CUTOFF, purge_instances=True, purge_audit=True)

        assert counts == {
            "cop_workflow_instance_error": 1,
            "cop_response": 1,
            "cop_wait": 1,
            "cop_adaptercall": 1,
            "cop_lock": 1,
            "cop_queue": 1,
            "cop_workflow_instance": 1,
            "cop_audit_trail_event": 1,
        }
        assert _count(seeded_db, workflow_instance_table) == 2
        assert _count(seeded_db, audit_trail_event_table) == 2
