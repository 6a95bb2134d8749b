# src/cpt/core/store/models.py
"""Dataclass models for rows read from the engine store."""

from dataclasses import dataclass
from datetime import datetime

from cpt.contracts.enums import state_name
from cpt.contracts.errors import StateIndexError


@dataclass(frozen=True)
class WorkflowInstance:
    """A persisted workflow instance (cop_workflow_instance)."""

    id: str
    state: int
    priority: int
    pool_id: str
    wait_mode: int | None
    min_responses: int | None
    num_waits: int | None
    creation_time: datetime
    last_modified: datetime
    class_name: str
    data: str | None = None
    timeout: datetime | None = None

    @property
    def state_label(self) -> str:
        """Symbolic state, or the raw index if the engine stored an unknown value."""
        try:
            return state_name(self.state)
        except StateIndexError:
            return str(self.state)


@dataclass(frozen=True)
class AuditEntry:
    """A decoded audit trail event."""

    occurrence: datetime
    message: str
