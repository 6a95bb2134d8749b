"""Access to the workflow engine's relational store.

Primary API:
    WorkflowDB - Database connection management
    cpt.core.store.queries.InstanceQueries - Read-side queries
"""

from cpt.core.store.database import WorkflowDB
from cpt.core.store.models import AuditEntry, WorkflowInstance

__all__ = [
    "AuditEntry",
    "WorkflowDB",
    "WorkflowInstance",
]
