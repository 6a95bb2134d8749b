"""Cascading maintenance operations on the engine store.

Provides InstanceMutator for cascading delete/restart of workflow instances
and CleanupManager for retention cleanup.
"""

from cpt.core.maintenance.cleanup import CleanupManager
from cpt.core.maintenance.mutations import InstanceMutator, is_restartable
from cpt.core.maintenance.results import BatchResult, CleanupResult, InstanceOutcome, StepResult

__all__ = [
    "BatchResult",
    "CleanupManager",
    "CleanupResult",
    "InstanceMutator",
    "InstanceOutcome",
    "StepResult",
    "is_restartable",
]
