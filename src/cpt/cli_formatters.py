"""Plain-text formatting of command output.

Command results go to stdout one item per line so they can be piped into
the next command; failure reports go to stderr.
"""

from __future__ import annotations

from cpt.core.maintenance.results import CleanupResult, InstanceOutcome, StepResult
from cpt.core.store.models import AuditEntry, WorkflowInstance

SEPARATOR = "-" * 110

_STEP_MESSAGES: dict[str, str] = {
    "lock": "Error locking workflow instance id={instance_id}, skipping...",
    "enqueue": "Error restarting workflow instance id={instance_id}: {error}",
    "reset_state": "Error restarting workflow instance id={instance_id}: {error}",
}


def format_instance_details(instance: WorkflowInstance) -> list[str]:
    """Human-readable summary of an instance row."""
    second_line = (
        f"pool id:{instance.pool_id}, wait mode:{instance.wait_mode}, "
        f"number of waits:{instance.num_waits}, class name:{instance.class_name}"
    )
    if instance.timeout is not None:
        second_line += f", timeout:{instance.timeout}"
    return [
        "Workflow Instance:",
        f"id:{instance.id}, state:{instance.state_label}, priority:{instance.priority}, "
        f"creation time:{instance.creation_time}, last modification:{instance.last_modified}",
        second_line,
    ]


def format_audit_trail(entries: list[AuditEntry]) -> list[str]:
    """Audit trail block, empty when there are no entries."""
    if not entries:
        return []
    return ["Audit Trail:", *(f"Occurrence: {entry.occurrence}, message: {entry.message}" for entry in entries)]


def format_step_failure(instance_id: str, step: StepResult) -> str:
    template = _STEP_MESSAGES.get(step.step, "Error deleting workflow instance id={instance_id} from {target}: {error}")
    return template.format(instance_id=instance_id, target=step.target.upper(), error=step.error)


def format_outcome_failures(outcome: InstanceOutcome) -> list[str]:
    """One stderr line per failed step of an instance cascade."""
    return [format_step_failure(outcome.instance_id, step) for step in outcome.failed_steps]


def format_cleanup_counts(counts: dict[str, int]) -> list[str]:
    return [f"  {table.upper()}: {count}" for table, count in counts.items()]


def format_cleanup_result(result: CleanupResult) -> list[str]:
    """Per-table deleted row counts, for verbose cleanup output."""
    lines = []
    for step in result.steps:
        status = str(step.rowcount) if step.ok else "failed"
        lines.append(f"  {step.target.upper()}: {status}")
    return lines
