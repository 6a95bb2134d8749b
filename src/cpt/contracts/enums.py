# src/cpt/contracts/enums.py
"""Workflow instance states as stored by the engine.

The engine persists the state as an integer index (cop_workflow_instance.state).
The order of the members IS the storage encoding and must never change.
"""

from enum import IntEnum

from cpt.contracts.errors import StateIndexError, UnknownStateError

# Query-time wildcard accepted by --state options. Never stored.
ALL_STATES = "ALL"


class WorkflowState(IntEnum):
    """Processing state of a persisted workflow instance.

    Stored in the database (cop_workflow_instance.state).
    """

    ENQUEUED = 0
    PROCESSING = 1
    WAITING = 2
    FINISHED = 3
    INVALID = 4
    ERROR = 5


def state_choices() -> list[str]:
    """All names accepted by --state options, wildcard last."""
    return [state.name for state in WorkflowState] + [ALL_STATES]


def state_index(name: str) -> int | None:
    """Look up the storage index of a state name, ignoring case.

    Returns:
        The index, or None if the name is not a concrete state.
    """
    try:
        return WorkflowState[name.upper()].value
    except KeyError:
        return None


def state_name(index: int) -> str:
    """Symbolic name for a stored state index.

    Raises:
        StateIndexError: If index is outside the vocabulary.
    """
    if 0 <= index < len(WorkflowState):
        return WorkflowState(index).name
    raise StateIndexError(f"Invalid state index: {index}")


def parse_state_filter(name: str) -> WorkflowState | None:
    """Resolve a --state option value.

    Returns:
        The matching state, or None for the ALL wildcard.

    Raises:
        UnknownStateError: If the name is neither a state nor ALL.
    """
    if name.upper() == ALL_STATES:
        return None
    index = state_index(name)
    if index is None:
        raise UnknownStateError(f"Invalid state: {name}. Allowed states are: {state_choices()}")
    return WorkflowState(index)
