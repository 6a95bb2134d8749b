"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core.

Import patterns:
    from cpt.contracts import WorkflowState, FilterValidationError
"""

from cpt.contracts.enums import (
    ALL_STATES,
    WorkflowState,
    parse_state_filter,
    state_choices,
    state_index,
    state_name,
)
from cpt.contracts.errors import (
    AgeFormatError,
    AuditDecodeError,
    ConfigurationError,
    CptError,
    FilterValidationError,
    SchemaCompatibilityError,
    StateIndexError,
    UnknownStateError,
)

__all__ = [
    "ALL_STATES",
    "AgeFormatError",
    "AuditDecodeError",
    "ConfigurationError",
    "CptError",
    "FilterValidationError",
    "SchemaCompatibilityError",
    "StateIndexError",
    "UnknownStateError",
    "WorkflowState",
    "parse_state_filter",
    "state_choices",
    "state_index",
    "state_name",
]
