# src/cpt/core/filters.py
"""Search predicate composition for read-side commands.

Builds SQLAlchemy selects for the ``broken`` and ``data`` commands. Every
optional filter is validated on its own before it becomes part of a query;
a single invalid filter fails the whole composition, so nothing executes.

Trust boundary:
    - exception pattern and workflow class are validated, then bound
    - error time bounds are bound as opaque strings WITHOUT validation; the
      database parses them as timestamps
    - the JSON selector is embedded verbatim as raw SQL; whoever runs cpt is
      trusted with direct database access anyway
"""

import re
from dataclasses import dataclass

from sqlalchemy import ColumnElement, Select, String, and_, cast, func, literal, select, text
from sqlalchemy.dialects.postgresql import JSONB

from cpt.contracts.enums import WorkflowState
from cpt.contracts.errors import FilterValidationError
from cpt.core.store.schema import workflow_instance_error_table, workflow_instance_table

# No quoting or wildcard characters in exception patterns
_VALID_PATTERN = re.compile(r"[^\"'%]+")

# Fully qualified class name: identifiers separated by single dots
_VALID_CLASS_NAME = re.compile(r"\w+(?:\.\w+)*")


def is_valid_pattern(pattern: str) -> bool:
    """Whether an exception pattern is safe to use in a LIKE filter."""
    return _VALID_PATTERN.fullmatch(pattern) is not None


def is_valid_class_name(class_name: str) -> bool:
    """Whether a workflow class filter is a dotted identifier such as ``org.foo.MyWorkflow``."""
    return _VALID_CLASS_NAME.fullmatch(class_name) is not None


@dataclass(frozen=True)
class BrokenFilters:
    """Optional filters of the ``broken`` command. Empty strings mean "not set"."""

    exception_pattern: str = ""
    error_time_start: str = ""
    error_time_end: str = ""
    workflow_class: str = ""


def broken_conditions(filters: BrokenFilters) -> list[ColumnElement[bool]]:
    """Validate filters and turn them into WHERE conditions.

    Raises:
        FilterValidationError: If the pattern or class name is invalid.
    """
    errors = workflow_instance_error_table
    instances = workflow_instance_table
    conditions: list[ColumnElement[bool]] = []

    if filters.exception_pattern:
        if not is_valid_pattern(filters.exception_pattern):
            raise FilterValidationError(f"Invalid exception-pattern: {filters.exception_pattern}")
        conditions.append(errors.c.exception.like(f"%{filters.exception_pattern}%"))

    if filters.workflow_class:
        if not is_valid_class_name(filters.workflow_class):
            raise FilterValidationError(f"Invalid workflow-class: {filters.workflow_class}")
        conditions.append(instances.c.classname == filters.workflow_class)

    if filters.error_time_start:
        conditions.append(errors.c.error_ts >= literal(filters.error_time_start, String))
    if filters.error_time_end:
        conditions.append(errors.c.error_ts <= literal(filters.error_time_end, String))

    return conditions


def build_broken_query(filters: BrokenFilters, *, count: bool = False) -> Select:
    """Build the search over instances joined to their error rows.

    Args:
        filters: Optional filters; none set yields every broken instance
        count: Select the number of matches instead of their ids

    Raises:
        FilterValidationError: If any filter is invalid.
    """
    errors = workflow_instance_error_table
    instances = workflow_instance_table

    column = func.count(errors.c.workflow_instance_id) if count else errors.c.workflow_instance_id
    query = select(column).select_from(errors.join(instances, errors.c.workflow_instance_id == instances.c.id))

    conditions = broken_conditions(filters)
    if conditions:
        query = query.where(and_(*conditions))
    return query


def build_count_query(state: WorkflowState | None) -> Select:
    """Count instances in one state, or all instances when state is None."""
    instances = workflow_instance_table
    query = select(func.count(instances.c.id))
    if state is not None:
        query = query.where(instances.c.state == int(state))
    return query


def build_json_selector_query(selector: str, state: WorkflowState | None, *, dialect_name: str) -> Select:
    """Select ids of instances whose JSON data matches a raw predicate.

    The instance data is exposed as ``json`` (jsonb on PostgreSQL), so a
    selector reads like ``json->>'customer' = 'acme'``.

    Args:
        selector: Raw SQL predicate, embedded verbatim
        state: Restrict to one state, or None for all
        dialect_name: Backend dialect of the target database

    Raises:
        FilterValidationError: If the selector is empty.
    """
    if not selector.strip():
        raise FilterValidationError("Flag --json-selector is mandatory")

    instances = workflow_instance_table
    data = cast(instances.c.data, JSONB) if dialect_name == "postgresql" else instances.c.data
    r = select(instances.c.id, instances.c.state, data.label("json")).subquery("r")

    query = select(r.c.id)
    if state is not None:
        query = query.where(r.c.state == int(state))
    # Escaped colons keep text() from reading ":name" or "::jsonb" as bind parameters
    return query.where(text(selector.replace(":", "\\:")))
