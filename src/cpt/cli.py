# src/cpt/cli.py
"""cpt Command Line Interface.

Entry point for the cpt CLI tool.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from sqlalchemy.exc import SQLAlchemyError

from cpt import __version__
from cpt.contracts import (
    AgeFormatError,
    ConfigurationError,
    FilterValidationError,
    SchemaCompatibilityError,
    UnknownStateError,
    WorkflowState,
    parse_state_filter,
    state_choices,
)

if TYPE_CHECKING:
    from cpt.core.config import CptSettings
    from cpt.core.store import WorkflowDB
    from cpt.core.store.queries import InstanceQueries

__all__ = ["app"]

app = typer.Typer(
    name="cpt",
    help="cpt: inspect and maintain Copper workflow engine databases.",
    no_args_is_help=True,
)


@dataclass
class CliState:
    """Global options shared by all subcommands."""

    database: str | None = None
    settings: CptSettings | None = None
    verbose: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cpt version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


def _fail(message: str) -> typer.Exit:
    """Report a fatal error on stderr and build the exit to raise."""
    typer.echo(message, err=True)
    return typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    database: str | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Database URL (overrides the DATABASE_URL environment variable).",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file (default: ./cpt.yaml if present).",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # Existence checked by _load_dotenv for a clearer message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs on stderr (for machine processing).",
    ),
) -> None:
    """cpt: inspect and maintain Copper workflow engine databases."""
    from cpt.cli_helpers import resolve_settings
    from cpt.core.logging import configure_logging

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    try:
        loaded = resolve_settings(settings)
    except ConfigurationError as e:
        raise _fail(f"Error: {e}") from None

    log_level = "DEBUG" if verbose else (loaded.logging.level if loaded else "WARNING")
    json_output = json_logs or (loaded.logging.json_output if loaded else False)
    configure_logging(json_output=json_output, level=log_level)

    ctx.obj = CliState(database=database, settings=loaded, verbose=verbose)


def _cli_state(ctx: typer.Context) -> CliState:
    state = ctx.find_root().obj
    return state if isinstance(state, CliState) else CliState()


@contextmanager
def _open_database(ctx: typer.Context) -> Iterator[WorkflowDB]:
    """Open the command's database handle and close it when the command ends.

    Raises:
        typer.Exit: If the database is not configured, unreachable, or not an engine store.
    """
    from cpt.cli_helpers import resolve_database_url
    from cpt.core.store import WorkflowDB

    state = _cli_state(ctx)
    try:
        url, echo = resolve_database_url(state.database, state.settings)
    except ConfigurationError as e:
        raise _fail(f"Unable to connect to database: {e}") from None

    try:
        db = WorkflowDB.from_url(url, echo=echo)
    except SchemaCompatibilityError as e:
        raise _fail(f"Error: {e}") from None
    except (SQLAlchemyError, ImportError) as e:
        raise _fail(f"Unable to connect to database: {e}\nMake sure that DATABASE_URL environment variable is set") from None

    try:
        yield db
    finally:
        db.close()


def _parse_state(state: str) -> WorkflowState | None:
    try:
        return parse_state_filter(state)
    except UnknownStateError as e:
        raise _fail(str(e)) from None


def _collect_ids(ids: list[str] | None) -> list[str]:
    """Positional ids followed by ids piped on stdin."""
    from cpt.core.pipeline_input import compose_ids, read_piped_ids

    upstream = read_piped_ids(sys.stdin) if sys.stdin is not None else []
    return compose_ids(ids, upstream)


_STATE_HELP = f"Workflow instance state. Possible states: {', '.join(state_choices())}"


@app.command()
def count(
    ctx: typer.Context,
    state: str = typer.Option(
        "ERROR",
        "--state",
        help=_STATE_HELP,
    ),
) -> None:
    """Print the number of workflow instances in a state.

    Examples:

        cpt count --state WAITING

        cpt count --state ALL
    """
    from cpt.core.store.queries import InstanceQueries

    state_filter = _parse_state(state)

    with _open_database(ctx) as db:
        try:
            total = InstanceQueries(db).count_instances(state_filter)
        except SQLAlchemyError as e:
            raise _fail(f"Error reading count: {e}") from None
    typer.echo(total)


@app.command()
def broken(
    ctx: typer.Context,
    exception_pattern: str = typer.Option(
        "",
        "--exception-pattern",
        help="Filter on a substring of the exception message.",
    ),
    error_time_start: str = typer.Option(
        "",
        "--error-time-start",
        help="Filter on error time, interval start as timestamp, e.g. 2020-04-25 11:40:40.78",
    ),
    error_time_end: str = typer.Option(
        "",
        "--error-time-end",
        help="Filter on error time, interval end as timestamp, e.g. 2020-04-26 11:40:40.78",
    ),
    workflow_class: str = typer.Option(
        "",
        "--workflow-class",
        help="Filter on workflow class, full package name required, e.g. org.foo.wf.MyWorkflow",
    ),
    print_count: bool = typer.Option(
        False,
        "--print-count",
        help="Print the number of (filtered) broken workflow instances instead of their ids.",
    ),
) -> None:
    """List ids of broken workflow instances (instances with an error record).

    Prints one id per line, ready to be piped into show, restart or delete.

    Examples:

        cpt broken --exception-pattern NullPointer --print-count

        cpt broken --workflow-class org.foo.wf.MyWorkflow | cpt restart
    """
    from cpt.core.filters import BrokenFilters, build_broken_query
    from cpt.core.store.queries import InstanceQueries

    filters = BrokenFilters(
        exception_pattern=exception_pattern,
        error_time_start=error_time_start,
        error_time_end=error_time_end,
        workflow_class=workflow_class,
    )
    # Validate before connecting: invalid filters never reach the database
    try:
        build_broken_query(filters)
    except FilterValidationError as e:
        raise _fail(str(e)) from None

    with _open_database(ctx) as db:
        queries = InstanceQueries(db)
        try:
            if print_count:
                typer.echo(queries.count_broken(filters))
                return
            ids = queries.find_broken(filters)
        except SQLAlchemyError as e:
            raise _fail(f"Workflow instance error search failed: {e}") from None

    for instance_id in ids:
        typer.echo(instance_id)


@app.command()
def show(
    ctx: typer.Context,
    ids: list[str] | None = typer.Argument(None, help="Workflow instance ids (also read from piped stdin)."),
    workflow_data: bool = typer.Option(
        False,
        "--workflow-data",
        help="Show workflow instance data.",
    ),
    audit_trail: bool = typer.Option(
        False,
        "--audit-trail",
        help="Show audit trail messages.",
    ),
    instance_details: bool = typer.Option(
        False,
        "--instance-details",
        help="Show workflow instance details.",
    ),
    print_data_array: bool = typer.Option(
        False,
        "--print-data-array",
        help="Print workflow data as a JSON array, only valid together with --workflow-data.",
    ),
) -> None:
    """Show details, data or audit trail of workflow instances.

    Examples:

        cpt show --instance-details --audit-trail 4711

        cpt broken | cpt show --workflow-data --print-data-array
    """
    from cpt.cli_formatters import SEPARATOR, format_audit_trail, format_instance_details
    from cpt.core.store.queries import InstanceQueries

    if not (workflow_data or audit_trail or instance_details):
        raise _fail("Use at least one of the following flags: [--workflow-data, --audit-trail, --instance-details]")
    if print_data_array and (not workflow_data or audit_trail or instance_details):
        raise _fail("Flag --print-data-array is only allowed together with --workflow-data flag")

    instance_ids = _collect_ids(ids)

    with _open_database(ctx) as db:
        queries = InstanceQueries(db)
        if print_data_array:
            typer.echo("[")
        for position, instance_id in enumerate(instance_ids):
            read_failed = False
            try:
                instance = queries.get_instance(instance_id)
            except SQLAlchemyError as e:
                typer.echo(f"Error reading workflow instance id={instance_id}: {e}", err=True)
                instance = None
                read_failed = True

            if instance is None:
                if not read_failed:
                    typer.echo(f"Workflow instance not found: {instance_id}", err=True)
                if print_data_array:
                    typer.echo("null")
            else:
                if instance_details:
                    for line in format_instance_details(instance):
                        typer.echo(line)
                if workflow_data and instance_details:
                    typer.echo("Instance data:")
                if workflow_data:
                    typer.echo(instance.data if instance.data is not None else ("null" if print_data_array else ""))

            if audit_trail:
                try:
                    entries = queries.list_audit_events(instance_id)
                except SQLAlchemyError as e:
                    typer.echo(f"Error reading audit trail of workflow instance id={instance_id}: {e}", err=True)
                    entries = []
                for line in format_audit_trail(entries):
                    typer.echo(line)

            if position + 1 < len(instance_ids):
                typer.echo("," if print_data_array else SEPARATOR)
        if print_data_array:
            typer.echo("]")


@app.command()
def delete(
    ctx: typer.Context,
    ids: list[str] | None = typer.Argument(None, help="Workflow instance ids (also read from piped stdin)."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show which instances would be deleted without deleting.",
    ),
) -> None:
    """Delete workflow instances together with their waits, responses and error records.

    Examples:

        cpt delete 4711 4712

        cpt broken --exception-pattern Timeout | cpt delete
    """
    from cpt.cli_formatters import format_outcome_failures
    from cpt.core.maintenance import InstanceMutator
    from cpt.core.store.queries import InstanceQueries

    instance_ids = _collect_ids(ids)

    with _open_database(ctx) as db:
        if dry_run:
            _preview(InstanceQueries(db), instance_ids, action="delete")
            return

        result = InstanceMutator(db).delete_instances(instance_ids)

    for outcome in result.failed_outcomes:
        for line in format_outcome_failures(outcome):
            typer.echo(line, err=True)
    if result.nothing_succeeded:
        raise typer.Exit(1)


@app.command()
def restart(
    ctx: typer.Context,
    ids: list[str] | None = typer.Argument(None, help="Workflow instance ids (also read from piped stdin)."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show which instances would be re-enqueued without changing anything.",
    ),
) -> None:
    """Re-enqueue finished or broken workflow instances and clear their error records.

    Examples:

        cpt restart 4711

        cpt broken --workflow-class org.foo.wf.MyWorkflow | cpt restart
    """
    from cpt.cli_formatters import format_outcome_failures
    from cpt.core.maintenance import InstanceMutator
    from cpt.core.store.queries import InstanceQueries

    instance_ids = _collect_ids(ids)

    with _open_database(ctx) as db:
        if dry_run:
            _preview(InstanceQueries(db), instance_ids, action="restart")
            return

        result = InstanceMutator(db).restart_instances(instance_ids)

    for outcome in result.failed_outcomes:
        for line in format_outcome_failures(outcome):
            typer.echo(line, err=True)
    if result.nothing_succeeded:
        raise typer.Exit(1)


def _preview(queries: InstanceQueries, instance_ids: list[str], *, action: str) -> None:
    """Report, per id, what a delete or restart would do."""
    from cpt.core.maintenance import is_restartable

    for instance_id in instance_ids:
        try:
            instance = queries.get_instance(instance_id)
        except SQLAlchemyError as e:
            raise _fail(f"Error reading workflow instances: {e}") from None
        if instance is None:
            typer.echo(f"{instance_id}: not found")
        elif action == "restart" and not is_restartable(instance.state):
            typer.echo(f"{instance_id}: skipped (state {instance.state_label})")
        else:
            typer.echo(f"{instance_id}: would {action} (state {instance.state_label})")


@app.command()
def data(
    ctx: typer.Context,
    json_selector: str = typer.Option(
        ...,
        "--json-selector",
        help="Raw SQL predicate on the instance data exposed as 'json', e.g. json->>'customer'='acme' (JSON data only).",
    ),
    state: str = typer.Option(
        "ERROR",
        "--state",
        help=_STATE_HELP,
    ),
) -> None:
    """List ids of workflow instances whose JSON data matches a selector.

    The selector is passed to the database verbatim.

    Examples:

        cpt data --json-selector "json->>'orderId' = '123'" --state ALL
    """
    from cpt.core.store.queries import InstanceQueries

    state_filter = _parse_state(state)
    if not json_selector.strip():
        raise _fail("Flag --json-selector is mandatory")

    with _open_database(ctx) as db:
        try:
            ids = InstanceQueries(db).find_by_json_selector(json_selector, state_filter)
        except (SQLAlchemyError, FilterValidationError) as e:
            raise _fail(f"Query Error: {e}") from None

    for instance_id in ids:
        typer.echo(instance_id)


@app.command()
def cleanup(
    ctx: typer.Context,
    age: str = typer.Option(
        ...,
        "--age",
        help="Delete data older than this age: timestamp, days (d) or hours (h), e.g. 2006-01-02 15:04:05.99, 35d, 24h",
    ),
    audit_trail: bool = typer.Option(
        False,
        "--audit-trail",
        help="Delete audit trail events older than age.",
    ),
    workflow_instance: bool = typer.Option(
        False,
        "--workflow-instance",
        help="Delete workflow instances (and their dependent records) older than age.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show how many records would be deleted without deleting.",
    ),
) -> None:
    """Delete workflow instances and/or audit trail events older than an age.

    Examples:

        # See what would be deleted
        cpt cleanup --age 35d --workflow-instance --audit-trail --dry-run

        # Delete audit trail older than a point in time
        cpt cleanup --age "2020-01-01 00:00:00" --audit-trail
    """
    from cpt.cli_formatters import format_cleanup_counts, format_cleanup_result
    from cpt.core.age import parse_age
    from cpt.core.maintenance import CleanupManager

    if not age:
        raise _fail("Flag --age is mandatory")
    if not audit_trail and not workflow_instance:
        raise _fail("Use at least one of the following flags: [--audit-trail, --workflow-instance]")

    try:
        cutoff = parse_age(age)
    except AgeFormatError:
        raise _fail(f"Invalid age value {age}. Use valid day(d), hours(h) or timestamp format") from None

    with _open_database(ctx) as db:
        manager = CleanupManager(db)
        if dry_run:
            try:
                counts = manager.count_expired(cutoff, purge_instances=workflow_instance, purge_audit=audit_trail)
            except SQLAlchemyError as e:
                raise _fail(f"Error counting expired data: {e}") from None
            typer.echo(f"Would delete data older than {cutoff}:")
            for line in format_cleanup_counts(counts):
                typer.echo(line)
            return

        result = manager.cleanup(cutoff, purge_instances=workflow_instance, purge_audit=audit_trail)

    typer.echo(f"deleted data older than {result.cutoff}")
    if _cli_state(ctx).verbose:
        for line in format_cleanup_result(result):
            typer.echo(line, err=True)


if __name__ == "__main__":
    app()
