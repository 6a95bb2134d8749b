# src/cpt/core/pipeline_input.py
"""Identifier lists composed from arguments and piped input.

Commands that print ids write one id per line, so their output can be piped
into commands that take ids::

    cpt broken --workflow-class org.foo.MyWorkflow | cpt restart
"""

from collections.abc import Iterable
from typing import TextIO


def read_piped_ids(stream: TextIO) -> list[str]:
    """Read identifiers from piped input, one per line.

    Interactive terminals are never read, so a command invoked without a pipe
    does not block waiting for input. Blank lines are skipped.
    """
    if stream.isatty():
        return []
    return [line.rstrip("\r\n") for line in stream if line.rstrip("\r\n")]


def compose_ids(explicit: Iterable[str] | None, upstream: Iterable[str] | None) -> list[str]:
    """Explicit ids in given order, followed by upstream ids in read order.

    No deduplication: an id given twice is processed twice.
    """
    return [*(explicit or ()), *(upstream or ())]
