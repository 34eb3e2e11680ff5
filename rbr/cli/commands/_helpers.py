"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from rbr.core.result import Ok, Result
from rbr.output.errors import pipeline_error_exit_code, print_pipeline_error
from rbr.pipeline.errors import PipelineError

if TYPE_CHECKING:
    from rbr.cli.context import CLIContext


T = TypeVar("T")


def value_or_exit(result: Result[T, PipelineError], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit with its code.

    Replaces the common pattern:
        match result:
            case Err(e):
                print_pipeline_error(e, ctx.console)
                raise typer.Exit(code=pipeline_error_exit_code(e))
            case Ok(value):
                ...
    """
    if isinstance(result, Ok):
        return result.value
    error = result.error
    print_pipeline_error(error, ctx.console)
    raise typer.Exit(code=pipeline_error_exit_code(error))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)

