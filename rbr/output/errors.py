"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rbr.core.errors import ErrorCode
from rbr.output.console import Style
from rbr.pipeline.errors import (
    BranchCrashed,
    BuildFailure,
    FormulaBumpFailure,
    PackagingFailure,
    PipelineError,
    PublishFailure,
    UnrecognizedEvent,
)

if TYPE_CHECKING:
    from rbr.output.console import ConsoleProtocol

__all__ = ["print_pipeline_error", "pipeline_error_exit_code"]


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error with its hint."""
    match error:
        case UnrecognizedEvent(message=message):
            console.error(f"release event rejected: {message}")
        case BuildFailure(platform=platform, message=message):
            console.error(f"[{platform}] build: {message}")
        case PackagingFailure(platform=platform, message=message):
            console.error(f"[{platform}] package: {message}")
        case PublishFailure(platform=platform, message=message):
            console.error(f"[{platform}] publish: {message}")
        case BranchCrashed(platform=platform, message=message):
            console.error(f"[{platform}] {message}")
        case FormulaBumpFailure(message=message):
            console.error(f"formula: {message}")

    if error.hint:
        for line in error.hint.splitlines():
            console.print(f"  {line}", Style.DIM)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error:
        case UnrecognizedEvent():
            return int(ErrorCode.USER_ERROR)
        case BuildFailure(kind="toolchain_missing"):
            return int(ErrorCode.ENV_ERROR)
        case BuildFailure() | BranchCrashed():
            return int(ErrorCode.BUILD_ERROR)
        case PackagingFailure():
            return int(ErrorCode.PACKAGING_ERROR)
        case PublishFailure():
            return int(ErrorCode.PUBLISH_ERROR)
        case FormulaBumpFailure():
            return int(ErrorCode.FORMULA_ERROR)
    # Fallback for exhaustiveness
    return int(ErrorCode.BUILD_ERROR)
