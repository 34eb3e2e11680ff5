"""Release artifact pipeline: event -> build -> package -> publish -> formula."""

from .context import RunContext
from .event import load_release_event, parse_release_event
from .model import (
    Artifact,
    BranchOutcome,
    BranchState,
    BuildTarget,
    Checksum,
    FormulaUpdateRequest,
    PublishedRelease,
    ReleaseEvent,
    RunReport,
)
from .runner import run_branch, run_release
from .targets import ALL_TARGETS, target_for

__all__ = [
    "ALL_TARGETS",
    "Artifact",
    "BranchOutcome",
    "BranchState",
    "BuildTarget",
    "Checksum",
    "FormulaUpdateRequest",
    "PublishedRelease",
    "ReleaseEvent",
    "RunContext",
    "RunReport",
    "load_release_event",
    "parse_release_event",
    "run_branch",
    "run_release",
    "target_for",
]
