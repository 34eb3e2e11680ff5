from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True, slots=True)
class UnrecognizedEvent:
    """The trigger is not a release publish/create event. Aborts the run."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class BuildFailure:
    platform: str
    kind: Literal["checkout_failed", "toolchain_missing", "compile_failed", "output_missing"]
    message: str
    hint: str | None = None
    returncode: int | None = None


@dataclass(frozen=True, slots=True)
class PackagingFailure:
    platform: str
    kind: Literal["rename_failed", "compress_failed", "checksum_failed", "checksum_mismatch"]
    message: str
    hint: str | None = None
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PublishFailure:
    platform: str
    kind: Literal["auth_missing", "upload_failed", "release_lookup_failed", "asset_missing"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class BranchCrashed:
    """A branch raised instead of returning an error value."""

    platform: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class FormulaBumpSkipped:
    """An equivalent bump request is already open and force is off.

    Not an error: the run counts as successful.
    """

    tag: str
    existing_url: str | None = None
    message: str = "formula bump already requested"


@dataclass(frozen=True, slots=True)
class FormulaBumpFailure:
    kind: Literal["auth_missing", "lookup_failed", "submit_failed"]
    message: str
    hint: str | None = None


BranchError = BuildFailure | PackagingFailure | PublishFailure | BranchCrashed

PipelineError = UnrecognizedEvent | BranchError | FormulaBumpFailure
