from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rbr.core.result import Result
from rbr.pipeline.errors import BranchError, FormulaBumpFailure, FormulaBumpSkipped


@dataclass(frozen=True, slots=True)
class ReleaseEvent:
    """The tag being released and the commit it points at."""

    tag_name: str
    commit_revision: str

    @property
    def version(self) -> str:
        # The tag is taken as given (e.g. "v1.2.3"), never re-derived.
        return self.tag_name


class ArchiveFormat(Enum):
    TAR_GZ = ".tar.gz"
    ZIP = ".zip"

    @property
    def suffix(self) -> str:
        return self.value


class SidecarFormat(Enum):
    BARE_DIGEST = "bare"  # "<digest>"
    DIGEST_AND_NAME = "named"  # "<digest> <archive_name>"


class Toolchain(Enum):
    CONTAINER = "container"  # pinned cross-builder image
    CROSS_LINKER = "cross-linker"  # host cargo + installed mingw linker


@dataclass(frozen=True, slots=True)
class BuildTarget:
    platform: str
    architecture_triple: str
    toolchain: Toolchain
    archive_format: ArchiveFormat
    sidecar_format: SidecarFormat
    exe_suffix: str = ""
    container_env: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class Checksum:
    """SHA-256 of a compressed archive.

    ``render`` is the only place sidecar text is produced; the per-target
    format is chosen by the caller.
    """

    hex_digest: str
    archive_name: str

    @classmethod
    def of_file(cls, path: Path) -> Checksum:
        return cls(hex_digest=sha256_file(path), archive_name=path.name)

    def render(self, fmt: SidecarFormat) -> str:
        if fmt is SidecarFormat.DIGEST_AND_NAME:
            return f"{self.hex_digest} {self.archive_name}\n"
        return f"{self.hex_digest}\n"

    def matches(self, path: Path) -> bool:
        return sha256_file(path) == self.hex_digest


@dataclass(frozen=True, slots=True)
class Artifact:
    binary_name: str
    version: str
    triple: str
    archive_path: Path
    checksum: Checksum

    @property
    def archive_name(self) -> str:
        return self.archive_path.name

    @property
    def sidecar_path(self) -> Path:
        return self.archive_path.with_name(sidecar_file_name(self.archive_name))

    @property
    def asset_paths(self) -> tuple[Path, Path]:
        return (self.archive_path, self.sidecar_path)


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    release_id: int
    attached_artifacts: frozenset[str] = frozenset()

    def attach(self, *names: str) -> PublishedRelease:
        # Same-named assets replace each other, so a set is the whole state.
        return PublishedRelease(
            release_id=self.release_id,
            attached_artifacts=self.attached_artifacts | frozenset(names),
        )


@dataclass(frozen=True, slots=True)
class FormulaUpdateRequest:
    tap: str
    formula_name: str
    tag: str
    revision: str
    force: bool


@dataclass(frozen=True, slots=True)
class FormulaBumpSubmitted:
    request: FormulaUpdateRequest
    url: str | None = None


FormulaBumpResult = FormulaBumpSubmitted | FormulaBumpSkipped


class BranchState(Enum):
    PENDING = "pending"
    BUILDING = "building"
    PACKAGED = "packaged"
    PUBLISHED = "published"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BranchOutcome:
    """Terminal report of one branch."""

    target: BuildTarget
    state: BranchState
    history: tuple[BranchState, ...]
    artifact: Artifact | None = None
    release: PublishedRelease | None = None
    error: BranchError | None = None

    @property
    def ok(self) -> bool:
        return self.state is BranchState.DONE


@dataclass(frozen=True, slots=True)
class RunReport:
    event: ReleaseEvent
    outcomes: tuple[BranchOutcome, ...] = field(default_factory=tuple)
    # None when the macOS gate was not satisfied.
    formula: Result[FormulaBumpResult, FormulaBumpFailure] | None = None

    def outcome_for(self, platform: str) -> BranchOutcome | None:
        for outcome in self.outcomes:
            if outcome.target.platform == platform:
                return outcome
        return None

    @property
    def failed(self) -> tuple[BranchOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)


def binary_file_name(binary_name: str, version: str, target: BuildTarget) -> str:
    """``<binary_name>_<version>_<triple>[.exe]``."""
    return f"{binary_name}_{version}_{target.architecture_triple}{target.exe_suffix}"


def archive_file_name(binary_name: str, version: str, target: BuildTarget) -> str:
    return binary_file_name(binary_name, version, target) + target.archive_format.suffix


def sidecar_file_name(archive_name: str) -> str:
    return f"{archive_name}.sha256sum"


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()
