"""Artifact packaging.

Turns one raw binary into the distributable archive plus its checksum
sidecar. Order matters:

1. rename the binary to ``<binary_name>_<version>_<triple>[.exe]``
2. compress it (tar.gz for linux-musl, zip -9 for windows and macOS)
3. hash the compressed archive, never the raw binary
4. write ``<archive_name>.sha256sum``

The staging directory only ever holds complete archive/sidecar pairs: a
failing step removes whatever it had written.
"""

from __future__ import annotations

import shutil
import tarfile
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from rbr.core.config import SidecarPolicy
from rbr.core.result import Err, Ok, Result
from rbr.pipeline.build import BuiltBinary
from rbr.pipeline.errors import PackagingFailure
from rbr.pipeline.model import (
    ArchiveFormat,
    Artifact,
    BuildTarget,
    Checksum,
    SidecarFormat,
    archive_file_name,
    binary_file_name,
    sidecar_file_name,
)
from rbr.pipeline.targets import ALL_TARGETS


def sidecar_format_for(target: BuildTarget, policy: SidecarPolicy) -> SidecarFormat:
    """Sidecar format for ``target`` under ``policy``.

    ``per-target`` keeps each target's own format; ``bare`` and ``named``
    apply one format to every target.
    """
    if policy == "bare":
        return SidecarFormat.BARE_DIGEST
    if policy == "named":
        return SidecarFormat.DIGEST_AND_NAME
    return target.sidecar_format


def _tar_gz(archive: Path, member: Path) -> None:
    with tarfile.open(archive, "w:gz", compresslevel=9) as tf:
        tf.add(member, arcname=member.name)


def _zip(archive: Path, member: Path) -> None:
    # Build outputs copied out of a container can carry mtime=0, which ZIP
    # cannot represent without strict_timestamps=False.
    with ZipFile(
        archive, "w", compression=ZIP_DEFLATED, compresslevel=9, strict_timestamps=False
    ) as zf:
        zf.write(member, arcname=member.name)


def _compress(fmt: ArchiveFormat, archive: Path, member: Path) -> None:
    if fmt is ArchiveFormat.TAR_GZ:
        _tar_gz(archive, member)
    else:
        _zip(archive, member)


def _remove(*paths: Path) -> None:
    for p in paths:
        p.unlink(missing_ok=True)


def package_binary(
    built: BuiltBinary,
    *,
    binary_name: str,
    version: str,
    out_dir: Path,
    sidecar_policy: SidecarPolicy = "per-target",
) -> Result[Artifact, PackagingFailure]:
    """Rename, compress, hash and write the sidecar for one built binary."""
    target = built.target
    renamed = out_dir / binary_file_name(binary_name, version, target)
    archive = out_dir / archive_file_name(binary_name, version, target)
    sidecar = archive.with_name(sidecar_file_name(archive.name))

    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        _remove(renamed, archive, sidecar)
        shutil.copy2(built.path, renamed)
    except OSError as e:
        return Err(
            PackagingFailure(
                platform=target.platform,
                kind="rename_failed",
                message=f"cannot stage {built.path.name} as {renamed.name}",
                hint=str(e),
                path=renamed,
            )
        )

    try:
        _compress(target.archive_format, archive, renamed)
    except (OSError, tarfile.TarError) as e:
        _remove(renamed, archive)
        return Err(
            PackagingFailure(
                platform=target.platform,
                kind="compress_failed",
                message=f"cannot create {archive.name}",
                hint=str(e),
                path=archive,
            )
        )
    # Only the archive and its sidecar are published.
    _remove(renamed)

    try:
        checksum = Checksum.of_file(archive)
        sidecar.write_text(
            checksum.render(sidecar_format_for(target, sidecar_policy)), encoding="utf-8"
        )
    except OSError as e:
        _remove(archive, sidecar)
        return Err(
            PackagingFailure(
                platform=target.platform,
                kind="checksum_failed",
                message=f"cannot write {sidecar.name}",
                hint=str(e),
                path=sidecar,
            )
        )

    return Ok(
        Artifact(
            binary_name=binary_name,
            version=version,
            triple=target.architecture_triple,
            archive_path=archive,
            checksum=checksum,
        )
    )


def _platform_for_archive(archive_name: str) -> str:
    for target in ALL_TARGETS:
        if target.architecture_triple in archive_name:
            return target.platform
    return "unknown"


def read_sidecar(sidecar: Path) -> Checksum | None:
    """Parse either sidecar format. Returns None if the content is malformed."""
    try:
        text = sidecar.read_text(encoding="utf-8")
    except OSError:
        return None

    parts = text.split()
    archive_name = sidecar.name.removesuffix(".sha256sum")
    if len(parts) not in (1, 2):
        return None
    digest = parts[0].lower()
    if len(digest) != 64 or any(c not in "0123456789abcdef" for c in digest):
        return None
    if len(parts) == 2 and parts[1] != archive_name:
        return None
    return Checksum(hex_digest=digest, archive_name=archive_name)


def verify_sidecar(archive: Path) -> Result[Checksum, PackagingFailure]:
    """Recompute the archive digest and compare it with its sidecar."""
    platform = _platform_for_archive(archive.name)
    sidecar = archive.with_name(sidecar_file_name(archive.name))

    if not archive.is_file():
        return Err(
            PackagingFailure(
                platform=platform,
                kind="checksum_failed",
                message=f"archive not found: {archive}",
                path=archive,
            )
        )

    expected = read_sidecar(sidecar)
    if expected is None:
        return Err(
            PackagingFailure(
                platform=platform,
                kind="checksum_failed",
                message=f"missing or malformed sidecar: {sidecar.name}",
                path=sidecar,
            )
        )

    try:
        matches = expected.matches(archive)
    except OSError as e:
        return Err(
            PackagingFailure(
                platform=platform,
                kind="checksum_failed",
                message=f"cannot read {archive.name}",
                hint=str(e),
                path=archive,
            )
        )
    if not matches:
        return Err(
            PackagingFailure(
                platform=platform,
                kind="checksum_mismatch",
                message=f"checksum mismatch: {archive.name}",
                hint=f"sidecar records {expected.hex_digest}",
                path=archive,
            )
        )

    return Ok(expected)
