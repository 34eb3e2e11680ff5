from __future__ import annotations

import hashlib
import tarfile
from pathlib import Path
from zipfile import ZipFile

import pytest

from rbr.core.result import Err, Ok
from rbr.pipeline.build import BuiltBinary
from rbr.pipeline.model import Artifact, BuildTarget, archive_file_name
from rbr.pipeline.packaging import package_binary, read_sidecar, verify_sidecar
from rbr.pipeline.targets import LINUX_MUSL, MACOS, WINDOWS_GNU


@pytest.fixture
def raw_binary(tmp_path: Path) -> Path:
    path = tmp_path / "build" / "replibyte"
    path.parent.mkdir()
    path.write_bytes(b"\x7fELF fake binary contents" * 100)
    return path


def _package(target: BuildTarget, binary: Path, out_dir: Path, **kwargs: object):
    return package_binary(
        BuiltBinary(target=target, path=binary),
        binary_name="replibyte",
        version="v1.2.3",
        out_dir=out_dir,
        **kwargs,  # type: ignore[arg-type]
    )


def _artifact(target: BuildTarget, binary: Path, out_dir: Path) -> Artifact:
    result = _package(target, binary, out_dir)
    assert isinstance(result, Ok)
    return result.value


def test_linux_archive_is_tar_gz_with_bare_sidecar(raw_binary: Path, tmp_path: Path) -> None:
    out = tmp_path / "dist"
    result = _package(LINUX_MUSL, raw_binary, out)

    assert isinstance(result, Ok)
    artifact = result.value
    assert artifact.archive_name == "replibyte_v1.2.3_x86_64-unknown-linux-musl.tar.gz"

    sidecar = artifact.sidecar_path.read_text(encoding="utf-8")
    digest = hashlib.sha256(artifact.archive_path.read_bytes()).hexdigest()
    assert sidecar == digest + "\n"
    assert len(sidecar.strip()) == 64

    with tarfile.open(artifact.archive_path, "r:gz") as tf:
        assert tf.getnames() == ["replibyte_v1.2.3_x86_64-unknown-linux-musl"]


def test_macos_sidecar_names_the_archive(raw_binary: Path, tmp_path: Path) -> None:
    result = _package(MACOS, raw_binary, tmp_path / "dist")

    assert isinstance(result, Ok)
    artifact = result.value
    assert artifact.archive_name == "replibyte_v1.2.3_x86_64-apple-darwin.zip"
    digest = hashlib.sha256(artifact.archive_path.read_bytes()).hexdigest()
    assert artifact.sidecar_path.read_text(encoding="utf-8") == (
        f"{digest} replibyte_v1.2.3_x86_64-apple-darwin.zip\n"
    )


def test_windows_zip_contains_renamed_exe(raw_binary: Path, tmp_path: Path) -> None:
    result = _package(WINDOWS_GNU, raw_binary, tmp_path / "dist")

    assert isinstance(result, Ok)
    artifact = result.value
    assert artifact.archive_name == "replibyte_v1.2.3_x86_64-pc-windows-gnu.exe.zip"
    with ZipFile(artifact.archive_path) as zf:
        assert zf.namelist() == ["replibyte_v1.2.3_x86_64-pc-windows-gnu.exe"]
        assert zf.read("replibyte_v1.2.3_x86_64-pc-windows-gnu.exe") == raw_binary.read_bytes()
    assert len(artifact.sidecar_path.read_text(encoding="utf-8").split()) == 1



@pytest.mark.parametrize("target", [LINUX_MUSL, WINDOWS_GNU, MACOS], ids=lambda t: t.platform)
def test_archive_path_matches_published_name(raw_binary: Path, tmp_path: Path, target: BuildTarget) -> None:
    artifact = _artifact(target, raw_binary, tmp_path / "dist")

    assert artifact.archive_path == tmp_path / "dist" / archive_file_name("replibyte", "v1.2.3", target)

def test_digest_is_of_archive_not_binary(raw_binary: Path, tmp_path: Path) -> None:
    result = _package(LINUX_MUSL, raw_binary, tmp_path / "dist")

    assert isinstance(result, Ok)
    assert result.value.checksum.hex_digest != hashlib.sha256(raw_binary.read_bytes()).hexdigest()


def test_only_archive_and_sidecar_are_left(raw_binary: Path, tmp_path: Path) -> None:
    out = tmp_path / "dist"
    result = _package(WINDOWS_GNU, raw_binary, out)

    assert isinstance(result, Ok)
    assert sorted(p.name for p in out.iterdir()) == [
        "replibyte_v1.2.3_x86_64-pc-windows-gnu.exe.zip",
        "replibyte_v1.2.3_x86_64-pc-windows-gnu.exe.zip.sha256sum",
    ]
    assert raw_binary.exists()


def test_repackaging_replaces_previous_pair(raw_binary: Path, tmp_path: Path) -> None:
    out = tmp_path / "dist"
    first = _package(LINUX_MUSL, raw_binary, out)
    raw_binary.write_bytes(b"rebuilt")
    second = _package(LINUX_MUSL, raw_binary, out)

    assert isinstance(first, Ok) and isinstance(second, Ok)
    assert len(list(out.iterdir())) == 2
    assert isinstance(verify_sidecar(second.value.archive_path), Ok)


@pytest.mark.parametrize(("policy", "tokens"), [("bare", 1), ("named", 2)])
def test_unified_sidecar_policy(raw_binary: Path, tmp_path: Path, policy: str, tokens: int) -> None:
    for target in (LINUX_MUSL, WINDOWS_GNU, MACOS):
        result = _package(target, raw_binary, tmp_path / policy / target.platform, sidecar_policy=policy)
        assert isinstance(result, Ok)
        text = result.value.sidecar_path.read_text(encoding="utf-8")
        assert len(text.split()) == tokens


def test_missing_binary_is_rename_failure(tmp_path: Path) -> None:
    result = _package(LINUX_MUSL, tmp_path / "nope", tmp_path / "dist")

    assert isinstance(result, Err)
    assert result.error.kind == "rename_failed"
    assert result.error.platform == "linux"


class TestVerifySidecar:
    def test_fresh_artifact_verifies(self, raw_binary: Path, tmp_path: Path) -> None:
        for target in (LINUX_MUSL, WINDOWS_GNU, MACOS):
            artifact = _artifact(target, raw_binary, tmp_path / target.platform)
            result = verify_sidecar(artifact.archive_path)
            assert result == Ok(artifact.checksum)

    def test_tampered_archive(self, raw_binary: Path, tmp_path: Path) -> None:
        artifact = _artifact(MACOS, raw_binary, tmp_path / "dist")
        with artifact.archive_path.open("ab") as f:
            f.write(b"tamper")

        result = verify_sidecar(artifact.archive_path)
        assert isinstance(result, Err)
        assert result.error.kind == "checksum_mismatch"
        assert result.error.platform == "macos"

    def test_missing_archive(self, tmp_path: Path) -> None:
        result = verify_sidecar(tmp_path / "replibyte_v1_x86_64-unknown-linux-musl.tar.gz")
        assert isinstance(result, Err)
        assert result.error.kind == "checksum_failed"

    def test_missing_sidecar(self, raw_binary: Path, tmp_path: Path) -> None:
        artifact = _artifact(LINUX_MUSL, raw_binary, tmp_path / "dist")
        artifact.sidecar_path.unlink()

        result = verify_sidecar(artifact.archive_path)
        assert isinstance(result, Err)
        assert "sidecar" in result.error.message


class TestReadSidecar:
    def test_rejects_wrong_archive_name(self, tmp_path: Path) -> None:
        sidecar = tmp_path / "a.zip.sha256sum"
        sidecar.write_text(f"{'b' * 64} other.zip\n", encoding="utf-8")
        assert read_sidecar(sidecar) is None

    def test_rejects_short_digest(self, tmp_path: Path) -> None:
        sidecar = tmp_path / "a.zip.sha256sum"
        sidecar.write_text("abc123\n", encoding="utf-8")
        assert read_sidecar(sidecar) is None

    def test_accepts_bare_digest(self, tmp_path: Path) -> None:
        sidecar = tmp_path / "a.zip.sha256sum"
        sidecar.write_text("c" * 64 + "\n", encoding="utf-8")
        checksum = read_sidecar(sidecar)
        assert checksum is not None
        assert checksum.archive_name == "a.zip"
