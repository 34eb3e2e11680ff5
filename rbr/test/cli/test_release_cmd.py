from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from rbr import __version__
from rbr.cli.app import app
from rbr.cli.commands import release as release_mod
from rbr.cli.context import CLIContext
from rbr.core.config import Config
from rbr.core.errors import ErrorCode
from rbr.core.result import Err, Ok
from rbr.output.console import MockConsole
from rbr.pipeline.errors import BuildFailure, FormulaBumpFailure, FormulaBumpSkipped
from rbr.pipeline.model import (
    BranchOutcome,
    BranchState,
    ReleaseEvent,
    RunReport,
)
from rbr.pipeline.targets import LINUX_MUSL, MACOS, WINDOWS_GNU

EVENT = ReleaseEvent(tag_name="v1.2.3", commit_revision="abc123")


@pytest.fixture
def cli_ctx(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CLIContext:
    ctx = CLIContext(source_root=tmp_path, config=Config(), console=MockConsole())
    monkeypatch.setattr(release_mod, "build_context", lambda **_: ctx)
    return ctx


def _console(ctx: CLIContext) -> MockConsole:
    assert isinstance(ctx.console, MockConsole)
    return ctx.console


def _event_file(tmp_path: Path, action: str) -> Path:
    path = tmp_path / "event.json"
    payload = {"action": action, "release": {"tag_name": "v1.2.3", "target_commitish": "main"}}
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _done(target) -> BranchOutcome:
    return BranchOutcome(target=target, state=BranchState.DONE, history=(BranchState.DONE,))


def test_package_writes_archive_and_sidecar(cli_ctx: CLIContext, tmp_path: Path) -> None:
    binary = tmp_path / "replibyte"
    binary.write_bytes(b"bin")
    out = tmp_path / "dist"

    release_mod.package(
        platform="macos", binary=binary, tag="v1.2.3", out=out, source=tmp_path, config=None
    )

    assert (out / "replibyte_v1.2.3_x86_64-apple-darwin.zip").is_file()
    assert (out / "replibyte_v1.2.3_x86_64-apple-darwin.zip.sha256sum").is_file()
    assert not _console(cli_ctx).has_error()


def test_package_missing_binary(cli_ctx: CLIContext, tmp_path: Path) -> None:
    with pytest.raises(typer.Exit) as exc:
        release_mod.package(
            platform="linux",
            binary=tmp_path / "nope",
            tag="v1.2.3",
            out=tmp_path / "dist",
            source=tmp_path,
            config=None,
        )
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_verify_detects_tampering(cli_ctx: CLIContext, tmp_path: Path) -> None:
    binary = tmp_path / "replibyte"
    binary.write_bytes(b"bin")
    out = tmp_path / "dist"
    release_mod.package(
        platform="linux", binary=binary, tag="v1.2.3", out=out, source=tmp_path, config=None
    )
    archive = out / "replibyte_v1.2.3_x86_64-unknown-linux-musl.tar.gz"

    release_mod.verify(archive=archive)

    archive.write_bytes(b"corrupted")
    with pytest.raises(typer.Exit) as exc:
        release_mod.verify(archive=archive)
    assert exc.value.exit_code == int(ErrorCode.PACKAGING_ERROR)
    assert _console(cli_ctx).find("checksum mismatch")


def test_run_rejects_non_release_action(cli_ctx: CLIContext, tmp_path: Path) -> None:
    with pytest.raises(typer.Exit) as exc:
        release_mod.run(
            event=_event_file(tmp_path, "deleted"),
            event_name="release",
            revision="abc",
            source=tmp_path,
            config=None,
            force=None,
        )
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert _console(cli_ctx).find("release event rejected")


def test_run_success_exits_zero(
    cli_ctx: CLIContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: list[ReleaseEvent] = []

    def fake_run_release(ctx, console):
        seen.append(ctx.event)
        return RunReport(
            event=ctx.event,
            outcomes=(_done(LINUX_MUSL), _done(WINDOWS_GNU), _done(MACOS)),
            formula=Ok(FormulaBumpSkipped(tag=ctx.event.tag_name)),
        )

    monkeypatch.setattr(release_mod, "run_release", fake_run_release)

    with pytest.raises(typer.Exit) as exc:
        release_mod.run(
            event=_event_file(tmp_path, "published"),
            event_name="release",
            revision="abc",
            source=tmp_path,
            config=None,
            force=None,
        )

    assert exc.value.exit_code == 0
    assert seen == [ReleaseEvent(tag_name="v1.2.3", commit_revision="abc")]
    assert _console(cli_ctx).find("formula: already requested")


class TestReportExitCode:
    def test_branch_failure_wins(self, cli_ctx: CLIContext) -> None:
        failed = BranchOutcome(
            target=WINDOWS_GNU,
            state=BranchState.FAILED,
            history=(BranchState.FAILED,),
            error=BuildFailure(platform="windows", kind="compile_failed", message="boom"),
        )
        report = RunReport(
            event=EVENT,
            outcomes=(_done(LINUX_MUSL), failed, _done(MACOS)),
            formula=Err(FormulaBumpFailure(kind="submit_failed", message="x")),
        )
        assert release_mod._report(cli_ctx, report) == int(ErrorCode.BUILD_ERROR)

    def test_formula_failure_alone(self, cli_ctx: CLIContext) -> None:
        report = RunReport(
            event=EVENT,
            outcomes=(_done(LINUX_MUSL), _done(WINDOWS_GNU), _done(MACOS)),
            formula=Err(FormulaBumpFailure(kind="submit_failed", message="x")),
        )
        assert release_mod._report(cli_ctx, report) == int(ErrorCode.FORMULA_ERROR)

    def test_formula_not_requested(self, cli_ctx: CLIContext) -> None:
        report = RunReport(event=EVENT, outcomes=(_done(LINUX_MUSL),))
        assert release_mod._report(cli_ctx, report) == int(ErrorCode.OK)
        assert _console(cli_ctx).find("formula: not requested")


def test_branch_unknown_platform(cli_ctx: CLIContext, tmp_path: Path) -> None:
    with pytest.raises(typer.Exit) as exc:
        release_mod.branch(
            platform="freebsd",
            event=_event_file(tmp_path, "published"),
            event_name=None,
            revision="abc",
            source=tmp_path,
            config=None,
        )
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_version_flag() -> None:
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
