from __future__ import annotations

from pathlib import Path

import typer

from rbr.cli.commands._helpers import exit_with_code, value_or_exit
from rbr.cli.context import CLIContext, build_context
from rbr.core.errors import ErrorCode
from rbr.core.result import Err, Ok
from rbr.output.console import Style
from rbr.output.errors import pipeline_error_exit_code, print_pipeline_error
from rbr.pipeline.build import BuiltBinary
from rbr.pipeline.errors import FormulaBumpSkipped
from rbr.pipeline.event import load_release_event
from rbr.pipeline.formula import bump_formula, formula_request
from rbr.pipeline.model import (
    BranchOutcome,
    BuildTarget,
    FormulaBumpSubmitted,
    ReleaseEvent,
    RunReport,
)
from rbr.pipeline.packaging import package_binary, verify_sidecar
from rbr.pipeline.runner import run_branch, run_release
from rbr.pipeline.targets import platform_names, target_for

_EVENT_OPTION = typer.Option(
    ...,
    "--event",
    envvar="GITHUB_EVENT_PATH",
    help="Release event payload (JSON)",
)
_EVENT_NAME_OPTION = typer.Option(
    None, "--event-name", envvar="GITHUB_EVENT_NAME", help="Triggering event name"
)
_REVISION_OPTION = typer.Option(
    None, "--revision", envvar="GITHUB_SHA", help="Commit revision of the release"
)
_SOURCE_OPTION = typer.Option(Path("."), "--source", help="Source checkout (git repo)")
_CONFIG_OPTION = typer.Option(None, "--config", help="Config file (default: <source>/release.toml)")
_FORCE_OPTION = typer.Option(
    None, "--force/--no-force", help="Submit the formula bump even if one is already open"
)


def _resolve_target(platform: str) -> BuildTarget:
    target = target_for(platform)
    if target is None:
        typer.echo(
            f"error: unknown platform '{platform}' (expected: {', '.join(platform_names())})",
            err=True,
        )
        exit_with_code(int(ErrorCode.USER_ERROR))
    return target


def _load_event(
    ctx: CLIContext, event: Path, event_name: str | None, revision: str | None
) -> ReleaseEvent:
    result = load_release_event(event, event_name=event_name, revision=revision)
    release = value_or_exit(result, ctx)
    ctx.console.info(f"release {release.tag_name} at {release.commit_revision}")
    return release


def _print_outcome(ctx: CLIContext, outcome: BranchOutcome) -> None:
    platform = outcome.target.platform
    if outcome.ok:
        name = outcome.artifact.archive_name if outcome.artifact is not None else "done"
        ctx.console.success(f"{platform}: {name}")
        return
    ctx.console.print(f"{platform}: {outcome.state.value}", Style.ERROR)
    if outcome.error is not None:
        print_pipeline_error(outcome.error, ctx.console)


def _outcome_exit_code(outcome: BranchOutcome) -> int:
    if outcome.ok or outcome.error is None:
        return int(ErrorCode.OK)
    return pipeline_error_exit_code(outcome.error)


def _report(ctx: CLIContext, report: RunReport) -> int:
    ctx.console.header(f"Release {report.event.tag_name}")
    for outcome in report.outcomes:
        _print_outcome(ctx, outcome)

    code = next(
        (_outcome_exit_code(o) for o in report.outcomes if not o.ok),
        int(ErrorCode.OK),
    )

    match report.formula:
        case None:
            ctx.console.print("formula: not requested", Style.DIM)
        case Ok(FormulaBumpSubmitted(url=url)):
            ctx.console.success(f"formula: bump requested {url or ''}".rstrip())
        case Ok(FormulaBumpSkipped(existing_url=url)):
            ctx.console.info(f"formula: already requested {url or ''}".rstrip())
        case Err(error):
            print_pipeline_error(error, ctx.console)
            if code == int(ErrorCode.OK):
                code = pipeline_error_exit_code(error)
    return code


def run(
    event: Path = _EVENT_OPTION,
    event_name: str | None = _EVENT_NAME_OPTION,
    revision: str | None = _REVISION_OPTION,
    source: Path = _SOURCE_OPTION,
    config: Path | None = _CONFIG_OPTION,
    force: bool | None = _FORCE_OPTION,
) -> None:
    """Build, package and publish all targets, then bump the formula."""
    ctx = build_context(source=source, config_path=config, force=force)
    release = _load_event(ctx, event, event_name, revision)
    report = run_release(ctx.run_context(release), ctx.console)
    exit_with_code(_report(ctx, report))


def branch(
    platform: str = typer.Argument(..., help="Target platform: linux, windows or macos"),
    event: Path = _EVENT_OPTION,
    event_name: str | None = _EVENT_NAME_OPTION,
    revision: str | None = _REVISION_OPTION,
    source: Path = _SOURCE_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Run a single branch (build, package, publish) for one target."""
    ctx = build_context(source=source, config_path=config)
    target = _resolve_target(platform)
    release = _load_event(ctx, event, event_name, revision)
    outcome = run_branch(ctx.run_context(release), target, ctx.console)
    _print_outcome(ctx, outcome)
    exit_with_code(_outcome_exit_code(outcome))


def package(
    platform: str = typer.Argument(..., help="Target platform: linux, windows or macos"),
    binary: Path = typer.Option(..., "--binary", help="Prebuilt binary to package"),
    tag: str = typer.Option(..., "--tag", help="Release tag (e.g. v1.2.3)"),
    out: Path = typer.Option(Path("dist"), "--out", help="Output directory"),
    source: Path = _SOURCE_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Package a prebuilt binary into its archive and checksum sidecar."""
    ctx = build_context(source=source, config_path=config)
    target = _resolve_target(platform)
    if not binary.is_file():
        ctx.console.error(f"binary not found: {binary}")
        exit_with_code(int(ErrorCode.USER_ERROR))

    result = package_binary(
        BuiltBinary(target=target, path=binary),
        binary_name=ctx.config.project.binary_name,
        version=tag,
        out_dir=out,
        sidecar_policy=ctx.config.sidecar_format,
    )
    artifact = value_or_exit(result, ctx)
    ctx.console.success(str(artifact.archive_path))
    ctx.console.print(f"sha256 {artifact.checksum.hex_digest}", Style.DIM)


def verify(
    archive: Path = typer.Argument(..., help="Archive to check against its .sha256sum"),
) -> None:
    """Recompute an archive's SHA-256 and compare it with its sidecar."""
    ctx = build_context()
    checksum = value_or_exit(verify_sidecar(archive), ctx)
    ctx.console.success(f"{archive.name}: {checksum.hex_digest}")


def bump_formula_cmd(
    tag: str = typer.Option(..., "--tag", help="Release tag (e.g. v1.2.3)"),
    revision: str = typer.Option(..., "--revision", envvar="GITHUB_SHA", help="Commit revision"),
    source: Path = _SOURCE_OPTION,
    config: Path | None = _CONFIG_OPTION,
    force: bool | None = _FORCE_OPTION,
) -> None:
    """Request the Homebrew formula bump (manual re-run of the last step)."""
    ctx = build_context(source=source, config_path=config, force=force)
    run_ctx = ctx.run_context(ReleaseEvent(tag_name=tag, commit_revision=revision))
    outcome = value_or_exit(bump_formula(run_ctx, formula_request(run_ctx), ctx.console), ctx)
    match outcome:
        case FormulaBumpSkipped(existing_url=url):
            ctx.console.info(f"already requested {url or ''}".rstrip())
        case FormulaBumpSubmitted(url=url):
            ctx.console.success(f"bump requested {url or ''}".rstrip())
