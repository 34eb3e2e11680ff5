"""Release run orchestration.

One branch per build target runs in its own worker thread
(build -> package -> publish, strictly in that order). Branches share no
mutable state: each receives the same immutable :class:`RunContext` and
writes only under its own ``<work_dir>/<platform>`` directory.

The only join is on the macOS branch: the formula bump is requested once,
and only if that branch reached DONE. The other branches never gate it.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor

from rbr.core.result import Err, Result
from rbr.output.console import ConsoleProtocol, PrefixedConsole
from rbr.pipeline.build import build_target
from rbr.pipeline.context import RunContext
from rbr.pipeline.errors import BranchCrashed, BranchError, FormulaBumpFailure
from rbr.pipeline.formula import bump_formula, formula_request
from rbr.pipeline.model import (
    Artifact,
    BranchOutcome,
    BranchState,
    BuildTarget,
    FormulaBumpResult,
    PublishedRelease,
    RunReport,
)
from rbr.pipeline.packaging import package_binary
from rbr.pipeline.publish import publish_artifact
from rbr.pipeline.targets import ALL_TARGETS, FORMULA_GATE_TARGET


def _failed(
    target: BuildTarget,
    history: list[BranchState],
    error: BranchError,
    *,
    artifact: Artifact | None = None,
) -> BranchOutcome:
    history.append(BranchState.FAILED)
    return BranchOutcome(
        target=target,
        state=BranchState.FAILED,
        history=tuple(history),
        artifact=artifact,
        error=error,
    )


def run_branch(ctx: RunContext, target: BuildTarget, console: ConsoleProtocol) -> BranchOutcome:
    """Build, package and publish one target.

    Pending -> Building -> Packaged -> Published -> Done, or Failed from any
    step. Never raises for expected failures; the error is in the outcome.
    """
    out = PrefixedConsole(console, target.platform)
    history = [BranchState.PENDING, BranchState.BUILDING]

    out.info(f"building {target.architecture_triple} at {ctx.event.commit_revision}")
    built = build_target(ctx, target, out)
    if isinstance(built, Err):
        out.error(built.error.message)
        return _failed(target, history, built.error)

    packaged = package_binary(
        built.value,
        binary_name=ctx.config.project.binary_name,
        version=ctx.event.version,
        out_dir=ctx.staging_dir(target),
        sidecar_policy=ctx.config.sidecar_format,
    )
    if isinstance(packaged, Err):
        out.error(packaged.error.message)
        return _failed(target, history, packaged.error)
    artifact = packaged.value
    history.append(BranchState.PACKAGED)
    out.print(f"{artifact.archive_name} sha256 {artifact.checksum.hex_digest}")

    published = publish_artifact(ctx, artifact, out)
    if isinstance(published, Err):
        out.error(published.error.message)
        return _failed(target, history, published.error, artifact=artifact)
    history.append(BranchState.PUBLISHED)

    history.append(BranchState.DONE)
    out.success(f"published {artifact.archive_name}")
    return BranchOutcome(
        target=target,
        state=BranchState.DONE,
        history=tuple(history),
        artifact=artifact,
        release=_own_assets(published.value, artifact),
    )


def _own_assets(release: PublishedRelease, artifact: Artifact) -> PublishedRelease:
    names = frozenset(p.name for p in artifact.asset_paths)
    return PublishedRelease(
        release_id=release.release_id,
        attached_artifacts=release.attached_artifacts & names,
    )


def _collect(target: BuildTarget, future: Future[BranchOutcome]) -> BranchOutcome:
    try:
        return future.result()
    except Exception as e:  # noqa: BLE001
        return BranchOutcome(
            target=target,
            state=BranchState.FAILED,
            history=(BranchState.PENDING, BranchState.FAILED),
            error=BranchCrashed(platform=target.platform, message=f"branch crashed: {e}"),
        )


def run_release(
    ctx: RunContext,
    console: ConsoleProtocol,
    *,
    targets: tuple[BuildTarget, ...] = ALL_TARGETS,
) -> RunReport:
    """Fan out one branch per target, then request the formula bump.

    The formula bump waits for the macOS branch only and runs at most once.
    """
    formula: Result[FormulaBumpResult, FormulaBumpFailure] | None = None
    outcomes: dict[BuildTarget, BranchOutcome] = {}

    with ThreadPoolExecutor(max_workers=len(targets), thread_name_prefix="branch") as pool:
        futures = {target: pool.submit(run_branch, ctx, target, console) for target in targets}

        gate = futures.get(FORMULA_GATE_TARGET)
        if gate is not None:
            gate_outcome = _collect(FORMULA_GATE_TARGET, gate)
            outcomes[FORMULA_GATE_TARGET] = gate_outcome
            if gate_outcome.state is BranchState.DONE:
                out = PrefixedConsole(console, "formula")
                request = formula_request(ctx)
                out.info(f"requesting {request.formula_name} {request.tag} on {request.tap}")
                formula = bump_formula(ctx, request, out)
            else:
                console.warning(
                    f"formula bump not requested: {FORMULA_GATE_TARGET.platform} branch "
                    f"ended {gate_outcome.state.value}"
                )

        for target, future in futures.items():
            if target not in outcomes:
                outcomes[target] = _collect(target, future)

    return RunReport(
        event=ctx.event,
        outcomes=tuple(outcomes[t] for t in targets),
        formula=formula,
    )
