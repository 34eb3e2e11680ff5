"""Per-target compilation of the tagged source.

Each branch works in its own checkout under ``<work_dir>/<platform>/src``
and compiles with the toolchain pinned for its target:

- container targets (linux-musl, macOS): the pinned cross-builder image,
  with the checkout mounted at ``/root/src``
- cross-linker target (windows-gnu): host cargo plus the installed mingw
  linker

A failure here is a :class:`BuildFailure` for that branch only.
"""

from __future__ import annotations

import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path

from rbr.core.result import Err, Ok, Result
from rbr.output.console import ConsoleProtocol, Style
from rbr.pipeline.context import RunContext
from rbr.pipeline.errors import BuildFailure
from rbr.pipeline.model import BuildTarget, Toolchain
from rbr.pipeline.targets import MINGW_LINKER
from rbr.pipeline.timeouts import (
    COMPILE_TIMEOUT_SECONDS,
    GIT_TIMEOUT_SECONDS,
    RUSTUP_TIMEOUT_SECONDS,
)
from rbr.platform.process import run as run_process

CONTAINER_SRC_DIR = "/root/src"


@dataclass(frozen=True, slots=True)
class BuiltBinary:
    target: BuildTarget
    path: Path


@dataclass(frozen=True, slots=True)
class BuildCommand:
    argv: tuple[str, ...]
    # Added to the child environment (not inside the container).
    env: tuple[tuple[str, str], ...] = ()


def build_commands(ctx: RunContext, target: BuildTarget, checkout: Path) -> list[BuildCommand]:
    """Commands that compile ``target`` in ``checkout``, in order."""
    triple = target.architecture_triple
    if target.toolchain is Toolchain.CONTAINER:
        cargo = f"cargo build --release --target {shlex.quote(triple)}"
        argv = [
            "docker",
            "run",
            "--rm",
            "--volume",
            f"{checkout}:{CONTAINER_SRC_DIR}",
            "--workdir",
            CONTAINER_SRC_DIR,
        ]
        for key, value in target.container_env:
            argv.extend(["-e", f"{key}={value}"])
        argv.extend([ctx.config.toolchain.builder_image, "sh", "-c", cargo])
        return [BuildCommand(argv=tuple(argv))]

    linker_var = f"CARGO_TARGET_{triple.upper().replace('-', '_')}_LINKER"
    return [
        BuildCommand(argv=("rustup", "target", "add", triple)),
        BuildCommand(
            argv=("cargo", "build", "--all", "--release", "--target", triple),
            env=((linker_var, MINGW_LINKER),),
        ),
    ]


def expected_binary(target: BuildTarget, checkout: Path, binary_name: str) -> Path:
    return (
        checkout
        / "target"
        / target.architecture_triple
        / "release"
        / f"{binary_name}{target.exe_suffix}"
    )


def prepare_checkout(
    ctx: RunContext, target: BuildTarget, console: ConsoleProtocol
) -> Result[Path, BuildFailure]:
    """Fresh checkout of the tagged revision for this branch only."""
    checkout = ctx.checkout_dir(target)
    try:
        if checkout.exists():
            shutil.rmtree(checkout)
        checkout.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(
            BuildFailure(
                platform=target.platform,
                kind="checkout_failed",
                message=f"cannot reset checkout directory: {checkout}",
                hint=str(e),
            )
        )

    steps = (
        (
            [
                "git",
                "clone",
                "--quiet",
                "--no-hardlinks",
                str(ctx.source_root),
                str(checkout),
            ],
            checkout.parent,
        ),
        (
            ["git", "checkout", "--quiet", "--detach", ctx.event.commit_revision],
            checkout,
        ),
    )
    for cmd, cwd in steps:
        console.print(" ".join(cmd), Style.DIM)
        result = run_process(cmd, cwd=cwd, timeout=GIT_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                BuildFailure(
                    platform=target.platform,
                    kind="checkout_failed",
                    message=f"checkout of {ctx.event.commit_revision} failed",
                    hint=result.error.tail() or None,
                    returncode=result.error.returncode,
                )
            )
    return Ok(checkout)


def build_target(
    ctx: RunContext, target: BuildTarget, console: ConsoleProtocol
) -> Result[BuiltBinary, BuildFailure]:
    """Check out and compile one target.

    Returns:
        Ok(BuiltBinary) with exactly one raw binary
        Err(BuildFailure) on failure
    """
    if target.toolchain is Toolchain.CROSS_LINKER and shutil.which(MINGW_LINKER) is None:
        return Err(
            BuildFailure(
                platform=target.platform,
                kind="toolchain_missing",
                message=f"{MINGW_LINKER}: missing",
                hint="Install the cross linker: apt-get install -y g++-mingw-w64-x86-64",
            )
        )

    checkout = prepare_checkout(ctx, target, console)
    if isinstance(checkout, Err):
        return checkout

    for command in build_commands(ctx, target, checkout.value):
        console.print(" ".join(command.argv), Style.DIM)
        timeout = (
            RUSTUP_TIMEOUT_SECONDS if command.argv[0] == "rustup" else COMPILE_TIMEOUT_SECONDS
        )
        result = run_process(
            list(command.argv),
            cwd=checkout.value,
            env=ctx.child_env(**dict(command.env)),
            timeout=timeout,
        )
        if isinstance(result, Err):
            return Err(
                BuildFailure(
                    platform=target.platform,
                    kind="compile_failed",
                    message=f"build failed (exit {result.error.returncode})",
                    hint=result.error.tail() or None,
                    returncode=result.error.returncode,
                )
            )

    binary = expected_binary(target, checkout.value, ctx.config.project.binary_name)
    if not binary.is_file():
        return Err(
            BuildFailure(
                platform=target.platform,
                kind="output_missing",
                message=f"output not found: {binary}",
            )
        )

    return Ok(BuiltBinary(target=target, path=binary))
