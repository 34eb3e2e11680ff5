from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

import typer

from rbr.core.config import CONFIG_FILE_NAME, Config, load_config, load_config_or_default
from rbr.core.errors import ErrorCode
from rbr.core.result import Err
from rbr.output.console import ConsoleProtocol, RichConsole
from rbr.pipeline.context import RunContext
from rbr.pipeline.model import ReleaseEvent


@dataclass(frozen=True, slots=True)
class CLIContext:
    source_root: Path
    config: Config
    console: ConsoleProtocol

    def run_context(self, event: ReleaseEvent) -> RunContext:
        # Environment is captured once here; branches only see this snapshot.
        return RunContext.create(
            event=event,
            config=self.config,
            source_root=self.source_root,
            environ=os.environ,
        )


def build_context(
    *,
    source: Path = Path("."),
    config_path: Path | None = None,
    force: bool | None = None,
) -> CLIContext:
    console = RichConsole()
    try:
        root = source.expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --source: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if config_path is not None:
        config_result = load_config(config_path)
    else:
        config_result = load_config_or_default(root / CONFIG_FILE_NAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config = config_result.value
    if force is not None:
        config = replace(config, formula=replace(config.formula, force=force))

    return CLIContext(source_root=root, config=config, console=console)
