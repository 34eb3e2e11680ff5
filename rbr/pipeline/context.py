from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from rbr.core.config import Config
from rbr.pipeline.model import BuildTarget, ReleaseEvent


@dataclass(frozen=True, slots=True)
class RunContext:
    """Immutable inputs of one release run.

    Built once before fan-out and handed to every branch. Branches never
    re-read the environment or the config file.
    """

    event: ReleaseEvent
    config: Config
    source_root: Path
    work_dir: Path
    environ: Mapping[str, str]

    @classmethod
    def create(
        cls,
        *,
        event: ReleaseEvent,
        config: Config,
        source_root: Path,
        environ: Mapping[str, str],
    ) -> RunContext:
        root = source_root.resolve()
        return cls(
            event=event,
            config=config,
            source_root=root,
            work_dir=root / config.paths.work_dir,
            environ=MappingProxyType(dict(environ)),
        )

    def branch_dir(self, target: BuildTarget) -> Path:
        return self.work_dir / target.platform

    def checkout_dir(self, target: BuildTarget) -> Path:
        return self.branch_dir(target) / "src"

    def staging_dir(self, target: BuildTarget) -> Path:
        return self.branch_dir(target) / "dist"

    @property
    def publish_token(self) -> str | None:
        return self.environ.get(self.config.secrets.publish_token_env) or None

    @property
    def formula_token(self) -> str | None:
        return self.environ.get(self.config.secrets.formula_token_env) or None

    def child_env(self, **extra: str) -> dict[str, str]:
        """Environment for a child process: the captured one plus ``extra``."""
        env = dict(self.environ)
        env.update(extra)
        return env
