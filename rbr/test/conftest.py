from __future__ import annotations

from pathlib import Path

import pytest

from rbr.core.config import Config
from rbr.pipeline.context import RunContext
from rbr.pipeline.model import ReleaseEvent

REVISION = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture
def release_event() -> ReleaseEvent:
    return ReleaseEvent(tag_name="v1.2.3", commit_revision=REVISION)


@pytest.fixture
def run_ctx(tmp_path: Path, release_event: ReleaseEvent) -> RunContext:
    return RunContext.create(
        event=release_event,
        config=Config(),
        source_root=tmp_path,
        environ={"PATH": "/usr/bin", "GITHUB_TOKEN": "gh-token", "PERSONAL_TOKEN": "tap-token"},
    )
