from __future__ import annotations

import json

from rbr.core.result import Err, Ok, Result
from rbr.core.structured import as_str_dict, get_int, get_list, get_str
from rbr.output.console import ConsoleProtocol, Style
from rbr.pipeline.context import RunContext
from rbr.pipeline.errors import PublishFailure
from rbr.pipeline.model import Artifact, PublishedRelease
from rbr.pipeline.targets import ALL_TARGETS
from rbr.pipeline.timeouts import GH_TIMEOUT_SECONDS, GH_UPLOAD_TIMEOUT_SECONDS
from rbr.platform.process import run as run_process


def _gh_env(ctx: RunContext, token: str) -> dict[str, str]:
    return ctx.child_env(GH_TOKEN=token)


def view_release(
    ctx: RunContext, *, platform: str, token: str
) -> Result[PublishedRelease, PublishFailure]:
    """Current state of the tagged release: id and attached asset names."""
    cmd = [
        "gh",
        "release",
        "view",
        ctx.event.tag_name,
        "--repo",
        ctx.config.project.repo,
        "--json",
        "databaseId,assets",
    ]
    result = run_process(
        cmd, cwd=ctx.source_root, env=_gh_env(ctx, token), timeout=GH_TIMEOUT_SECONDS
    )
    if isinstance(result, Err):
        return Err(
            PublishFailure(
                platform=platform,
                kind="release_lookup_failed",
                message=f"cannot read release {ctx.event.tag_name}",
                hint=result.error.tail() or None,
            )
        )

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            PublishFailure(
                platform=platform,
                kind="release_lookup_failed",
                message=f"invalid JSON from gh release view: {e}",
            )
        )

    data = as_str_dict(obj)
    release_id = get_int(data, "databaseId") if data is not None else None
    if data is None or release_id is None:
        return Err(
            PublishFailure(
                platform=platform,
                kind="release_lookup_failed",
                message="unexpected payload from gh release view",
            )
        )

    release = PublishedRelease(release_id=release_id)
    for item in get_list(data, "assets") or []:
        asset = as_str_dict(item)
        name = get_str(asset, "name") if asset is not None else None
        if name is not None:
            release = release.attach(name)

    return Ok(release)


def _detach(
    ctx: RunContext,
    *,
    platform: str,
    token: str,
    names: tuple[str, ...],
    console: ConsoleProtocol,
) -> None:
    """Remove this branch's assets after a failed upload."""
    current = view_release(ctx, platform=platform, token=token)
    if isinstance(current, Err):
        console.warning(f"could not check for partial upload: {current.error.message}")
        return

    for name in names:
        if name not in current.value.attached_artifacts:
            continue
        cmd = [
            "gh",
            "release",
            "delete-asset",
            ctx.event.tag_name,
            name,
            "--repo",
            ctx.config.project.repo,
            "--yes",
        ]
        console.print(" ".join(cmd), Style.DIM)
        result = run_process(
            cmd, cwd=ctx.source_root, env=_gh_env(ctx, token), timeout=GH_TIMEOUT_SECONDS
        )
        if isinstance(result, Err):
            console.warning(f"partial asset left attached: {name}")


def publish_artifact(
    ctx: RunContext, artifact: Artifact, console: ConsoleProtocol
) -> Result[PublishedRelease, PublishFailure]:
    """Attach the archive and its sidecar to the tagged release.

    ``--clobber`` replaces same-named assets, so re-running a branch never
    duplicates attachments. On failure the branch's assets are removed again.
    """
    platform = _platform_of(artifact)
    token = ctx.publish_token
    if token is None:
        return Err(
            PublishFailure(
                platform=platform,
                kind="auth_missing",
                message=f"{ctx.config.secrets.publish_token_env} is not set",
                hint="a token allowed to upload release assets is required",
            )
        )

    names = tuple(p.name for p in artifact.asset_paths)
    cmd = [
        "gh",
        "release",
        "upload",
        ctx.event.tag_name,
        *(str(p) for p in artifact.asset_paths),
        "--repo",
        ctx.config.project.repo,
        "--clobber",
    ]
    console.print(" ".join(cmd[:4]) + " " + " ".join(names), Style.DIM)
    result = run_process(
        cmd, cwd=ctx.source_root, env=_gh_env(ctx, token), timeout=GH_UPLOAD_TIMEOUT_SECONDS
    )
    if isinstance(result, Err):
        _detach(ctx, platform=platform, token=token, names=names, console=console)
        return Err(
            PublishFailure(
                platform=platform,
                kind="upload_failed",
                message=f"upload to release {ctx.event.tag_name} failed",
                hint=result.error.tail() or None,
            )
        )

    release = view_release(ctx, platform=platform, token=token)
    if isinstance(release, Err):
        _detach(ctx, platform=platform, token=token, names=names, console=console)
        return release

    missing = [n for n in names if n not in release.value.attached_artifacts]
    if missing:
        _detach(ctx, platform=platform, token=token, names=names, console=console)
        return Err(
            PublishFailure(
                platform=platform,
                kind="asset_missing",
                message=f"assets not attached after upload: {', '.join(missing)}",
            )
        )

    return Ok(release.value)


def _platform_of(artifact: Artifact) -> str:
    for target in ALL_TARGETS:
        if target.architecture_triple == artifact.triple:
            return target.platform
    return artifact.triple

