"""Homebrew formula bump.

Runs once per release, after the macOS branch has published. The request
reuses the run's tag and revision as-is.

With ``force`` off, an already-open bump PR for the same version is a soft
skip (:class:`FormulaBumpSkipped`); with ``force`` on, a new request is
submitted regardless and brew's own duplicate check is overridden.
"""

from __future__ import annotations

import json
import re

from rbr.core.result import Err, Ok, Result
from rbr.core.structured import as_obj_list, as_str_dict, get_str
from rbr.output.console import ConsoleProtocol, Style
from rbr.pipeline.context import RunContext
from rbr.pipeline.errors import FormulaBumpFailure, FormulaBumpSkipped
from rbr.pipeline.model import FormulaBumpResult, FormulaBumpSubmitted, FormulaUpdateRequest
from rbr.pipeline.timeouts import BREW_TIMEOUT_SECONDS, GH_TIMEOUT_SECONDS
from rbr.platform.process import run as run_process

_PR_URL_RE = re.compile(r"https://github\.com/[^\s]+/pull/\d+")


def formula_request(ctx: RunContext, *, force: bool | None = None) -> FormulaUpdateRequest:
    return FormulaUpdateRequest(
        tap=ctx.config.formula.tap,
        formula_name=ctx.config.formula.name,
        tag=ctx.event.tag_name,
        revision=ctx.event.commit_revision,
        force=ctx.config.formula.force if force is None else force,
    )


def brew_tap_name(tap: str) -> str:
    """``Owner/homebrew-name`` -> ``owner/name`` (brew's tap naming)."""
    owner, _, repo = tap.partition("/")
    return f"{owner.lower()}/{repo.lower().removeprefix('homebrew-')}"


def _title_mentions(title: str, formula: str, tag: str) -> bool:
    words = re.split(r"[\s:]+", title.lower())
    versions = {tag.lower(), tag.lower().removeprefix("v")}
    return formula.lower() in words and any(v in words for v in versions)


def find_open_bump(
    ctx: RunContext, request: FormulaUpdateRequest, *, token: str
) -> Result[str | None, FormulaBumpFailure]:
    """URL of an open PR already bumping to ``request.tag``, if any."""
    version = request.tag.removeprefix("v")
    cmd = [
        "gh",
        "pr",
        "list",
        "--repo",
        request.tap,
        "--state",
        "open",
        "--search",
        f"{request.formula_name} {version} in:title",
        "--json",
        "number,title,url",
    ]
    result = run_process(
        cmd,
        cwd=ctx.source_root,
        env=ctx.child_env(GH_TOKEN=token),
        timeout=GH_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        return Err(
            FormulaBumpFailure(
                kind="lookup_failed",
                message=f"cannot list open pull requests on {request.tap}",
                hint=result.error.tail() or None,
            )
        )

    try:
        obj: object = json.loads(result.value or "[]")
    except json.JSONDecodeError as e:
        return Err(
            FormulaBumpFailure(kind="lookup_failed", message=f"invalid JSON from gh pr list: {e}")
        )

    for item in as_obj_list(obj) or []:
        pr = as_str_dict(item)
        if pr is None:
            continue
        title = get_str(pr, "title") or ""
        if _title_mentions(title, request.formula_name, request.tag):
            return Ok(get_str(pr, "url") or title)
    return Ok(None)


def bump_formula(
    ctx: RunContext, request: FormulaUpdateRequest, console: ConsoleProtocol
) -> Result[FormulaBumpResult, FormulaBumpFailure]:
    """Submit the formula bump, or soft-skip when one is already open."""
    token = ctx.formula_token
    if token is None:
        return Err(
            FormulaBumpFailure(
                kind="auth_missing",
                message=f"{ctx.config.secrets.formula_token_env} is not set",
                hint="a token with 'public_repo' and 'workflow' scopes is required",
            )
        )

    if not request.force:
        existing = find_open_bump(ctx, request, token=token)
        if isinstance(existing, Err):
            return existing
        if existing.value is not None:
            return Ok(FormulaBumpSkipped(tag=request.tag, existing_url=existing.value))

    cmd = [
        "brew",
        "bump-formula-pr",
        "--no-browse",
        f"--tag={request.tag}",
        f"--revision={request.revision}",
    ]
    if request.force:
        cmd.append("--force")
    cmd.append(f"{brew_tap_name(request.tap)}/{request.formula_name}")

    console.print(" ".join(cmd), Style.DIM)
    result = run_process(
        cmd,
        cwd=ctx.source_root,
        env=ctx.child_env(HOMEBREW_GITHUB_API_TOKEN=token, HOMEBREW_NO_AUTO_UPDATE="1"),
        timeout=BREW_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        return Err(
            FormulaBumpFailure(
                kind="submit_failed",
                message=f"brew bump-formula-pr failed (exit {result.error.returncode})",
                hint=result.error.tail() or None,
            )
        )

    match = _PR_URL_RE.search(result.value)
    return Ok(FormulaBumpSubmitted(request=request, url=match.group(0) if match else None))
