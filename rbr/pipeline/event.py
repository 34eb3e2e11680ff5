"""Release trigger ingestion.

The run is driven by a GitHub ``release`` event payload (the JSON file at
``$GITHUB_EVENT_PATH``). Only ``published`` and ``created`` actions start a
run; anything else is an :class:`UnrecognizedEvent`, which stops the whole
run before any branch is started.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

from rbr.core.result import Err, Ok, Result
from rbr.core.structured import as_str_dict, get_str, get_table
from rbr.pipeline.errors import UnrecognizedEvent
from rbr.pipeline.model import ReleaseEvent

RELEASE_EVENT_NAME = "release"
RELEASE_ACTIONS: frozenset[str] = frozenset({"published", "created"})


def parse_release_event(
    payload: Mapping[str, object],
    *,
    event_name: str | None = None,
    revision: str | None = None,
) -> Result[ReleaseEvent, UnrecognizedEvent]:
    """Extract the tag and commit revision from a release event payload.

    Args:
        payload: Decoded event JSON.
        event_name: Workflow event name, checked when known.
        revision: Commit the workflow was triggered for. Falls back to
            ``release.target_commitish``.
    """
    if event_name is not None and event_name != RELEASE_EVENT_NAME:
        return Err(
            UnrecognizedEvent(
                message=f"not a release event: {event_name}",
                hint="this pipeline only runs on release published/created",
            )
        )

    action = get_str(payload, "action")
    if action not in RELEASE_ACTIONS:
        return Err(
            UnrecognizedEvent(
                message=f"unsupported release action: {action or '(missing)'}",
                hint=f"expected one of: {', '.join(sorted(RELEASE_ACTIONS))}",
            )
        )

    release = get_table(payload, "release")
    if release is None:
        return Err(UnrecognizedEvent(message="event payload has no release object"))

    tag = get_str(release, "tag_name")
    if tag is None:
        return Err(UnrecognizedEvent(message="release.tag_name is missing"))
    if "/" in tag or "\\" in tag:
        return Err(
            UnrecognizedEvent(
                message=f"release tag {tag!r} cannot be used in an asset file name",
                hint="tags containing path separators are not supported",
            )
        )

    commit = (revision or "").strip() or get_str(release, "target_commitish")
    if commit is None:
        return Err(
            UnrecognizedEvent(
                message="no commit revision for the release",
                hint="pass --revision or set GITHUB_SHA",
            )
        )

    return Ok(ReleaseEvent(tag_name=tag, commit_revision=commit))


def load_release_event(
    path: Path,
    *,
    event_name: str | None = None,
    revision: str | None = None,
) -> Result[ReleaseEvent, UnrecognizedEvent]:
    """Read and parse an event payload file."""
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(UnrecognizedEvent(message=f"cannot read event payload: {path}", hint=str(e)))
    except json.JSONDecodeError as e:
        return Err(UnrecognizedEvent(message=f"event payload is not valid JSON: {e}"))

    payload = as_str_dict(obj)
    if payload is None:
        return Err(UnrecognizedEvent(message="event payload must be a JSON object"))

    return parse_release_event(payload, event_name=event_name, revision=revision)
