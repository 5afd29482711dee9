"""CI event parsing and commit range resolution."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .logging import get_logger
from .models import CommitRange

PUSH_EVENTS = frozenset({"push"})
MERGE_PROPOSAL_EVENTS = frozenset({"pull_request", "pull_request_target"})

_LOGGER = get_logger("events")


@dataclass(frozen=True)
class PushEvent:
    """A branch push, delimited by the ref's previous and new tips."""

    before: str
    after: str


@dataclass(frozen=True)
class MergeProposalEvent:
    """A pull/merge request, delimited by its base and head commits."""

    base_commit: str
    head_commit: str


EventContext = Union[PushEvent, MergeProposalEvent]


def resolve(context: Optional[EventContext]) -> Optional[CommitRange]:
    """Return the commit range for an event, or None when the kind is unknown.

    Identifiers are passed through verbatim; they are opaque to monomatrix.
    """
    if isinstance(context, PushEvent):
        return CommitRange(base=context.before, head=context.after)
    if isinstance(context, MergeProposalEvent):
        return CommitRange(base=context.base_commit, head=context.head_commit)
    return None


def event_from_payload(kind: str, payload: Mapping[str, Any]) -> Optional[EventContext]:
    """Build an event context from a webhook event name and payload.

    Unrecognized kinds yield None rather than an error so that workflows
    triggered by other events simply report no changed packages.
    """
    if kind in PUSH_EVENTS:
        return PushEvent(
            before=_as_str(payload.get("before")),
            after=_as_str(payload.get("after")),
        )
    if kind in MERGE_PROPOSAL_EVENTS:
        pull_request = _as_dict(payload.get("pull_request"))
        return MergeProposalEvent(
            base_commit=_as_str(_as_dict(pull_request.get("base")).get("sha")),
            head_commit=_as_str(_as_dict(pull_request.get("head")).get("sha")),
        )
    _LOGGER.debug("Ignoring unrecognized event kind %r", kind)
    return None


def load_event(kind: str, event_path: Path | None) -> Optional[EventContext]:
    """Read the runner's event payload file and parse it for ``kind``."""
    payload: Mapping[str, Any] = {}
    if event_path is not None:
        try:
            loaded = json.loads(event_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise RuntimeError(f"Unable to read event payload {event_path}: {exc}") from exc
        payload = _as_dict(loaded)
    _LOGGER.debug("Payload keys: %s", ",".join(payload.keys()))
    _LOGGER.debug(
        "PullRequest keys: %s", ",".join(_as_dict(payload.get("pull_request")).keys())
    )
    return event_from_payload(kind, payload)


def _as_dict(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


__all__ = [
    "EventContext",
    "MergeProposalEvent",
    "PushEvent",
    "event_from_payload",
    "load_event",
    "resolve",
]
