"""Tests for event parsing and commit range resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from monomatrix.events import (
    MergeProposalEvent,
    PushEvent,
    event_from_payload,
    load_event,
    resolve,
)
from monomatrix.models import CommitRange


def test_resolve_push_uses_before_and_after_verbatim() -> None:
    event = PushEvent(before="0123abc", after="feedbeef")

    assert resolve(event) == CommitRange(base="0123abc", head="feedbeef")


def test_resolve_merge_proposal_uses_base_and_head_commits() -> None:
    event = MergeProposalEvent(base_commit="main-sha", head_commit="topic-sha")

    assert resolve(event) == CommitRange(base="main-sha", head="topic-sha")


def test_resolve_returns_none_without_event() -> None:
    assert resolve(None) is None


def test_event_from_payload_parses_push() -> None:
    event = event_from_payload("push", {"before": "a1", "after": "b2", "ref": "refs/heads/main"})

    assert event == PushEvent(before="a1", after="b2")


@pytest.mark.parametrize("kind", ["pull_request", "pull_request_target"])
def test_event_from_payload_parses_pull_requests(kind: str) -> None:
    payload = {
        "before": "ignored",
        "after": "ignored",
        "pull_request": {"number": 7, "base": {"sha": "base1"}, "head": {"sha": "head1"}},
    }

    event = event_from_payload(kind, payload)

    assert event == MergeProposalEvent(base_commit="base1", head_commit="head1")


@pytest.mark.parametrize("kind", ["workflow_dispatch", "schedule", "", "PUSH"])
def test_event_from_payload_ignores_unrecognized_kinds(kind: str) -> None:
    assert event_from_payload(kind, {"before": "a", "after": "b"}) is None


def test_load_event_reads_payload_file(write_event) -> None:  # type: ignore[no-untyped-def]
    path = write_event({"before": "c0ffee", "after": "decade"})

    assert load_event("push", path) == PushEvent(before="c0ffee", after="decade")


def test_load_event_without_payload_file() -> None:
    assert load_event("push", None) == PushEvent(before="", after="")
    assert load_event("release", None) is None


def test_load_event_rejects_unreadable_payload(tmp_path: Path) -> None:
    path = tmp_path / "event.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RuntimeError, match="Unable to read event payload"):
        load_event("push", path)
