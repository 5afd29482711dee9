from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Mapping

import pytest


@pytest.fixture
def write_event(tmp_path: Path) -> Callable[[Mapping[str, Any]], Path]:
    """Write a webhook payload to disk the way the Actions runner does."""

    def _write(payload: Mapping[str, Any]) -> Path:
        path = tmp_path / "event.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
