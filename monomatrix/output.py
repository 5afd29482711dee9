"""Emission of the package matrix to the CI orchestrator."""

from __future__ import annotations

import json
import sys
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, TextIO

from .logging import workflow_command
from .models import PackageDescriptor


def build_matrix(packages: Iterable[PackageDescriptor]) -> Dict[str, List[Dict[str, str]]]:
    """Return a build-matrix ``include`` list for the given packages."""
    return {"include": [package.as_dict() for package in packages]}


def build_outputs(packages: Iterable[PackageDescriptor]) -> Dict[str, str]:
    packages = list(packages)
    return {
        "matrix": json.dumps(build_matrix(packages), separators=(",", ":")),
        "packages": json.dumps([package.name for package in packages], separators=(",", ":")),
        "changed": str(len(packages)),
    }


def write_outputs(
    outputs: Mapping[str, str],
    path: Optional[Path] = None,
    *,
    stream: Optional[TextIO] = None,
) -> None:
    """Append outputs to the ``GITHUB_OUTPUT`` file, or print them when unset."""
    if path is None:
        target = stream or sys.stdout
        for key, value in outputs.items():
            target.write(f"{key}={value}\n")
        return
    with path.open("a", encoding="utf-8") as handle:
        for key, value in outputs.items():
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                handle.write(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                handle.write(f"{key}={value}\n")


def format_failure(message: str) -> str:
    """Render a workflow ``::error::`` command for ``message``."""
    return workflow_command("error", message)


__all__ = ["build_matrix", "build_outputs", "format_failure", "write_outputs"]
