"""Core data contracts shared across monomatrix components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

WILDCARD_ALL = "*"


class MonomatrixError(RuntimeError):
    """Base class for fatal errors that abort a run."""


@dataclass(frozen=True)
class CommitRange:
    """A pair of opaque commit identifiers delimiting a diff."""

    base: str
    head: str


@dataclass(frozen=True)
class GlobRuleSet:
    """Include/exclude globs evaluated against changed file paths."""

    include: str = WILDCARD_ALL
    exclude: str = ""

    @property
    def includes_everything(self) -> bool:
        return self.include.strip() == WILDCARD_ALL


@dataclass(frozen=True)
class PackageDescriptor:
    """An affected monorepo directory treated as one buildable unit."""

    name: str
    path: str

    def as_dict(self) -> dict[str, str]:
        return {"name": self.name, "path": self.path}


ClassificationResult = List[PackageDescriptor]


__all__ = [
    "ClassificationResult",
    "CommitRange",
    "GlobRuleSet",
    "MonomatrixError",
    "PackageDescriptor",
    "WILDCARD_ALL",
]
