"""Reduce changed file paths to the monorepo packages they belong to."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .globbing import GlobMatcher, GlobPredicate, ShellGlobMatcher, normalize_path
from .logging import get_logger
from .models import ClassificationResult, GlobRuleSet, PackageDescriptor

DEFAULT_ROOT = "/"


@dataclass(frozen=True)
class CompiledRules:
    """Include/exclude predicates ready to be applied to file paths."""

    rules: GlobRuleSet
    include: Optional[GlobPredicate]
    exclude: Optional[GlobPredicate]

    def accepts(self, path: str) -> bool:
        if self.include is not None and not self.include(path):
            return False
        if self.exclude is not None and self.exclude(path):
            return False
        return True


class PackageClassifier:
    """Maps changed files onto package directories below a root path."""

    def __init__(self, matcher: GlobMatcher | None = None) -> None:
        self._matcher = matcher or ShellGlobMatcher()
        self.logger = get_logger("classifier")

    def compile(self, rules: GlobRuleSet) -> CompiledRules:
        """Compile the rule set; raises ``MalformedGlobError`` on invalid globs."""
        include = None if rules.includes_everything else self._matcher.compile(rules.include)
        exclude = self._matcher.compile(rules.exclude) if rules.exclude.strip() else None
        return CompiledRules(rules=rules, include=include, exclude=exclude)

    def classify(
        self,
        files: Iterable[str],
        root: str = DEFAULT_ROOT,
        rules: GlobRuleSet | CompiledRules | None = None,
    ) -> ClassificationResult:
        compiled = self._ensure_compiled(rules)
        files = list(files)
        self.logger.debug("Path: %s", root)
        self.logger.debug("Including glob: %s", compiled.rules.include)
        self.logger.debug("Excluding glob: %s", compiled.rules.exclude or "(none)")
        self.logger.debug("Found %d changed files:", len(files))
        for file in files:
            self.logger.debug("  %s", file)

        base = _normalize_root(root)
        packages: Dict[str, PackageDescriptor] = {}
        for file in files:
            if not compiled.accepts(file):
                continue
            name = package_name(file, base)
            if name is None:
                self.logger.debug("Skipping %s: outside of %s", file, root)
                continue
            if name not in packages:
                packages[name] = PackageDescriptor(name=name, path=posixpath.join(root, name))
        return list(packages.values())

    def _ensure_compiled(self, rules: GlobRuleSet | CompiledRules | None) -> CompiledRules:
        if isinstance(rules, CompiledRules):
            return rules
        return self.compile(rules or GlobRuleSet())


def classify(
    files: Iterable[str],
    root: str = DEFAULT_ROOT,
    rules: GlobRuleSet | None = None,
    matcher: GlobMatcher | None = None,
) -> ClassificationResult:
    """Return the deduplicated packages touched by ``files``."""
    return PackageClassifier(matcher).classify(files, root, rules)


def package_name(path: str, root: str) -> Optional[str]:
    """Return the first segment of ``path`` below the normalized ``root``.

    A file sitting exactly at ``root`` reduces to its own basename. Files
    outside of ``root`` have no package and yield None.
    """
    normalized = normalize_path(path).rstrip("/")
    if not normalized:
        return None
    if not root:
        relative = normalized
    elif normalized == root:
        return posixpath.basename(normalized)
    elif normalized.startswith(root + "/"):
        relative = normalized[len(root) + 1 :]
    else:
        return None
    return relative.split("/", 1)[0]


def _normalize_root(root: str) -> str:
    normalized = normalize_path(root.strip()).strip("/")
    return "" if normalized == "." else normalized


__all__ = ["CompiledRules", "DEFAULT_ROOT", "PackageClassifier", "classify", "package_name"]
