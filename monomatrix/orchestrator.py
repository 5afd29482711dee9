"""Pipeline orchestration: resolve the range, fetch changes, classify packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .classifier import PackageClassifier
from .config import ActionConfig
from .events import EventContext, resolve
from .git.compare import ChangeFetcher, DiffProvider, GitHubCompareProvider, LocalGitProvider
from .globbing import GlobMatcher
from .logging import get_logger
from .models import ClassificationResult, CommitRange, MonomatrixError
from .output import build_matrix


class ThresholdExceededError(MonomatrixError):
    """Raised when more packages changed than ``max-changed`` allows."""

    def __init__(self, changed: int, limit: int) -> None:
        super().__init__(
            f"Number of changes exceeds maxChanges: {changed} packages changed, limit is {limit}"
        )
        self.changed = changed
        self.limit = limit


@dataclass
class RunOutcome:
    """Result of a single pipeline run."""

    commit_range: Optional[CommitRange]
    files: List[str] = field(default_factory=list)
    packages: ClassificationResult = field(default_factory=list)

    @property
    def matrix(self) -> Dict[str, List[Dict[str, str]]]:
        return build_matrix(self.packages)


class Orchestrator:
    """Coordinates a run from event context to classification result."""

    def __init__(
        self,
        provider: DiffProvider | None = None,
        matcher: GlobMatcher | None = None,
    ) -> None:
        self._provider = provider
        self.classifier = PackageClassifier(matcher)
        self.logger = get_logger("orchestrator")

    async def run(self, config: ActionConfig, event: Optional[EventContext]) -> RunOutcome:
        # Compile first so a bad glob fails before any request is made.
        rules = self.classifier.compile(config.rules)

        commit_range = resolve(event)
        if commit_range is None:
            self.logger.info(
                "Event %r does not describe a commit range; no packages changed",
                config.event_name or "(unknown)",
            )
            return RunOutcome(commit_range=None)
        self.logger.info("Comparing %s...%s", commit_range.base, commit_range.head)

        provider = self._provider
        owned = provider is None
        if provider is None:
            provider = build_provider(config)
        try:
            files = await ChangeFetcher(provider).fetch(commit_range)
        finally:
            if owned and isinstance(provider, GitHubCompareProvider):
                await provider.aclose()

        packages = self.classifier.classify(files, config.root, rules)
        self.logger.info(
            "%d changed files map to %d packages: %s",
            len(files),
            len(packages),
            ", ".join(package.name for package in packages) or "(none)",
        )

        if config.max_changed is not None and len(packages) > config.max_changed:
            raise ThresholdExceededError(len(packages), config.max_changed)

        return RunOutcome(commit_range=commit_range, files=files, packages=packages)


def build_provider(config: ActionConfig) -> DiffProvider:
    """Create the diff provider selected by ``config.provider``."""
    if config.provider == "git":
        return LocalGitProvider(config.repo_path)
    return GitHubCompareProvider(
        config.repository or "",
        config.token or "",
        api_url=config.api_url,
        request_timeout=config.request_timeout,
    )


__all__ = ["Orchestrator", "RunOutcome", "ThresholdExceededError", "build_provider"]
