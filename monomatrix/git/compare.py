"""Commit range comparison against a version-control host."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from ..logging import get_logger
from ..models import CommitRange, MonomatrixError

AHEAD = "ahead"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_PER_PAGE = 100
# The compare endpoint lists at most this many files and pages through commits only.
GITHUB_COMPARE_FILE_LIMIT = 300


class RangeDirectionError(MonomatrixError):
    """Raised when the host does not report the head as ahead of the base."""

    def __init__(self, commit_range: CommitRange, status: str) -> None:
        super().__init__(
            f"Expected {commit_range.head} to be ahead of {commit_range.base}, "
            f"but the comparison status is {status!r}"
        )
        self.commit_range = commit_range
        self.status = status


class HostAPIError(MonomatrixError):
    """Raised when the host cannot be queried for a comparison."""


@dataclass(frozen=True)
class ComparePage:
    """One page of a commit comparison."""

    status: str
    files: Sequence[str]
    has_next: bool = False


class DiffProvider(Protocol):
    """Capability answering "which files differ between two commits"."""

    async def compare_page(self, base: str, head: str, page: int) -> ComparePage:
        ...


class ChangeFetcher:
    """Collects every changed path of a forward-moving commit range."""

    def __init__(self, provider: DiffProvider) -> None:
        self._provider = provider
        self.logger = get_logger("compare")

    async def fetch(self, commit_range: CommitRange) -> List[str]:
        files: List[str] = []
        page = 1
        while True:
            result = await self._provider.compare_page(
                commit_range.base, commit_range.head, page
            )
            self.logger.debug(
                "Status: %s (page %d, %d files)", result.status, page, len(result.files)
            )
            if result.status != AHEAD:
                raise RangeDirectionError(commit_range, result.status)
            files.extend(result.files)
            if not result.has_next:
                break
            page += 1
        self.logger.debug("Fetched %d changed files across %d pages", len(files), page)
        return files


class GitHubCompareProvider:
    """Queries the GitHub REST compare endpoint.

    The endpoint paginates the commit list; every page repeats the same file
    list, capped at ``GITHUB_COMPARE_FILE_LIMIT`` entries. A comparison is
    therefore a single page, and a capped file list is reported as an error
    rather than returned partially.
    """

    def __init__(
        self,
        repository: str,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        per_page: int = DEFAULT_PER_PAGE,
        request_timeout: Optional[float] = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.per_page = per_page
        self._client = httpx.AsyncClient(
            timeout=request_timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "monomatrix",
            },
        )

    async def compare_page(self, base: str, head: str, page: int) -> ComparePage:
        basehead = f"{quote(base, safe='')}...{quote(head, safe='')}"
        url = f"{self.api_url}/repos/{self.repository}/compare/{basehead}"
        try:
            response = await self._client.get(
                url, params={"page": page, "per_page": self.per_page}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise HostAPIError(
                f"GitHub compare request failed with status {exc.response.status_code}: "
                f"{_error_message(exc.response)}"
            ) from exc
        except httpx.HTTPError as exc:
            raise HostAPIError(f"GitHub compare request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise HostAPIError("GitHub compare response was not valid JSON") from exc
        if not isinstance(data, dict):
            raise HostAPIError("GitHub compare response must be a JSON object")

        entries = data.get("files") or []
        if len(entries) >= GITHUB_COMPARE_FILE_LIMIT:
            raise HostAPIError(
                f"GitHub compare lists at most {GITHUB_COMPARE_FILE_LIMIT} changed files and "
                f"{base}...{head} reached that limit; the list may be incomplete. "
                "Use --provider git with a local clone for large ranges."
            )
        files = [
            entry["filename"]
            for entry in entries
            if isinstance(entry, dict) and isinstance(entry.get("filename"), str)
        ]
        status = data.get("status")
        return ComparePage(
            status=status if isinstance(status, str) else "",
            files=files,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubCompareProvider":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class LocalGitProvider:
    """Answers comparisons from a local clone using the git CLI."""

    def __init__(self, repo_path: str | Path = ".", runner: Callable[..., str] | None = None) -> None:
        self._repo = Path(repo_path)
        self._runner = runner or self._default_runner

    async def compare_page(self, base: str, head: str, page: int) -> ComparePage:
        return await asyncio.to_thread(self._compare, base, head)

    def _compare(self, base: str, head: str) -> ComparePage:
        counts = self._run(["git", "rev-list", "--left-right", "--count", f"{base}...{head}"])
        try:
            behind, ahead = (int(value) for value in counts.split())
        except ValueError as exc:
            raise HostAPIError(f"Unexpected git rev-list output: {counts.strip()!r}") from exc
        status = _relationship(behind, ahead)
        files: List[str] = []
        if status == AHEAD:
            output = self._run(["git", "diff", "--name-only", f"{base}..{head}"])
            files = [line.strip() for line in output.splitlines() if line.strip()]
        return ComparePage(status=status, files=files, has_next=False)

    def _run(self, args: Iterable[str]) -> str:
        return self._runner(args, cwd=self._repo, capture_output=True)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        import subprocess

        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd),
                check=True,
                text=True,
                capture_output=capture_output,
            )
        except FileNotFoundError as exc:  # pragma: no cover - depends on environment
            raise HostAPIError("Unable to locate the git executable") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise HostAPIError(f"git exited with code {exc.returncode}: {stderr}") from exc
        return completed.stdout if capture_output else ""


def _relationship(behind: int, ahead: int) -> str:
    if behind and ahead:
        return "diverged"
    if ahead:
        return AHEAD
    if behind:
        return "behind"
    return "identical"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return response.reason_phrase


__all__ = [
    "AHEAD",
    "ChangeFetcher",
    "ComparePage",
    "DiffProvider",
    "GitHubCompareProvider",
    "HostAPIError",
    "LocalGitProvider",
    "RangeDirectionError",
]
