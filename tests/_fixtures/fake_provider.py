"""In-memory diff provider for pipeline tests."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from monomatrix.git.compare import ComparePage


class FakeDiffProvider:
    """Serves pre-baked comparison pages and records every request."""

    def __init__(self, pages: Sequence[Sequence[str]], *, status: str = "ahead") -> None:
        self._pages = [list(page) for page in pages] or [[]]
        self._status = status
        self.calls: List[Tuple[str, str, int]] = []

    async def compare_page(self, base: str, head: str, page: int) -> ComparePage:
        self.calls.append((base, head, page))
        files = self._pages[page - 1]
        return ComparePage(
            status=self._status,
            files=files,
            has_next=page < len(self._pages),
        )


__all__ = ["FakeDiffProvider"]
