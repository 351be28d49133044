"""Shared fixtures: an in-memory release source with a small commit graph."""

from datetime import UTC, datetime
from typing import Dict, List, Set

import pytest

from release_linker.adapters.base import ReleaseNotFoundError, ReleaseSource
from release_linker.models import AncestryPage, CommitPullRequests, Release

ORG = "acme"
REPO = "widgets"


def pr(number: int) -> str:
    """Canonical PR URL in acme/widgets."""
    return f"https://github.com/{ORG}/{REPO}/pull/{number}"


class FakeReleaseSource(ReleaseSource):
    """ReleaseSource over a hand-built commit graph (child -> parents)."""

    def __init__(
        self,
        releases: List[Release],
        tags: Dict[str, str],
        parents: Dict[str, List[str]],
        prs: Dict[str, Set[str]],
        notes: Dict[str, str] | None = None,
        page_size: int = 2,
    ) -> None:
        self.releases = releases
        self.tags = tags
        self.parents = parents
        self.prs = prs
        self.notes = notes or {}
        self.page_size = page_size
        self.calls: List[str] = []

    def _ancestors(self, sha: str) -> List[str]:
        seen: List[str] = []
        stack = [sha]
        while stack:
            cur = stack.pop()
            if cur in seen:
                continue
            seen.append(cur)
            stack.extend(self.parents.get(cur, []))
        return seen

    def get_release_by_tag(self, org: str, repo: str, tag: str) -> Release:
        self.calls.append(f"release:{tag}")
        for r in self.releases:
            if r.tag == tag:
                return r
        raise ReleaseNotFoundError(f"Release tag '{tag}' not found")

    def list_releases(self, org: str, repo: str, limit: int = 100) -> List[Release]:
        self.calls.append("list_releases")
        return sorted(self.releases, key=lambda r: r.created_at, reverse=True)[:limit]

    def compare_commits(self, org: str, repo: str, base: str, head: str) -> List[str]:
        self.calls.append(f"compare:{base}...{head}")
        excluded = set(self._ancestors(self.tags[base]))
        return [s for s in reversed(self._ancestors(self.tags[head])) if s not in excluded]

    def commit_associated_pull_requests(self, org: str, repo: str, sha: str) -> Set[str]:
        self.calls.append(f"pulls:{sha}")
        return set(self.prs.get(sha, set()))

    def release_ancestry_page(self, org: str, repo: str, tag: str, cursor: str | None) -> AncestryPage:
        self.calls.append(f"history:{tag}:{cursor}")
        if tag not in self.tags:
            raise ReleaseNotFoundError(f"Tag '{tag}' not found")
        history = self._ancestors(self.tags[tag])
        start = int(cursor) if cursor else 0
        chunk = history[start : start + self.page_size]
        end = start + len(chunk)
        return AncestryPage(
            commits=[CommitPullRequests(sha=s, pull_request_urls=sorted(self.prs.get(s, set()))) for s in chunk],
            has_next_page=end < len(history),
            next_cursor=str(end) if end < len(history) else None,
        )

    def generate_release_notes(self, org: str, repo: str, tag: str) -> str:
        self.calls.append(f"notes:{tag}")
        return self.notes.get(tag, "")


def _at(day: int) -> datetime:
    return datetime(2024, 3, day, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def source() -> FakeReleaseSource:
    """History: c1 <- c2 <- c3 (v1.0.0) <- c4 <- c5 (v1.1.0) on main,
    plus h1 (v1.0.1) on a hotfix branch off c3.

    PRs: c1 -> #1, c2 -> #2, c3 -> #3, c4 -> #4, c5 -> #5 and #4, h1 -> #9.
    """
    releases = [
        Release(tag="v1.0.0", created_at=_at(1), target_commitish="main"),
        Release(tag="v1.0.1", created_at=_at(5), target_commitish="hotfix/1.0"),
        Release(tag="v1.1.0", created_at=_at(10), target_commitish="main"),
    ]
    return FakeReleaseSource(
        releases=releases,
        tags={"v1.0.0": "c3", "v1.0.1": "h1", "v1.1.0": "c5"},
        parents={"c2": ["c1"], "c3": ["c2"], "c4": ["c3"], "c5": ["c4"], "h1": ["c3"]},
        prs={
            "c1": {pr(1)},
            "c2": {pr(2)},
            "c3": {pr(3)},
            "c4": {pr(4)},
            "c5": {pr(5), pr(4)},
            "h1": {pr(9)},
        },
    )
