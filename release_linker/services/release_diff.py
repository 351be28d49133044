"""Bound a release's commits by diffing against the previous comparable release."""

import logging
from typing import Iterable, List

from release_linker.adapters.base import ReleaseSource
from release_linker.models import Release

LOG = logging.getLogger("release_linker.release_diff")


def find_previous_comparable(
    releases: Iterable[Release],
    current: Release,
    match_target: bool = True,
) -> Release | None:
    """Return the latest release published strictly before current.

    Drafts and the current tag itself are ignored. With match_target, only
    releases cut from the same target commitish qualify, so a hotfix-branch
    release is never diffed against main. When two candidates share the
    latest timestamp either may be returned.

    Returns:
        The predecessor, or None (first release, or nothing comparable).
    """
    candidates = [
        r
        for r in releases
        if not r.draft
        and r.tag != current.tag
        and r.created_at < current.created_at
        and (not match_target or r.target_commitish == current.target_commitish)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda r: r.created_at)


def commits_between(source: ReleaseSource, org: str, repo: str, base: str, head: str) -> List[str]:
    """Commits reachable from head but not from base (the release's working set)."""
    shas = source.compare_commits(org, repo, base, head)
    LOG.info("Release %s introduces %s commit(s) since %s", head, len(shas), base)
    return shas
