"""
Resolve the set of pull requests that belong to a release.

1. Fetch the release for the tag (missing tag is fatal).
2. Optionally collect references from the release body; when the body has
   none, from platform-generated release notes instead.
3. Find the previous comparable release. If there is one, query associated
   PRs for every commit in previous...current (bounded diff). Otherwise walk
   the tag's entire history page by page (full-history fallback).
4. Return the union as a set of canonical PR URLs.

Any API failure propagates: a truncated set would silently skip issues.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Set

from release_linker.adapters.base import GitPlatformError, ReleaseSource
from release_linker.models import DiscoveryResult, DiscoveryStrategy, Release
from release_linker.services.references import extract_pull_request_urls
from release_linker.services.release_diff import commits_between, find_previous_comparable


class PullRequestDiscovery:
    """Discovers PR URLs for release tags of one repository."""

    def __init__(
        self,
        source: ReleaseSource,
        org: str,
        repo: str,
        use_release_notes: bool = True,
        match_target_commitish: bool = True,
        release_limit: int = 100,
        workers: int = 4,
        log: logging.Logger | None = None,
    ) -> None:
        self.source = source
        self.org = org
        self.repo = repo
        self.use_release_notes = use_release_notes
        self.match_target_commitish = match_target_commitish
        self.release_limit = release_limit
        self.workers = max(1, workers)
        self.log = log or logging.getLogger("release_linker.pr_discovery")

    def discover(self, tag: str) -> DiscoveryResult:
        """Return every PR included in the release tagged tag.

        Raises:
            ReleaseNotFoundError: If the tag has no release.
            GitPlatformError: If any query fails along the way.
        """
        self.log.info("Attempting to fetch PRs for release version: %s from GitHub...", tag)
        current = self.source.get_release_by_tag(self.org, self.repo, tag)

        urls: Set[str] = set()
        if self.use_release_notes:
            urls |= self.from_release_text(current)

        releases = self.source.list_releases(self.org, self.repo, limit=self.release_limit)
        previous = find_previous_comparable(releases, current, match_target=self.match_target_commitish)

        if previous is not None:
            self.log.info("Previous comparable release for %s: %s", tag, previous.tag)
            urls |= self.from_bounded_diff(previous.tag, current.tag)
            strategy = DiscoveryStrategy.BOUNDED_DIFF
        else:
            self.log.info(
                "No previous release of %s targets %s; walking full history",
                tag,
                current.target_commitish or "(unknown)",
            )
            urls |= self.from_full_history(current.tag)
            strategy = DiscoveryStrategy.FULL_HISTORY

        if urls:
            self.log.info("Found %s PR(s) in release %s", len(urls), tag)
        else:
            self.log.info("No PR URLs found for release %s", tag)

        return DiscoveryResult(
            tag=tag,
            strategy=strategy,
            previous_tag=previous.tag if previous is not None else None,
            pull_request_urls=urls,
        )

    def from_release_text(self, release: Release) -> Set[str]:
        """References in the release body, or in generated notes when the body has none."""
        urls = extract_pull_request_urls(release.body, self.org, self.repo)
        if urls:
            self.log.info("Found %s PR reference(s) in release %s description", len(urls), release.tag)
            return urls
        self.log.info("Release %s description has no PR references; generating release notes", release.tag)
        notes = self.source.generate_release_notes(self.org, self.repo, release.tag)
        urls = extract_pull_request_urls(notes, self.org, self.repo)
        self.log.info("Found %s PR reference(s) in generated notes for %s", len(urls), release.tag)
        return urls

    def from_bounded_diff(self, base: str, head: str) -> Set[str]:
        """PRs associated with commits in base...head."""
        shas = commits_between(self.source, self.org, self.repo, base, head)
        return self._associated_pull_requests(shas)

    def from_full_history(self, tag: str) -> Set[str]:
        """PRs associated with every commit reachable from tag."""
        urls: Set[str] = set()
        cursor: str | None = None
        pages = 0
        commits = 0
        while True:
            page = self.source.release_ancestry_page(self.org, self.repo, tag, cursor)
            pages += 1
            commits += len(page.commits)
            for commit in page.commits:
                urls.update(commit.pull_request_urls)
            if not page.has_next_page:
                break
            if not page.next_cursor:
                raise GitPlatformError(f"History of {tag} reports more pages but no cursor (page {pages})")
            cursor = page.next_cursor
            self.log.debug("History of %s: %s page(s), %s commit(s) so far", tag, pages, commits)
        self.log.info("Walked %s commit(s) in %s page(s) for %s", commits, pages, tag)
        return urls

    def _associated_pull_requests(self, shas: List[str]) -> Set[str]:
        urls: Set[str] = set()
        if self.workers == 1 or len(shas) <= 1:
            for sha in shas:
                urls |= self.source.commit_associated_pull_requests(self.org, self.repo, sha)
            return urls
        # Results are merged here, in the calling thread only
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [
                pool.submit(self.source.commit_associated_pull_requests, self.org, self.repo, sha) for sha in shas
            ]
            for future in as_completed(futures):
                urls |= future.result()
        return urls


def discover_pull_requests(source: ReleaseSource, org: str, repo: str, tag: str, **kwargs: object) -> Set[str]:
    """Shortcut: PR URL set for tag (see PullRequestDiscovery for options)."""
    return PullRequestDiscovery(source, org, repo, **kwargs).discover(tag).pull_request_urls
