"""
Process one release: discover its PRs, find their Linear issues, apply the treatment.

Issues are handled in parallel per PR. Two PRs linked to the same issue
race on SyncedSet.add_if_absent, so each issue is treated at most once;
a failed treatment gives the claim back so another PR may retry it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List

from release_linker.adapters.base import ReleaseSource
from release_linker.adapters.linear import LinearAPIError, LinearClient
from release_linker.config import AppConfig
from release_linker.models import ReleaseSummary
from release_linker.services.pr_discovery import PullRequestDiscovery
from release_linker.services.release_treatment import ReleaseTreatment, ensure_release_label
from release_linker.utils import SyncedSet


class ReleaseProcessor:
    """Runs the whole release-to-issues flow for the configured tag."""

    def __init__(
        self,
        config: AppConfig,
        source: ReleaseSource,
        linear: LinearClient,
        log: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.linear = linear
        self.log = log or logging.getLogger("release_linker.release_processor")
        self.org, self.repo = config.owner_and_repo

    def run(self, tag: str | None = None) -> ReleaseSummary:
        """Process tag (default: config.release.tag) and return the summary.

        Raises:
            ValueError: If no tag is given or configured.
            GitPlatformError: If PR discovery fails (incl. ReleaseNotFoundError).
            LinearAPIError: If the release label cannot be ensured.
        """
        release_cfg = self.config.release
        tag = tag or release_cfg.tag
        if not tag:
            raise ValueError("No release tag given (release.tag / RELEASE_TAG / --tag)")

        discovery = PullRequestDiscovery(
            self.source,
            self.org,
            self.repo,
            use_release_notes=release_cfg.use_release_notes,
            match_target_commitish=release_cfg.match_target_commitish,
            release_limit=release_cfg.release_limit,
            workers=release_cfg.workers,
        )
        result = discovery.discover(tag)
        pr_urls = sorted(result.pull_request_urls)
        summary = ReleaseSummary(tag=tag, pull_request_urls=pr_urls)

        if not pr_urls:
            self.log.info("No PRs found for release %s. No Linear issues to update.", tag)
            return summary

        mode = release_cfg.mode
        release_label = ensure_release_label(self.linear, tag, self.repo, log=self.log) if mode.does_label else None
        treatment = ReleaseTreatment(
            self.linear,
            self.org,
            self.repo,
            tag,
            mode=mode,
            release_label=release_label,
            transition_done=release_cfg.transition_done,
            ready_state=release_cfg.ready_state,
            done_state=release_cfg.done_state,
            icon_url=release_cfg.icon_url,
        )

        claimed = SyncedSet()
        updated = SyncedSet()
        unlinked = SyncedSet()
        failed = SyncedSet()
        lookup_failed = SyncedSet()

        def process_pull_request(pr_url: str) -> None:
            try:
                issue = self.linear.find_issue_by_pull_request_url(pr_url)
            except LinearAPIError as e:
                self.log.warning("Error querying Linear for PR %s: %s", pr_url, e)
                lookup_failed.add_if_absent(pr_url)
                return
            except Exception:
                self.log.exception("Unexpected error querying Linear for PR %s", pr_url)
                lookup_failed.add_if_absent(pr_url)
                return
            if issue is None:
                unlinked.add_if_absent(pr_url)
                return
            if not claimed.add_if_absent(issue.id):
                self.log.debug("Issue %s already handled via another PR", issue.identifier)
                return
            try:
                ok = treatment.apply(issue, pr_url)
            except Exception:
                self.log.exception("Unexpected error updating issue %s from PR %s", issue.identifier, pr_url)
                ok = False
            if ok:
                updated.add_if_absent(issue.identifier)
            else:
                failed.add_if_absent(issue.identifier)
                claimed.discard(issue.id)

        workers = min(release_cfg.workers, len(pr_urls))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # Workers catch their own errors; list() only drains the results
            list(pool.map(process_pull_request, pr_urls))

        summary.updated_issues = _sorted(updated)
        summary.unlinked_pull_requests = _sorted(unlinked)
        # An issue that failed via one PR but succeeded via another counts as updated
        summary.failed_issues = [i for i in _sorted(failed) if i not in summary.updated_issues]
        summary.failed_pull_requests = _sorted(lookup_failed)

        if summary.updated_count > 0:
            self.log.info("Successfully updated %s Linear issue(s) for release %s.", summary.updated_count, tag)
        else:
            self.log.info("No Linear issues were updated for release %s.", tag)
        return summary


def _sorted(items: SyncedSet) -> List[str]:
    return sorted(str(i) for i in items.snapshot())
