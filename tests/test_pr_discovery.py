"""Tests for PullRequestDiscovery (strategy choice, bounding, fallback, failures)."""

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest
from conftest import FakeReleaseSource, pr

from release_linker.adapters.base import GitPlatformError, ReleaseNotFoundError
from release_linker.models import AncestryPage, CommitPullRequests, DiscoveryStrategy, Release
from release_linker.services.pr_discovery import PullRequestDiscovery, discover_pull_requests


def discovery(source: FakeReleaseSource, **kwargs: object) -> PullRequestDiscovery:
    kwargs.setdefault("use_release_notes", False)
    return PullRequestDiscovery(source, "acme", "widgets", **kwargs)


class TestStrategy:
    """Bounded diff when a comparable predecessor exists, full history otherwise."""

    def test_first_release_walks_full_history(self, source: FakeReleaseSource) -> None:
        """No predecessor: result equals PRs of every commit in the tag's ancestry."""
        result = discovery(source).discover("v1.0.0")
        assert result.strategy == DiscoveryStrategy.FULL_HISTORY
        assert result.previous_tag is None
        assert result.pull_request_urls == {pr(1), pr(2), pr(3)}

    def test_full_history_reads_every_page(self, source: FakeReleaseSource) -> None:
        """The fallback follows cursors until the last page."""
        discovery(source).discover("v1.0.0")
        history_calls = [c for c in source.calls if c.startswith("history:")]
        assert history_calls == ["history:v1.0.0:None", "history:v1.0.0:2"]

    def test_bounded_diff_excludes_prior_release_prs(self, source: FakeReleaseSource) -> None:
        """PRs only reachable from the previous tag do not reappear."""
        result = discovery(source).discover("v1.1.0")
        assert result.strategy == DiscoveryStrategy.BOUNDED_DIFF
        assert result.previous_tag == "v1.0.0"
        assert result.pull_request_urls == {pr(4), pr(5)}
        assert not any(c.startswith("history:") for c in source.calls)

    def test_hotfix_release_not_diffed_against_main(self, source: FakeReleaseSource) -> None:
        """A hotfix release with no same-branch predecessor falls back to full history."""
        result = discovery(source).discover("v1.0.1")
        assert result.strategy == DiscoveryStrategy.FULL_HISTORY
        assert result.pull_request_urls == {pr(1), pr(2), pr(3), pr(9)}

    def test_hotfix_diffed_when_target_matching_disabled(self, source: FakeReleaseSource) -> None:
        """match_target_commitish=False pairs the hotfix with v1.0.0."""
        result = discovery(source, match_target_commitish=False).discover("v1.0.1")
        assert result.previous_tag == "v1.0.0"
        assert result.pull_request_urls == {pr(9)}

    def test_main_release_skips_hotfix_predecessor(self, source: FakeReleaseSource) -> None:
        """v1.1.0 diffs against v1.0.0 although v1.0.1 is more recent."""
        discovery(source).discover("v1.1.0")
        assert "compare:v1.0.0...v1.1.0" in source.calls

    def test_parallel_and_sequential_agree(self, source: FakeReleaseSource) -> None:
        """workers only changes scheduling, not the result."""
        parallel = discovery(source, workers=4).discover("v1.1.0").pull_request_urls
        sequential = discovery(source, workers=1).discover("v1.1.0").pull_request_urls
        assert parallel == sequential == {pr(4), pr(5)}

    def test_idempotent(self, source: FakeReleaseSource) -> None:
        """Two runs on an unchanged graph give identical sets."""
        first = discovery(source).discover("v1.1.0").pull_request_urls
        second = discovery(source).discover("v1.1.0").pull_request_urls
        assert first == second
        first_fallback = discovery(source).discover("v1.0.0").pull_request_urls
        assert first_fallback == discovery(source).discover("v1.0.0").pull_request_urls

    def test_shortcut_returns_set(self, source: FakeReleaseSource) -> None:
        """discover_pull_requests returns just the URL set."""
        urls = discover_pull_requests(source, "acme", "widgets", "v1.1.0", use_release_notes=False)
        assert urls == {pr(4), pr(5)}


class TestReleaseText:
    """References in the release body or generated notes are unioned in."""

    def test_body_references_added(self, source: FakeReleaseSource) -> None:
        """Body references join the graph result, deduplicated."""
        source.releases[2] = source.releases[2].model_copy(update={"body": "Includes #5 and #42"})
        result = discovery(source, use_release_notes=True).discover("v1.1.0")
        assert result.pull_request_urls == {pr(4), pr(5), pr(42)}
        assert "notes:v1.1.0" not in source.calls

    def test_empty_body_falls_back_to_generated_notes(self, source: FakeReleaseSource) -> None:
        """A body without references triggers generated notes."""
        source.notes["v1.1.0"] = "* Thing by @a in https://github.com/acme/widgets/pull/77"
        source.releases[2] = source.releases[2].model_copy(update={"body": "Quality release, enjoy!"})
        result = discovery(source, use_release_notes=True).discover("v1.1.0")
        assert "notes:v1.1.0" in source.calls
        assert result.pull_request_urls == {pr(4), pr(5), pr(77)}

    def test_release_text_disabled(self, source: FakeReleaseSource) -> None:
        """use_release_notes=False never generates notes."""
        discovery(source, use_release_notes=False).discover("v1.1.0")
        assert "notes:v1.1.0" not in source.calls


class TestFailures:
    """Failures surface instead of producing a partial set."""

    def test_unknown_tag_is_fatal(self, source: FakeReleaseSource) -> None:
        """A tag without release raises ReleaseNotFoundError."""
        with pytest.raises(ReleaseNotFoundError):
            discovery(source).discover("v9.9.9")

    def test_mid_pagination_failure_propagates(self) -> None:
        """An error on page 2 of the fallback is raised, not swallowed."""
        src = Mock()
        src.get_release_by_tag.return_value = Release(
            tag="v1.0.0", created_at=datetime(2024, 1, 1, tzinfo=UTC), target_commitish="main"
        )
        src.list_releases.return_value = []
        src.release_ancestry_page.side_effect = [
            AncestryPage(
                commits=[CommitPullRequests(sha="a", pull_request_urls=[pr(1)])],
                has_next_page=True,
                next_cursor="abc",
            ),
            GitPlatformError("GitHub GraphQL error 502: Bad Gateway"),
        ]
        with pytest.raises(GitPlatformError, match="502"):
            PullRequestDiscovery(src, "acme", "widgets", use_release_notes=False).discover("v1.0.0")

    def test_next_page_without_cursor_is_error(self) -> None:
        """hasNextPage without a cursor cannot silently stop the walk."""
        src = Mock()
        src.get_release_by_tag.return_value = Release(tag="v1.0.0", created_at=datetime(2024, 1, 1, tzinfo=UTC))
        src.list_releases.return_value = []
        src.release_ancestry_page.return_value = AncestryPage(commits=[], has_next_page=True, next_cursor=None)
        with pytest.raises(GitPlatformError, match="no cursor"):
            PullRequestDiscovery(src, "acme", "widgets", use_release_notes=False).discover("v1.0.0")

    def test_commit_query_failure_propagates(self, source: FakeReleaseSource) -> None:
        """A failing associated-PR query aborts the bounded diff."""
        original = source.commit_associated_pull_requests

        def flaky(org: str, repo: str, sha: str) -> set:
            if sha == "c5":
                raise GitPlatformError("GitHub API error 500: boom")
            return original(org, repo, sha)

        source.commit_associated_pull_requests = flaky
        with pytest.raises(GitPlatformError, match="boom"):
            discovery(source, workers=3).discover("v1.1.0")
