"""Abstract base for release sources (the Git hosting side of a run)."""

from abc import ABC, abstractmethod
from typing import List, Set

from release_linker.models import AncestryPage, Release


class GitPlatformError(Exception):
    """Raised when a Git platform API call fails."""

    pass


class NotFoundError(GitPlatformError):
    """Raised when the platform answers 404 for a resource."""

    pass


class ReleaseNotFoundError(NotFoundError):
    """Raised when a release (or its tag) does not exist."""

    pass


class ReleaseSource(ABC):
    """Read-only view of a repository's releases and commit graph.

    Every method raises GitPlatformError on failure; an empty result
    always means "legitimately nothing", never "could not determine".
    """

    @abstractmethod
    def get_release_by_tag(self, org: str, repo: str, tag: str) -> Release:
        """Fetch the release for tag; raise ReleaseNotFoundError if missing."""
        ...

    @abstractmethod
    def list_releases(self, org: str, repo: str, limit: int = 100) -> List[Release]:
        """Return up to limit most recent releases."""
        ...

    @abstractmethod
    def compare_commits(self, org: str, repo: str, base: str, head: str) -> List[str]:
        """Return SHAs reachable from head but not from base, oldest first."""
        ...

    @abstractmethod
    def commit_associated_pull_requests(self, org: str, repo: str, sha: str) -> Set[str]:
        """Return canonical URLs of pull requests that introduced the commit."""
        ...

    @abstractmethod
    def release_ancestry_page(self, org: str, repo: str, tag: str, cursor: str | None) -> AncestryPage:
        """Return one page (up to 100 commits) of the tag's history."""
        ...

    @abstractmethod
    def generate_release_notes(self, org: str, repo: str, tag: str) -> str:
        """Ask the platform to generate release notes text for tag."""
        ...
