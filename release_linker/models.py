"""Data models for releases, commits, Linear issues and run results (Pydantic)."""

from datetime import datetime
from enum import Enum
from typing import List, Set

from pydantic import BaseModel, Field


class Release(BaseModel):
    """Published GitHub release (read-only)."""

    tag: str
    created_at: datetime
    target_commitish: str = ""
    body: str = ""
    draft: bool = False
    prerelease: bool = False
    html_url: str | None = None


class CommitPullRequests(BaseModel):
    """Commit SHA with the canonical URLs of its associated pull requests."""

    sha: str
    pull_request_urls: List[str] = Field(default_factory=list)


class AncestryPage(BaseModel):
    """One page of a tag's commit history."""

    commits: List[CommitPullRequests] = Field(default_factory=list)
    has_next_page: bool = False
    next_cursor: str | None = None


class LabelParent(BaseModel):
    """Parent label group of a Linear label."""

    id: str
    name: str = ""


class LinearLabel(BaseModel):
    """Linear issue label; parent set when the label belongs to a group."""

    id: str
    name: str
    parent: LabelParent | None = None


class LinearIssue(BaseModel):
    """Minimal Linear issue as returned by the attachment lookup."""

    id: str
    identifier: str
    title: str = ""
    labels: List[LinearLabel] = Field(default_factory=list)


class IssueState(BaseModel):
    """Current workflow state of an issue plus the team's target state, if any."""

    issue_id: str
    current_name: str | None = None
    target_id: str | None = None
    target_name: str | None = None


class DiscoveryStrategy(str, Enum):
    """How the commit working set of a release was bounded."""

    BOUNDED_DIFF = "bounded_diff"
    FULL_HISTORY = "full_history"


class DiscoveryResult(BaseModel):
    """Pull requests resolved for one release tag."""

    tag: str
    strategy: DiscoveryStrategy
    previous_tag: str | None = None
    pull_request_urls: Set[str] = Field(default_factory=set)


class ReleaseSummary(BaseModel):
    """Outcome of one release-processing run."""

    tag: str
    pull_request_urls: List[str] = Field(default_factory=list)
    updated_issues: List[str] = Field(default_factory=list, description="Identifiers of updated issues")
    unlinked_pull_requests: List[str] = Field(
        default_factory=list, description="PR URLs with no linked Linear issue"
    )
    failed_issues: List[str] = Field(default_factory=list, description="Identifiers whose treatment failed")
    failed_pull_requests: List[str] = Field(
        default_factory=list, description="PR URLs whose Linear issue lookup failed"
    )

    @property
    def updated_count(self) -> int:
        """Number of issues successfully updated."""
        return len(self.updated_issues)
