"""GitHub API adapter (REST for releases and compares, GraphQL for history)."""

import logging
from typing import Any, Dict, List, Set
from urllib.parse import quote

import requests

from release_linker.adapters.base import GitPlatformError, NotFoundError, ReleaseNotFoundError, ReleaseSource
from release_linker.models import AncestryPage, CommitPullRequests, Release
from release_linker.services.references import canonical_pull_request_url
from release_linker.utils import parse_iso

PAGE_SIZE = 100
# Associated PRs per commit in the history query; a commit is rarely in more
ASSOCIATED_PRS_PER_COMMIT = 10

LOG = logging.getLogger("release_linker.adapters.github")

ANCESTRY_QUERY = """
query ReleaseAncestry($owner: String!, $name: String!, $ref: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    ref(qualifiedName: $ref) {
      target {
        __typename
        ... on Commit { ...History }
        ... on Tag {
          target {
            __typename
            ... on Commit { ...History }
          }
        }
      }
    }
  }
}

fragment History on Commit {
  history(first: %d, after: $cursor) {
    pageInfo { hasNextPage endCursor }
    nodes {
      oid
      associatedPullRequests(first: %d) {
        nodes { number merged baseRepository { nameWithOwner } }
      }
    }
  }
}
""" % (
    PAGE_SIZE,
    ASSOCIATED_PRS_PER_COMMIT,
)


def _release_from_api(data: Dict[str, Any]) -> Release:
    return Release(
        tag=data["tag_name"],
        created_at=parse_iso(data["created_at"]),
        target_commitish=data.get("target_commitish") or "",
        body=data.get("body") or "",
        draft=bool(data.get("draft")),
        prerelease=bool(data.get("prerelease")),
        html_url=data.get("html_url"),
    )


def _same_repo(full_name: str | None, org: str, repo: str) -> bool:
    return (full_name or "").lower() == f"{org}/{repo}".lower()


class GitHubAdapter(ReleaseSource):
    """GitHub API implementation of ReleaseSource."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str = "https://api.github.com",
        graphql_url: str = "https://api.github.com/graphql",
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.graphql_url = graphql_url
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs: object) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            resp = self._session.request(method, url, timeout=30, **kwargs)
        except requests.RequestException as e:
            raise GitPlatformError(f"GitHub API request failed: {e}") from e
        if resp.status_code == 404:
            raise NotFoundError(f"Not found: {path}")
        if resp.status_code >= 400:
            msg = resp.text
            try:
                data = resp.json()
                if "message" in data:
                    msg = data["message"]
            except Exception:
                pass
            raise GitPlatformError(f"GitHub API error {resp.status_code}: {msg}")
        return resp

    def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """POST a GraphQL query; return its data or raise GitPlatformError."""
        try:
            resp = self._session.post(
                self.graphql_url,
                json={"query": query, "variables": variables},
                timeout=60,
            )
        except requests.RequestException as e:
            raise GitPlatformError(f"GitHub GraphQL request failed: {e}") from e
        if resp.status_code >= 400:
            raise GitPlatformError(f"GitHub GraphQL error {resp.status_code}: {resp.text}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise GitPlatformError(f"GitHub GraphQL returned invalid JSON: {e}") from e
        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            raise GitPlatformError(f"GitHub GraphQL error: {messages}")
        return payload.get("data") or {}

    def get_release_by_tag(self, org: str, repo: str, tag: str) -> Release:
        """Fetch a published release by its tag name.

        Raises:
            ReleaseNotFoundError: If the tag has no release.
            GitPlatformError: On any other API failure.
        """
        path = f"/repos/{org}/{repo}/releases/tags/{quote(tag, safe='')}"
        try:
            resp = self._request("GET", path)
        except NotFoundError as e:
            raise ReleaseNotFoundError(f"Release tag '{tag}' not found in {org}/{repo}") from e
        return _release_from_api(resp.json())

    def list_releases(self, org: str, repo: str, limit: int = 100) -> List[Release]:
        """List the most recent releases (newest first), up to limit."""
        releases: List[Release] = []
        # Page size stays fixed so page offsets line up
        per_page = min(PAGE_SIZE, limit)
        page = 1
        while len(releases) < limit:
            resp = self._request(
                "GET",
                f"/repos/{org}/{repo}/releases",
                params={"per_page": per_page, "page": page},
            )
            data_list = resp.json() or []
            releases.extend(_release_from_api(d) for d in data_list)
            if len(data_list) < per_page:
                break
            page += 1
        return releases[:limit]

    def compare_commits(self, org: str, repo: str, base: str, head: str) -> List[str]:
        """Return commit SHAs in base...head (reachable from head only).

        The compare endpoint pages its commit list; all pages are read.
        """
        path = f"/repos/{org}/{repo}/compare/{quote(base, safe='')}...{quote(head, safe='')}"
        shas: List[str] = []
        page = 1
        while True:
            resp = self._request("GET", path, params={"per_page": PAGE_SIZE, "page": page})
            data = resp.json()
            commits = data.get("commits") or []
            shas.extend(c["sha"] for c in commits)
            total = data.get("total_commits", len(shas))
            if not commits or len(shas) >= total:
                break
            page += 1
        LOG.debug("Compare %s...%s: %s commit(s)", base, head, len(shas))
        return shas

    def commit_associated_pull_requests(self, org: str, repo: str, sha: str) -> Set[str]:
        """Return merged PRs of this repository that contain the commit."""
        resp = self._request("GET", f"/repos/{org}/{repo}/commits/{sha}/pulls", params={"per_page": PAGE_SIZE})
        urls: Set[str] = set()
        for data in resp.json() or []:
            if not data.get("merged_at"):
                continue
            base_repo = (data.get("base") or {}).get("repo") or {}
            if base_repo and not _same_repo(base_repo.get("full_name"), org, repo):
                continue
            urls.add(canonical_pull_request_url(org, repo, data["number"]))
        return urls

    def release_ancestry_page(self, org: str, repo: str, tag: str, cursor: str | None) -> AncestryPage:
        """Return one page of the history of the commit the tag points to.

        Raises:
            ReleaseNotFoundError: If the tag ref does not exist.
            GitPlatformError: On API failure or an unexpected ref target.
        """
        data = self._graphql(
            ANCESTRY_QUERY,
            {"owner": org, "name": repo, "ref": f"refs/tags/{tag}", "cursor": cursor},
        )
        ref = (data.get("repository") or {}).get("ref")
        if not ref:
            raise ReleaseNotFoundError(f"Tag '{tag}' not found in {org}/{repo}")
        target = ref.get("target") or {}
        # Annotated tags point at a Tag object wrapping the commit
        if "history" not in target:
            target = target.get("target") or {}
        history = target.get("history")
        if history is None:
            raise GitPlatformError(f"Tag '{tag}' does not point to a commit")

        commits: List[CommitPullRequests] = []
        for node in history.get("nodes") or []:
            prs = (node.get("associatedPullRequests") or {}).get("nodes") or []
            urls = [
                canonical_pull_request_url(org, repo, pr["number"])
                for pr in prs
                if pr.get("merged") and _same_repo((pr.get("baseRepository") or {}).get("nameWithOwner"), org, repo)
            ]
            commits.append(CommitPullRequests(sha=node["oid"], pull_request_urls=urls))

        page_info = history.get("pageInfo") or {}
        return AncestryPage(
            commits=commits,
            has_next_page=bool(page_info.get("hasNextPage")),
            next_cursor=page_info.get("endCursor"),
        )

    def generate_release_notes(self, org: str, repo: str, tag: str) -> str:
        """Generate release notes for tag (GitHub picks the previous release)."""
        resp = self._request(
            "POST",
            f"/repos/{org}/{repo}/releases/generate-notes",
            json={"tag_name": tag},
        )
        return resp.json().get("body") or ""
