"""Linear GraphQL client: issue lookup by PR attachment, labels, attachments, states."""

import logging
from typing import Any, Dict, List

import requests

from release_linker.models import IssueState, LabelParent, LinearIssue, LinearLabel

LOG = logging.getLogger("release_linker.adapters.linear")

ISSUE_BY_ATTACHMENT_URL_QUERY = """
query GetIssueByPullRequestUrl($prUrl: String!) {
  attachments(filter: { url: { eq: $prUrl } }) {
    nodes {
      id
      url
      issue {
        id
        identifier
        title
        labels(first: 50) { nodes { id name parent { id name } } }
      }
    }
  }
}
"""

LABELS_BY_NAME_QUERY = """
query FindLabels($name: String!) {
  issueLabels(filter: { name: { eq: $name } }) {
    nodes { id name parent { id name } }
  }
}
"""

LABEL_CREATE_MUTATION = """
mutation CreateLabel($input: IssueLabelCreateInput!) {
  issueLabelCreate(input: $input) {
    success
    issueLabel { id name parent { id name } }
  }
}
"""

ATTACHMENT_CREATE_MUTATION = """
mutation AttachmentCreate($input: AttachmentCreateInput!) {
  attachmentCreate(input: $input) {
    success
    attachment { id title }
  }
}
"""

ISSUE_LABELS_UPDATE_MUTATION = """
mutation UpdateIssueLabels($issueId: String!, $labelIds: [String!]) {
  issueUpdate(id: $issueId, input: { labelIds: $labelIds }) { success }
}
"""

ISSUE_STATE_QUERY = """
query GetIssueState($issueId: String!, $stateName: String!) {
  issue(id: $issueId) {
    id
    state { id name }
    team {
      id
      states(filter: { name: { eq: $stateName } }) { nodes { id name } }
    }
  }
}
"""

ISSUE_STATE_UPDATE_MUTATION = """
mutation MoveIssue($issueId: String!, $stateId: String!) {
  issueUpdate(id: $issueId, input: { stateId: $stateId }) { success }
}
"""


class LinearAPIError(Exception):
    """Raised when a Linear API call fails (transport, HTTP or GraphQL)."""

    pass


def _label_from_api(data: Dict[str, Any]) -> LinearLabel:
    parent = data.get("parent")
    return LinearLabel(
        id=data["id"],
        name=data.get("name") or "",
        parent=LabelParent(id=parent["id"], name=parent.get("name") or "") if parent else None,
    )


class LinearClient:
    """Thin Linear GraphQL client; every call is a single request."""

    def __init__(self, api_key: str | None, api_url: str = "https://api.linear.app/graphql") -> None:
        self.api_url = api_url
        self._session = requests.Session()
        self._session.headers["Content-Type"] = "application/json"
        if api_key:
            # Personal API keys go in as-is, without a Bearer prefix
            self._session.headers["Authorization"] = api_key

    def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self._session.post(self.api_url, json={"query": query, "variables": variables}, timeout=30)
        except requests.RequestException as e:
            raise LinearAPIError(f"Linear request failed: {e}") from e
        if resp.status_code >= 400:
            raise LinearAPIError(f"Linear API error {resp.status_code}: {resp.text}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise LinearAPIError(f"Linear API returned invalid JSON: {e}") from e
        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            raise LinearAPIError(f"Linear GraphQL error: {messages}")
        return payload.get("data") or {}

    def find_issue_by_pull_request_url(self, pr_url: str) -> LinearIssue | None:
        """Return the issue the PR is attached to, or None if it is not linked."""
        data = self._execute(ISSUE_BY_ATTACHMENT_URL_QUERY, {"prUrl": pr_url})
        nodes = (data.get("attachments") or {}).get("nodes") or []
        for node in nodes:
            issue = node.get("issue")
            if not issue:
                continue
            labels = (issue.get("labels") or {}).get("nodes") or []
            LOG.info("Found Linear issue %s for PR: %s", issue["identifier"], pr_url)
            return LinearIssue(
                id=issue["id"],
                identifier=issue["identifier"],
                title=issue.get("title") or "",
                labels=[_label_from_api(lb) for lb in labels],
            )
        LOG.info("No Linear issue found linked to PR: %s", pr_url)
        return None

    def find_labels_by_name(self, name: str) -> List[LinearLabel]:
        """All labels (any group) with exactly this name."""
        data = self._execute(LABELS_BY_NAME_QUERY, {"name": name})
        nodes = (data.get("issueLabels") or {}).get("nodes") or []
        return [_label_from_api(n) for n in nodes]

    def create_label(self, name: str, parent_id: str | None = None, is_group: bool = False) -> LinearLabel:
        """Create a label (or label group); raise LinearAPIError unless it succeeds."""
        label_input: Dict[str, Any] = {"name": name}
        if parent_id:
            label_input["parentId"] = parent_id
        if is_group:
            label_input["isGroup"] = True
        data = self._execute(LABEL_CREATE_MUTATION, {"input": label_input})
        payload = data.get("issueLabelCreate") or {}
        if not payload.get("success") or not payload.get("issueLabel"):
            raise LinearAPIError(f"Failed to create Linear label '{name}'")
        return _label_from_api(payload["issueLabel"])

    def attach_link(
        self,
        issue_id: str,
        url: str,
        title: str,
        subtitle: str,
        metadata: Dict[str, Any] | None = None,
        icon_url: str | None = None,
    ) -> bool:
        """Attach url to the issue. Linear upserts by (issue, url), so repeats are harmless."""
        attachment_input: Dict[str, Any] = {
            "issueId": issue_id,
            "url": url,
            "title": title,
            "subtitle": subtitle,
            "metadata": metadata or {},
        }
        if icon_url:
            attachment_input["iconUrl"] = icon_url
        data = self._execute(ATTACHMENT_CREATE_MUTATION, {"input": attachment_input})
        return (data.get("attachmentCreate") or {}).get("success") is True

    def update_issue_labels(self, issue_id: str, label_ids: List[str]) -> bool:
        """Replace the issue's label set with label_ids."""
        data = self._execute(ISSUE_LABELS_UPDATE_MUTATION, {"issueId": issue_id, "labelIds": label_ids})
        return (data.get("issueUpdate") or {}).get("success") is True

    def get_issue_state(self, issue_id: str, target_state_name: str) -> IssueState | None:
        """Current state of the issue and its team's state named target_state_name.

        Returns None when the issue cannot be loaded.
        """
        data = self._execute(ISSUE_STATE_QUERY, {"issueId": issue_id, "stateName": target_state_name})
        issue = data.get("issue")
        if not issue:
            return None
        state = issue.get("state") or {}
        targets = (((issue.get("team") or {}).get("states") or {}).get("nodes")) or []
        target = targets[0] if targets else {}
        return IssueState(
            issue_id=issue["id"],
            current_name=state.get("name"),
            target_id=target.get("id"),
            target_name=target.get("name"),
        )

    def update_issue_state(self, issue_id: str, state_id: str) -> bool:
        """Move the issue to state_id."""
        data = self._execute(ISSUE_STATE_UPDATE_MUTATION, {"issueId": issue_id, "stateId": state_id})
        return (data.get("issueUpdate") or {}).get("success") is True
