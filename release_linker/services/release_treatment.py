"""
Apply a release to Linear issues: link attachment, version label, Done transition.

Release labels live in a group per repository: parent "{repo} releases",
child "{version} ({repo})". An issue carries at most one label of the
group, so labelling it for a newer release replaces the older one.
"""

import logging
from typing import List

from release_linker.adapters.linear import LinearAPIError, LinearClient
from release_linker.config import ReleaseMode
from release_linker.models import LabelParent, LinearIssue, LinearLabel
from release_linker.utils import clean_version

RELEASE_URL_TEMPLATE = "https://github.com/{org}/{repo}/releases/tag/{tag}"


def release_label_names(tag: str, repo: str) -> tuple[str, str]:
    """Return (group name, label name) for a release tag of repo."""
    return f"{repo} releases", f"{clean_version(tag)} ({repo})"


def ensure_release_label(
    linear: LinearClient,
    tag: str,
    repo: str,
    log: logging.Logger | None = None,
) -> LinearLabel:
    """Find or create the release label (and its group) for tag.

    Raises:
        LinearAPIError: If lookup fails or the group or label cannot be created.
    """
    logger = log or logging.getLogger("release_linker.release_treatment")
    group_name, label_name = release_label_names(tag, repo)

    logger.info("Looking for parent label group '%s' in Linear...", group_name)
    groups = [lb for lb in linear.find_labels_by_name(group_name) if lb.parent is None]
    if groups:
        group = groups[0]
        logger.info("Found existing parent label group '%s' with ID %s", group_name, group.id)
    else:
        logger.info("Creating parent label group '%s' in Linear...", group_name)
        group = linear.create_label(group_name, is_group=True)

    for label in linear.find_labels_by_name(label_name):
        if label.parent is not None and label.parent.id == group.id:
            logger.info("Found existing label '%s' with ID %s", label_name, label.id)
            return label

    logger.info("Creating label '%s' under group '%s'", label_name, group_name)
    label = linear.create_label(label_name, parent_id=group.id)
    if label.parent is None:
        label = label.model_copy(update={"parent": LabelParent(id=group.id, name=group.name)})
    return label


def labels_with_release(current: List[LinearLabel], release_label: LinearLabel) -> List[str]:
    """Label ids for the issue after adding release_label.

    Other labels of the release label's group are dropped; a label without
    a group is simply appended.
    """
    current_ids = [lb.id for lb in current]
    if release_label.id in current_ids:
        return current_ids
    if release_label.parent is None:
        return current_ids + [release_label.id]
    group_id = release_label.parent.id
    kept = [lb.id for lb in current if lb.parent is None or lb.parent.id != group_id]
    return kept + [release_label.id]


class ReleaseTreatment:
    """Per-issue release treatment for one tag, according to ReleaseMode."""

    def __init__(
        self,
        linear: LinearClient,
        org: str,
        repo: str,
        tag: str,
        mode: ReleaseMode = ReleaseMode.BOTH,
        release_label: LinearLabel | None = None,
        transition_done: bool = False,
        ready_state: str = "Ready",
        done_state: str = "Done",
        icon_url: str | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.linear = linear
        self.org = org
        self.repo = repo
        self.tag = tag
        self.mode = mode
        self.release_label = release_label
        self.transition_done = transition_done
        self.ready_state = ready_state
        self.done_state = done_state
        self.icon_url = icon_url
        self.log = log or logging.getLogger("release_linker.release_treatment")

    @property
    def release_url(self) -> str:
        return RELEASE_URL_TEMPLATE.format(org=self.org, repo=self.repo, tag=self.tag)

    def apply(self, issue: LinearIssue, pr_url: str) -> bool:
        """Run every enabled step on issue; True if link or label succeeded.

        Steps never raise: Linear errors are logged and count as failure of
        that step only. The Done transition does not decide success.
        """
        any_success = False

        if self.mode.does_link:
            self.log.info(
                "Attaching release link %s to Linear issue (%s) linked from PR: %s",
                self.tag,
                issue.identifier,
                pr_url,
            )
            if self.attach_release_link(issue):
                any_success = True
            else:
                self.log.warning("Failed to create attachment for issue %s", issue.identifier)
        else:
            self.log.debug("Skipping link attachment (mode %s)", self.mode.value)

        if self.mode.does_label:
            if self.release_label is None:
                self.log.warning("No release label available; cannot label %s", issue.identifier)
            elif self.add_release_label(issue):
                any_success = True
            else:
                self.log.warning("Failed to apply label to issue %s", issue.identifier)
        else:
            self.log.debug("Skipping label update (mode %s)", self.mode.value)

        if self.transition_done:
            self.move_to_done_if_ready(issue)

        return any_success

    def attach_release_link(self, issue: LinearIssue) -> bool:
        version = clean_version(self.tag)
        try:
            ok = self.linear.attach_link(
                issue.id,
                self.release_url,
                title=f"v{version}",
                subtitle=f"Released in version {self.tag}",
                metadata={"releaseTag": self.tag},
                icon_url=self.icon_url,
            )
        except LinearAPIError as e:
            self.log.warning("Error creating attachment for issue %s: %s", issue.identifier, e)
            return False
        if ok:
            self.log.info('Successfully attached "%s" to Linear issue %s', self.tag, issue.identifier)
        return ok

    def add_release_label(self, issue: LinearIssue) -> bool:
        label = self.release_label
        if label is None:
            return False
        if any(lb.id == label.id for lb in issue.labels):
            self.log.info("Issue %s already has label %s", issue.identifier, label.name)
            return True
        label_ids = labels_with_release(issue.labels, label)
        try:
            ok = self.linear.update_issue_labels(issue.id, label_ids)
        except LinearAPIError as e:
            self.log.warning("Error updating labels on issue %s: %s", issue.identifier, e)
            return False
        if ok:
            self.log.info("Label %s successfully added to issue %s", label.name, issue.identifier)
        return ok

    def move_to_done_if_ready(self, issue: LinearIssue) -> bool:
        """Move issue to done_state if it sits in ready_state.

        Returns True if moved or nothing to do, False on error or when the
        team has no done_state.
        """
        try:
            state = self.linear.get_issue_state(issue.id, self.done_state)
            if state is None:
                self.log.warning("Could not load issue %s to evaluate state transition", issue.identifier)
                return False
            if state.current_name != self.ready_state:
                return True
            if not state.target_id:
                self.log.warning(
                    "%s state not found for issue %s's team; cannot transition",
                    self.done_state,
                    issue.identifier,
                )
                return False
            ok = self.linear.update_issue_state(issue.id, state.target_id)
        except LinearAPIError as e:
            self.log.warning("Error moving issue %s to %s: %s", issue.identifier, self.done_state, e)
            return False
        if ok:
            self.log.info("Moved issue %s from %s to %s", issue.identifier, self.ready_state, self.done_state)
        else:
            self.log.warning("Failed to move issue %s to %s", issue.identifier, self.done_state)
        return ok
