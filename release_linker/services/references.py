"""Pull request references in free-form text (release bodies, generated notes).

Recognized forms, all normalized to the canonical PR URL:

- https://github.com/{org}/{repo}/pull/123
- #123 (not glued to a word on either side, so issue#123abc is ignored)
- {org}/{repo}#123, optionally in parentheses
"""

import re
from typing import Pattern, Set

PULL_URL_TEMPLATE = "https://github.com/{org}/{repo}/pull/{number}"

# Bare #123; the lookarounds reject matches inside longer tokens
_BARE_REF_RE = re.compile(r"(?<!\w)#(\d+)(?!\w)")


def canonical_pull_request_url(org: str, repo: str, number: int | str) -> str:
    """Build the canonical URL for PR number in org/repo (#007 -> 7)."""
    return PULL_URL_TEMPLATE.format(org=org, repo=repo, number=int(number))


def _full_url_re(org: str, repo: str) -> Pattern[str]:
    return re.compile(
        rf"https://github\.com/{re.escape(org)}/{re.escape(repo)}/pull/(\d+)",
        re.IGNORECASE,
    )


def _qualified_ref_re(org: str, repo: str) -> Pattern[str]:
    return re.compile(
        rf"\(?(?<![\w./-]){re.escape(org)}/{re.escape(repo)}#(\d+)(?!\w)\)?",
        re.IGNORECASE,
    )


def extract_pull_request_urls(text: str | None, org: str, repo: str) -> Set[str]:
    """Extract the set of canonical PR URLs referenced in text.

    Args:
        text: Release body or generated notes; None and "" give an empty set.
        org: Repository owner used for matching and for the canonical URL.
        repo: Repository name used for matching and for the canonical URL.

    Returns:
        Set of canonical URLs; a PR mentioned in several forms appears once.
    """
    if not text:
        return set()
    numbers: Set[int] = set()
    for pattern in (_full_url_re(org, repo), _BARE_REF_RE, _qualified_ref_re(org, repo)):
        numbers.update(int(m.group(1)) for m in pattern.finditer(text))
    return {canonical_pull_request_url(org, repo, n) for n in numbers}
