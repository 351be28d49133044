"""Clients for the two remote services: GitHub (release source) and Linear."""

from release_linker.adapters.base import GitPlatformError, NotFoundError, ReleaseNotFoundError, ReleaseSource
from release_linker.adapters.github import GitHubAdapter
from release_linker.adapters.linear import LinearAPIError, LinearClient

__all__ = [
    "GitHubAdapter",
    "GitPlatformError",
    "LinearAPIError",
    "LinearClient",
    "NotFoundError",
    "ReleaseNotFoundError",
    "ReleaseSource",
]
