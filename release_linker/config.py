"""Configuration loading from YAML and environment.

Secrets (tokens) are taken from environment variables or from files
(Docker secrets). Never put real tokens in config files committed to the
repo.
"""

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text().strip()
    return None


# Injected by load_config so secret resolution can read env/file
_current_env: dict[str, str] = {}


class ReleaseMode(str, Enum):
    """Which treatment is applied to issues of a release."""

    LABEL = "label"
    LINK = "link"
    BOTH = "both"

    @property
    def does_label(self) -> bool:
        return self in (ReleaseMode.LABEL, ReleaseMode.BOTH)

    @property
    def does_link(self) -> bool:
        return self in (ReleaseMode.LINK, ReleaseMode.BOTH)


class GitHubConfig(BaseSettings):
    """GitHub API settings and target repository."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_", extra="ignore")

    token: str | None = Field(default=None, description="PAT or Actions token; use env or secret file")
    api_url: str = Field(default="https://api.github.com", description="REST API base URL")
    graphql_url: str = Field(default="https://api.github.com/graphql", description="GraphQL endpoint")
    # GitHub Actions sets GITHUB_REPOSITORY=owner/repo
    repository: str = Field(default="", description="Target repo e.g. acme/widgets")


class LinearConfig(BaseSettings):
    """Linear GraphQL API settings."""

    model_config = SettingsConfigDict(env_prefix="LINEAR_", extra="ignore")

    api_key: str | None = Field(default=None, description="Linear API key; use env or secret file")
    api_url: str = Field(default="https://api.linear.app/graphql", description="GraphQL endpoint")


class ReleaseConfig(BaseSettings):
    """What to process and how."""

    model_config = SettingsConfigDict(env_prefix="RELEASE_", extra="ignore")

    tag: str = Field(default="", description="Release tag to process, e.g. v4.9.2")
    mode: ReleaseMode = Field(default=ReleaseMode.BOTH, description="label, link or both")
    transition_done: bool = Field(default=False, description="Move issues from ready_state to done_state")
    ready_state: str = Field(default="Ready", description="State name eligible for the done transition")
    done_state: str = Field(default="Done", description="Team state name to move issues into")
    use_release_notes: bool = Field(
        default=True,
        description="Also collect PR references from the release body (or generated notes)",
    )
    match_target_commitish: bool = Field(
        default=True,
        description="Only diff against prior releases cut from the same branch",
    )
    release_limit: int = Field(default=100, ge=1, description="Most recent releases scanned for a predecessor")
    workers: int = Field(default=4, ge=1, le=32, description="Parallel API requests")
    icon_url: str = Field(
        default="https://cdn-icons-png.flaticon.com/512/870/870107.png",
        description="Icon shown on the release attachment",
    )


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    linear: LinearConfig = Field(default_factory=LinearConfig)
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def github_token_resolved(self) -> str | None:
        """Resolve GitHub token from config, env or Docker secret file."""
        t = self.github.token
        if t and not t.startswith("${"):
            return t
        return _read_secret("GITHUB_TOKEN", "GITHUB_TOKEN_FILE")

    @property
    def linear_api_key_resolved(self) -> str | None:
        """Resolve Linear API key from config, env or Docker secret file."""
        k = self.linear.api_key
        if k and not k.startswith("${"):
            return k
        return _read_secret("LINEAR_API_KEY", "LINEAR_API_KEY_FILE")

    @property
    def owner_and_repo(self) -> tuple[str, str]:
        """Split github.repository into (owner, repo).

        Raises:
            ValueError: If the repository is not in owner/repo form.
        """
        parts = (self.github.repository or "").strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Unable to determine repository information from {self.github.repository!r}")
        return parts[0], parts[1]


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        # Simple $VAR
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    """Return raw[name] without unset values or unresolved ${VAR} placeholders.

    Dropped keys fall back to the section's env var or default.
    """
    section = raw.get(name) or {}
    return {
        k: v
        for k, v in section.items()
        if v is not None and not (isinstance(v, str) and v.startswith("$"))
    }


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    Secrets: GITHUB_TOKEN or GITHUB_TOKEN_FILE, LINEAR_API_KEY or LINEAR_API_KEY_FILE.
    Values given in the YAML file win over env for the same field.
    """
    global _current_env
    import os

    _current_env = dict(os.environ)

    path = config_path or Path("config.yaml")
    if not path.is_file():
        return AppConfig()

    raw = yaml.safe_load(path.read_text()) or {}
    raw = _substitute_env(raw)

    github = GitHubConfig(**_section(raw, "github"))
    linear = LinearConfig(**_section(raw, "linear"))
    release = ReleaseConfig(**_section(raw, "release"))
    logging = LoggingConfig(**_section(raw, "logging"))

    return AppConfig(
        github=github,
        linear=linear,
        release=release,
        logging=logging,
    )
