"""release-linker entry point.

Runs once per release event: resolves the PRs of a release tag and applies
the release to their Linear issues. Usage: release-linker --tag v1.2.3.
"""

import argparse
import logging
import sys
from pathlib import Path

from release_linker.adapters.github import GitHubAdapter
from release_linker.adapters.linear import LinearClient
from release_linker.config import AppConfig, ReleaseConfig, ReleaseMode, load_config
from release_linker.logging import ReleaseLinkerLogging
from release_linker.services.release_processor import ReleaseProcessor


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments; flags override config values."""
    parser = argparse.ArgumentParser(
        prog="release-linker",
        description="Link a GitHub release to the Linear issues of its pull requests",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument("--tag", "-t", help="Release tag to process (overrides release.tag)")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ReleaseMode],
        help="label, link or both (overrides release.mode)",
    )
    parser.add_argument(
        "--transition-done",
        action="store_true",
        default=None,
        help="Move issues in the ready state to the done state",
    )
    parser.add_argument("--repository", help="owner/repo (overrides github.repository)")
    parser.add_argument("--workers", type=int, help="Parallel API requests (overrides release.workers)")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    return parser.parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return config with CLI flags applied on top.

    Raises:
        ValueError: If an overridden value fails validation (e.g. --workers 0).
    """
    release_updates = {}
    if args.tag:
        release_updates["tag"] = args.tag
    if args.mode:
        release_updates["mode"] = args.mode
    if args.transition_done:
        release_updates["transition_done"] = True
    if args.workers is not None:
        release_updates["workers"] = args.workers
    updates = {}
    if release_updates:
        updates["release"] = ReleaseConfig.model_validate({**config.release.model_dump(), **release_updates})
    if args.repository:
        updates["github"] = config.github.model_copy(update={"repository": args.repository})
    return config.model_copy(update=updates) if updates else config


def run(config: AppConfig) -> int:
    """Process the configured release; return the process exit code."""
    ReleaseLinkerLogging(config.logging).setup()
    log = logging.getLogger("release_linker.main")

    source = GitHubAdapter(
        token=config.github_token_resolved,
        api_url=config.github.api_url,
        graphql_url=config.github.graphql_url,
    )
    linear = LinearClient(config.linear_api_key_resolved, api_url=config.linear.api_url)

    log.info(
        "release-linker started | repo=%s | tag=%s | mode=%s | transition_done=%s",
        config.github.repository,
        config.release.tag,
        config.release.mode.value,
        config.release.transition_done,
    )
    summary = ReleaseProcessor(config, source, linear).run()
    print(
        f"Release {summary.tag}: {len(summary.pull_request_urls)} PR(s), "
        f"{summary.updated_count} issue(s) updated, "
        f"{len(summary.unlinked_pull_requests)} PR(s) without issue, "
        f"{len(summary.failed_issues)} issue(s) failed, "
        f"{len(summary.failed_pull_requests)} PR lookup(s) failed"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for release-linker."""
    args = parse_args(argv)

    config_path = args.config
    if not config_path.is_file() and config_path == Path("config.yaml"):
        if Path("config.example.yaml").is_file():
            config_path = Path("config.example.yaml")
            logging.basicConfig(level=logging.INFO)
            logging.getLogger("release_linker").warning("config.yaml not found, using config.example.yaml")

    try:
        config = apply_overrides(load_config(config_path), args)
    except ValueError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    if args.check:
        try:
            owner, repo = config.owner_and_repo
        except ValueError as e:
            print(f"Config error: {e}", file=sys.stderr)
            return 1
        print("Config OK:", f"{owner}/{repo}", config.release.tag or "(no tag)", config.release.mode.value)
        return 0

    try:
        return run(config)
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logging.getLogger("release_linker.main").exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
