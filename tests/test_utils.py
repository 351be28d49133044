"""Tests for timestamp parsing, version names and SyncedSet."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

from release_linker.utils import SyncedSet, clean_version, parse_iso


def test_parse_iso_z_suffix() -> None:
    """GitHub's Z suffix parses as UTC."""
    assert parse_iso("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)


def test_parse_iso_naive_assumed_utc() -> None:
    """A timestamp without offset is treated as UTC."""
    assert parse_iso("2024-01-15T10:00:00").tzinfo is not None


def test_clean_version_strips_single_v() -> None:
    """Only one leading v is removed; other tags pass through."""
    assert clean_version("v1.2.3") == "1.2.3"
    assert clean_version("1.2.3") == "1.2.3"
    assert clean_version("vv1") == "v1"
    assert clean_version(" v2.0.0 ") == "2.0.0"
    assert clean_version("release-5") == "release-5"


def test_synced_set_add_if_absent() -> None:
    """First add claims the key, the second does not."""
    s = SyncedSet()
    assert s.add_if_absent("ENG-1") is True
    assert s.add_if_absent("ENG-1") is False
    assert "ENG-1" in s
    assert len(s) == 1


def test_synced_set_discard_releases_claim() -> None:
    """After discard the key can be claimed again."""
    s = SyncedSet(["ENG-1"])
    s.discard("ENG-1")
    s.discard("ENG-2")
    assert s.add_if_absent("ENG-1") is True


def test_synced_set_snapshot_is_copy() -> None:
    """snapshot() does not expose the internal set."""
    s = SyncedSet(["a"])
    snap = s.snapshot()
    snap.add("b")
    assert "b" not in s


def test_synced_set_one_winner_under_contention() -> None:
    """Many threads claiming one key: exactly one wins."""
    s = SyncedSet()
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: s.add_if_absent("shared"), range(200)))
    assert results.count(True) == 1
