"""Unit tests for the JSON seen-set store."""
import json
import os
from unittest.mock import patch

import pytest

from storage.seen_store import JsonSeenStore


@pytest.fixture
def state_path(tmp_path):
    return str(tmp_path / "seen.json")


def test_load_missing_file_returns_empty_set(state_path):
    """Test a missing state file means nothing seen yet."""
    assert JsonSeenStore(state_path).load() == set()


def test_load_corrupt_file_returns_empty_set(state_path):
    """Test invalid JSON is ignored."""
    with open(state_path, "w", encoding="utf-8") as f:
        f.write("{not json")

    assert JsonSeenStore(state_path).load() == set()


def test_load_non_array_returns_empty_set(state_path):
    with open(state_path, "w", encoding="utf-8") as f:
        json.dump({"links": ["a"]}, f)

    assert JsonSeenStore(state_path).load() == set()


def test_load_skips_non_string_entries(state_path):
    with open(state_path, "w", encoding="utf-8") as f:
        json.dump(["https://ida.dk/event/a", 3, None], f)

    assert JsonSeenStore(state_path).load() == {"https://ida.dk/event/a"}


def test_save_then_load(state_path):
    """Test saved links are read back."""
    store = JsonSeenStore(state_path)
    seen = {"https://ida.dk/event/a", "https://ida.dk/event/å"}

    assert store.save(seen) is True

    assert JsonSeenStore(state_path).load() == seen
    with open(state_path, encoding="utf-8") as f:
        assert sorted(json.load(f)) == sorted(seen)


def test_save_leaves_no_temp_file(state_path):
    JsonSeenStore(state_path).save({"a"})

    assert not os.path.exists(f"{state_path}.tmp")


def test_save_failure_keeps_previous_state(state_path):
    """Test a failed rename reports False and keeps the old file intact."""
    store = JsonSeenStore(state_path)
    store.save({"old"})

    with patch("storage.seen_store.os.replace", side_effect=OSError("disk full")):
        assert store.save({"old", "new"}) is False

    assert store.load() == {"old"}


def test_save_to_missing_directory_returns_false(tmp_path):
    store = JsonSeenStore(str(tmp_path / "missing" / "seen.json"))

    assert store.save({"a"}) is False
