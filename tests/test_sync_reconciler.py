"""Tests for three-way reconciliation.

Covers:
- Every row of the classification table
- Healing of already-identical paths and pruning of vanished ones
- No healing or pruning against an untrusted snapshot
- Prefix filtering on folder boundaries
- Deterministic, sorted output and total partition of paths
"""

from __future__ import annotations

import pytest

from gitpush.sync.models import (
    LocalEntry,
    Outcome,
    PullStatus,
    PushStatus,
)
from gitpush.sync.reconciler import (
    classify,
    classify_path,
    in_prefix,
    local_path_for,
)

H0, H1, H2 = "0" * 40, "1" * 40, "2" * 40


def _entry(repo_path: str, sha: str, local_path: str | None = None) -> LocalEntry:
    return LocalEntry(repo_path=repo_path, local_path=local_path or repo_path, hash=sha)


class TestClassifyPath:
    """One test per row of the L/R/S table."""

    def test_identical_is_unchanged(self):
        assert classify_path(H1, H1, None) == (Outcome.UNCHANGED, None)
        assert classify_path(H1, H1, H0) == (Outcome.UNCHANGED, None)

    def test_local_only_never_synced_is_new(self):
        assert classify_path(H1, None, None) == (Outcome.PUSH, PushStatus.NEW)

    def test_local_only_previously_synced_is_deleted_remotely(self):
        assert classify_path(H1, None, H1) == (
            Outcome.PULL,
            PullStatus.DELETED_REMOTELY,
        )

    def test_remote_only_never_synced_is_new_remote(self):
        assert classify_path(None, H1, None) == (
            Outcome.PULL,
            PullStatus.NEW_REMOTE,
        )

    def test_remote_only_unchanged_since_sync_is_local_deletion(self):
        assert classify_path(None, H1, H1) == (Outcome.PUSH, PushStatus.DELETED)

    def test_remote_changed_after_local_deletion_conflicts(self):
        assert classify_path(None, H2, H1) == (Outcome.CONFLICT, None)

    def test_remote_modified(self):
        assert classify_path(H1, H2, H1) == (
            Outcome.PULL,
            PullStatus.MODIFIED_REMOTE,
        )

    def test_local_modified(self):
        assert classify_path(H2, H1, H1) == (Outcome.PUSH, PushStatus.MODIFIED)

    @pytest.mark.parametrize("synced", [None, H0])
    def test_both_changed_conflicts(self, synced):
        assert classify_path(H1, H2, synced) == (Outcome.CONFLICT, None)


class TestPrefix:
    def test_folder_boundary(self):
        assert in_prefix("docs/a.md", "docs")
        assert in_prefix("docs", "docs/")
        assert not in_prefix("docs-old/a.md", "docs")
        assert in_prefix("anything", "")

    def test_local_path_for_remote_only_file(self):
        assert local_path_for("docs/x/a.md", "docs", "site") == "site/x/a.md"
        assert local_path_for("a.md", "", "") == "a.md"


class TestClassify:
    """Tests for classify() over whole path sets."""

    def test_partitions_union_of_paths(self):
        local = [_entry("new.md", H1), _entry("same.md", H1), _entry("mod.md", H2)]
        remote = {"same.md": H1, "mod.md": H1, "rnew.md": H2}
        synced = {"same.md": H1, "mod.md": H1}

        result = classify(local, remote, synced)

        assert [i.repo_path for i in result.push] == ["mod.md", "new.md"]
        assert [i.repo_path for i in result.pull] == ["rnew.md"]
        assert result.unchanged == ["same.md"]
        assert result.conflicts == []
        all_paths = (
            [i.repo_path for i in result.push]
            + [i.repo_path for i in result.pull]
            + result.unchanged
        )
        assert sorted(all_paths) == ["mod.md", "new.md", "rnew.md", "same.md"]

    def test_remote_paths_outside_prefix_are_ignored(self):
        remote = {"docs/a.md": H1, "docs-old/b.md": H1, "readme.md": H1}
        result = classify([], remote, {}, prefix="docs")
        assert [i.repo_path for i in result.pull] == ["docs/a.md"]

    def test_heals_missing_sync_state(self):
        synced: dict[str, str] = {}
        result = classify([_entry("a.md", H1)], {"a.md": H1}, synced)
        assert result.healed == ["a.md"]
        assert synced == {"a.md": H1}

    def test_heal_replaces_stale_hash(self):
        synced = {"a.md": H0}
        classify([_entry("a.md", H1)], {"a.md": H1}, synced)
        assert synced["a.md"] == H1

    def test_prunes_paths_gone_on_both_sides(self):
        synced = {"docs/gone.md": H1, "other/keep.md": H1}
        seen = {"docs/gone.md", "other/keep.md"}
        result = classify([], {}, synced, prefix="docs", seen=seen)
        assert result.pruned == ["docs/gone.md"]
        assert synced == {"other/keep.md": H1}

    def test_unseen_paths_are_not_pruned(self):
        synced = {"docs/gone.md": H1}
        result = classify([], {}, synced, prefix="docs")
        assert result.pruned == []
        assert synced == {"docs/gone.md": H1}

    def test_other_root_keeps_its_sync_state(self):
        # root B (prefix "") has no a.md; root A synced it earlier
        synced = {"a.md": H1}
        first = classify([_entry("b.md", H2)], {"b.md": H2}, synced, seen={"b.md"})
        assert first.pruned == []
        assert synced == {"a.md": H1, "b.md": H2}

        # back in root A the file was deleted locally: the deletion is pushed
        second = classify([], {"a.md": H1}, synced)
        assert [(i.repo_path, i.status) for i in second.push] == [
            ("a.md", PushStatus.DELETED)
        ]
        assert second.pull == []

    def test_no_heal_or_prune_when_disabled(self):
        synced = {"gone.md": H1}
        result = classify(
            [_entry("a.md", H1)], {"a.md": H1}, synced, heal=False, seen={"gone.md"}
        )
        assert result.healed == []
        assert result.pruned == []
        assert synced == {"gone.md": H1}
        assert result.unchanged == ["a.md"]

    def test_deleted_push_item_carries_remote_hash_and_local_path(self):
        result = classify([], {"docs/a.md": H1}, {"docs/a.md": H1}, "docs", "site")
        (item,) = result.push
        assert item.status is PushStatus.DELETED
        assert item.remote_hash == H1
        assert item.hash is None
        assert item.local_path == "site/a.md"

    def test_new_remote_pull_item_gets_local_path(self):
        result = classify([], {"docs/sub/a.md": H2}, {}, "docs", "site")
        (item,) = result.pull
        assert item.local_path == "site/sub/a.md"
        assert item.hash == H2

    def test_conflict_item_hashes(self):
        result = classify([_entry("a.md", H1)], {"a.md": H2}, {"a.md": H0})
        (conflict,) = result.conflicts
        assert (conflict.local_hash, conflict.remote_hash) == (H1, H2)

    def test_deterministic(self):
        local = [_entry(f"f{i}.md", H1) for i in (3, 1, 2)]
        first = classify(local, {}, {})
        second = classify(list(reversed(local)), {}, {})
        assert first == second
        assert [i.repo_path for i in first.push] == ["f1.md", "f2.md", "f3.md"]
