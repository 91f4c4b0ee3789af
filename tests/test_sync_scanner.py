"""Tests for the local scanner.

Covers:
- Repo paths are root-relative with the content prefix prepended
- The per-root config file is never scanned
- .gitignore patterns are honoured
- Excluded folders (state dir, .git) are skipped
- Unreadable files are skipped without aborting the scan
"""

from __future__ import annotations

from unittest.mock import patch

from gitpush.sync.hashing import git_blob_hash
from gitpush.sync.scanner import (
    IgnoreMatcher,
    LocalScanner,
    join_repo_path,
    load_ignore_matcher,
)


class TestJoinRepoPath:
    def test_no_prefix(self):
        assert join_repo_path("", "a/b.md") == "a/b.md"

    def test_strips_slashes(self):
        assert join_repo_path("/docs/", "/a.md") == "docs/a.md"


class TestIgnoreMatcher:
    def test_gitwildmatch_patterns(self):
        matcher = IgnoreMatcher(["*.tmp", "build/", "!keep.tmp"])
        assert matcher.is_ignored("x.tmp")
        assert matcher.is_ignored("build/out.js")
        assert not matcher.is_ignored("keep.tmp")
        assert not matcher.is_ignored("notes.md")

    def test_load_missing_gitignore_returns_none(self, storage):
        assert load_ignore_matcher(storage, "") is None

    def test_load_from_root_folder(self, storage, write_file):
        write_file("site/.gitignore", "drafts/\n")
        matcher = load_ignore_matcher(storage, "site")
        assert matcher is not None
        assert matcher.is_ignored("drafts/a.md")


class TestLocalScanner:
    """Tests for LocalScanner.scan()."""

    async def test_prefix_and_hashes(self, storage, write_file):
        """repo_path = prefix + root-relative path; hash is the blob sha."""
        write_file("site/index.md", "hello")
        write_file("site/posts/one.md", "one")
        write_file("other/x.md", "x")

        entries = await LocalScanner(storage).scan("site", "content")

        by_path = {e.repo_path: e for e in entries}
        assert set(by_path) == {"content/index.md", "content/posts/one.md"}
        assert by_path["content/index.md"].local_path == "site/index.md"
        assert by_path["content/index.md"].hash == git_blob_hash(b"hello")

    async def test_skips_config_file(self, storage, write_file, repo_config_file):
        repo_config_file("site")
        write_file("site/a.md", "a")
        entries = await LocalScanner(storage).scan("site")
        assert [e.repo_path for e in entries] == ["a.md"]

    async def test_applies_ignore_matcher(self, storage, write_file):
        write_file("a.md", "a")
        write_file("tmp/b.md", "b")
        entries = await LocalScanner(storage).scan(
            "", ignore=IgnoreMatcher(["tmp/"])
        )
        assert [e.repo_path for e in entries] == ["a.md"]

    async def test_skips_excluded_folders(self, storage, write_file):
        write_file(".gitpush/settings.json", "{}")
        write_file(".git/HEAD", "ref")
        write_file("a.md", "a")
        scanner = LocalScanner(storage, excluded=(".git", ".gitpush"))
        entries = await scanner.scan("")
        assert [e.repo_path for e in entries] == ["a.md"]

    async def test_unreadable_file_is_skipped(self, storage, write_file):
        """An OSError on one file is logged; the others are still scanned."""
        write_file("a.md", "a")
        write_file("b.md", "b")
        original = storage.read_bytes

        def flaky(rel_path):
            if rel_path == "a.md":
                raise PermissionError("denied")
            return original(rel_path)

        with patch.object(storage, "read_bytes", side_effect=flaky):
            entries = await LocalScanner(storage).scan("")

        assert [e.repo_path for e in entries] == ["b.md"]
