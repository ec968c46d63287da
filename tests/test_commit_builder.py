"""Tests for atomic commit construction."""

import re
from unittest.mock import MagicMock

import pytest

from sitedeploy.exceptions import ConflictError, NotFoundError, TransientError, ValidationError
from sitedeploy.git.commit_builder import CommitBuilder, synthetic_sha
from sitedeploy.git.version_allocator import VersionAllocator
from sitedeploy.models.git import FileAction, FileChange

SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")


@pytest.fixture
def builder(client):
    return CommitBuilder(client, allocator=VersionAllocator(client), max_workers=4)


@pytest.fixture
def changes():
    return [
        FileChange(path="frontend/src/app/page.tsx", content="export default 1", action=FileAction.CREATE),
        FileChange(path="frontend/src/data/websiteData.json", content='{"pages": []}'),
        FileChange(path="README.md", action=FileAction.DELETE),
    ]


class TestCommitBuilder:
    """CommitBuilder.commit against the fake repository."""

    def test_commit_applies_batch(self, builder, github, changes):
        """One commit on top of the previous head with every change applied."""
        base = github.refs["main"]

        result = builder.commit("main", "Publish", changes)

        assert SHA_PATTERN.match(result.commit_sha)
        assert github.refs["main"] == result.commit_sha
        assert github.commits[result.commit_sha]["parents"] == [base]
        files = github.files_at("main")
        assert files["frontend/src/app/page.tsx"] == b"export default 1"
        assert files["frontend/src/data/websiteData.json"] == b'{"pages": []}'
        assert set(files) == {"frontend/src/app/page.tsx", "frontend/src/data/websiteData.json"}
        assert "README.md" not in files
        assert result.files_committed == 3
        assert result.commit_url.endswith(result.commit_sha)

    def test_version_from_commit_count(self, builder, changes):
        """Without a pre-assigned version the count after the commit is used."""
        result = builder.commit("main", "Publish", changes)
        assert result.version_number == 2

    def test_preassigned_version(self, builder, changes):
        result = builder.commit("main", "Publish", changes, version=7)
        assert result.version_number == 7

    def test_one_blob_per_written_file(self, builder, github, changes):
        builder.commit("main", "Publish", changes)
        assert github.calls.count(("POST", "git/blobs")) == 2
        assert github.calls.count(("POST", "git/trees")) == 1
        assert github.calls.count(("POST", "git/commits")) == 1
        assert github.calls.count(("PATCH", "git/refs/heads/main")) == 1

    def test_empty_batch_rejected(self, builder, github):
        with pytest.raises(ValidationError, match="No file changes"):
            builder.commit("main", "Nothing", [])
        assert github.calls == []

    def test_duplicate_paths_rejected(self, builder, github):
        batch = [
            FileChange(path="a.json", content="1"),
            FileChange(path="./a.json", content="2"),
        ]
        with pytest.raises(ValidationError, match="Duplicate paths"):
            builder.commit("main", "Dup", batch)
        assert github.calls == []

    def test_concurrent_writer_causes_conflict(self, builder, github, changes):
        """If the branch moves before the ref update, nothing is published."""
        def other_writer(_sha):
            github.seed("main", {"other.txt": "theirs"})
            github.after_create_commit = None

        github.after_create_commit = other_writer

        with pytest.raises(ConflictError):
            builder.commit("main", "Publish", changes)

        assert ("PATCH", "git/refs/heads/main") not in github.calls
        assert "other.txt" in github.files_at("main")
        assert "frontend/src/app/page.tsx" not in github.files_at("main")

    def test_failure_before_ref_update_leaves_branch(self, builder, github, changes):
        """Failing tree creation must not move the branch."""
        base = github.refs["main"]
        for _ in range(3):
            github.fail_next("POST", "git/trees", 500)

        with pytest.raises(TransientError):
            builder.commit("main", "Publish", changes)

        assert github.refs["main"] == base
        assert ("PATCH", "git/refs/heads/main") not in github.calls

    def test_missing_branch(self, builder):
        with pytest.raises(NotFoundError):
            builder.commit("gone", "Publish", [FileChange(path="a.txt", content="a")])


class TestDryRun:
    """Dry-run commits."""

    def test_dry_run_makes_no_writes(self, builder, github, changes):
        """Only reads are issued and the branch stays put."""
        base = github.refs["main"]

        result = builder.commit("main", "Publish", changes, dry_run=True)

        assert result.dry_run is True
        assert SHA_PATTERN.match(result.commit_sha)
        assert github.writes == []
        assert github.refs["main"] == base
        assert result.version_number == 2

    def test_synthetic_sha_is_deterministic(self, changes):
        first = synthetic_sha("a" * 40, "msg", changes)
        assert first == synthetic_sha("a" * 40, "msg", changes)
        assert first != synthetic_sha("a" * 40, "other", changes)

    def test_dry_run_without_allocator(self, client, github):
        builder = CommitBuilder(client)
        result = builder.commit("main", "x", [FileChange(path="a.txt", content="a")], dry_run=True)
        assert result.version_number == 1


class TestAllocatorFailures:
    """Version lookups never fail a commit."""

    def test_count_failure_defaults_to_one(self, client, github, changes):
        allocator = VersionAllocator(client)
        allocator.client = MagicMock()
        allocator.client.count_commits.side_effect = TransientError(503, "down")

        result = CommitBuilder(client, allocator=allocator).commit("main", "Publish", changes)

        assert result.version_number == 1
        assert github.refs["main"] == result.commit_sha
