"""Compose a batch of file changes into one atomic commit."""

import hashlib
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from ..exceptions import ValidationError
from ..logging import get_logger
from ..models.git import CommitResult, FileAction, FileChange, TreeEntry
from ..remote.object_store import ObjectStoreClient
from .version_allocator import DEFAULT_VERSION, VersionAllocator

logger = get_logger(__name__)


def synthetic_sha(base_sha: str, message: str, changes: Sequence[FileChange]) -> str:
    """Deterministic 40-hex SHA standing in for a commit during dry runs."""
    digest = hashlib.sha1()
    digest.update(b"dry-run\0")
    digest.update(base_sha.encode("utf-8"))
    digest.update(message.encode("utf-8"))
    for change in changes:
        digest.update(change.path.encode("utf-8"))
        digest.update(change.action.value.encode("utf-8"))
        digest.update(change.content or b"")
    return digest.hexdigest()


class CommitBuilder:
    """Produce exactly one new commit on a branch, or fail without moving it.

    Sequence: read ref, read base commit, create blobs (concurrently), create
    one tree, create the commit, then compare-and-swap the ref. The ref update
    is always the last write; if it raises ``ConflictError`` the objects
    created before it are unreferenced and the caller may rerun the whole
    sequence.
    """

    def __init__(
        self,
        client: ObjectStoreClient,
        allocator: Optional[VersionAllocator] = None,
        max_workers: int = 8,
    ):
        self.client = client
        self.allocator = allocator
        self.max_workers = max(1, max_workers)

    def commit(
        self,
        branch: str,
        message: str,
        changes: Sequence[FileChange],
        version: Optional[int] = None,
        dry_run: bool = False,
    ) -> CommitResult:
        """Commit ``changes`` to ``branch``.

        Args:
            branch: Branch to move
            message: Commit message
            changes: File changes; paths must be unique
            version: Pre-assigned display version. When omitted the
                allocator derives it after the ref update.
            dry_run: Read the branch but skip every mutating call

        Raises:
            ValidationError: If the batch is empty or has duplicate paths
            ConflictError: If the branch moved during construction
        """
        self._check_batch(changes)
        start_time = time.time()

        base_commit_sha = self.client.get_ref(branch)
        base_tree_sha = self.client.get_commit(base_commit_sha).tree_sha
        logger.info(
            "commit_started",
            branch=branch,
            base_commit=base_commit_sha,
            files=len(changes),
            dry_run=dry_run,
        )

        if dry_run:
            commit_sha = synthetic_sha(base_commit_sha, message, changes)
            if version is None:
                version = self.allocator.next_version(branch) if self.allocator else DEFAULT_VERSION
            return CommitResult(
                commit_sha=commit_sha,
                commit_url=self.client.commit_url(commit_sha),
                version_number=version,
                message=message,
                branch=branch,
                files_committed=len(changes),
                dry_run=True,
            )

        entries = self._create_entries(changes)
        tree_sha = self.client.create_tree(base_tree_sha, entries)
        commit_sha = self.client.create_commit(tree_sha, [base_commit_sha], message)
        self.client.update_ref(branch, commit_sha, expected_old_sha=base_commit_sha)

        if version is None:
            version = (
                self.allocator.version_after_commit(branch) if self.allocator else DEFAULT_VERSION
            )

        elapsed_time = time.time() - start_time
        logger.info(
            "commit_created",
            branch=branch,
            commit_sha=commit_sha,
            version=version,
            duration_s=round(elapsed_time, 2),
        )
        return CommitResult(
            commit_sha=commit_sha,
            commit_url=self.client.commit_url(commit_sha),
            version_number=version,
            message=message,
            branch=branch,
            files_committed=len(changes),
        )

    @staticmethod
    def _check_batch(changes: Sequence[FileChange]) -> None:
        if not changes:
            raise ValidationError("No file changes to commit")
        seen = set()
        duplicates = []
        for change in changes:
            if change.path in seen:
                duplicates.append(change.path)
            seen.add(change.path)
        if duplicates:
            raise ValidationError(
                f"Duplicate paths in commit batch: {', '.join(sorted(set(duplicates)))}"
            )

    def _create_entries(self, changes: Sequence[FileChange]) -> List[TreeEntry]:
        """Create blobs concurrently and return one tree entry per change."""
        writes = [c for c in changes if c.action != FileAction.DELETE]
        blob_shas: Dict[str, str] = {}

        if writes:
            workers = min(self.max_workers, len(writes))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {c.path: pool.submit(self.client.create_blob, c.content) for c in writes}
                for path, future in futures.items():
                    blob_shas[path] = future.result()

        entries = []
        for change in changes:
            if change.action == FileAction.DELETE:
                entries.append(TreeEntry(path=change.path, sha=None))
            else:
                entries.append(TreeEntry(path=change.path, sha=blob_shas[change.path]))
        return entries
