"""Saved versions of the site state on the working branch."""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..exceptions import NotFoundError, ValidationError
from ..logging import get_logger
from ..models.git import CommitResult, FileAction, FileChange
from ..remote.object_store import ObjectStoreClient
from .commit_builder import CommitBuilder

logger = get_logger(__name__)


class VersionEntry(BaseModel):
    version_number: int
    commit_sha: str
    short_sha: str
    message: str
    author: Optional[str] = None
    date: Optional[str] = None
    url: Optional[str] = None


class LoadedVersion(BaseModel):
    commit_sha: str
    commit_message: Optional[str] = None
    site_state: Dict[str, Any]


class VersionService:
    """Save, list and load site-state versions on a branch."""

    def __init__(
        self,
        client: ObjectStoreClient,
        builder: CommitBuilder,
        default_branch: str,
        site_data_path: str,
    ):
        self.client = client
        self.builder = builder
        self.default_branch = default_branch
        self.site_data_path = site_data_path.strip("/")

    def save_version(
        self,
        site_state: Dict[str, Any],
        message: str,
        branch: Optional[str] = None,
    ) -> CommitResult:
        if not message:
            raise ValidationError("A commit message is required")
        change = FileChange(
            path=self.site_data_path,
            content=json.dumps(site_state, indent=2),
            action=FileAction.MODIFY,
        )
        return self.builder.commit(branch or self.default_branch, message, [change])

    def list_versions(self, branch: Optional[str] = None, per_page: int = 100) -> List[VersionEntry]:
        """List commits newest first, numbered so the oldest listed is 1."""
        commits = self.client.list_commits(branch or self.default_branch, per_page=per_page)
        total = len(commits)
        return [
            VersionEntry(
                version_number=total - index,
                commit_sha=commit.sha,
                short_sha=commit.sha[:7],
                message=commit.message,
                author=commit.author,
                date=commit.date,
                url=commit.url,
            )
            for index, commit in enumerate(commits)
        ]

    def load_version(
        self,
        commit_sha: Optional[str] = None,
        version_number: Optional[int] = None,
        branch: Optional[str] = None,
    ) -> LoadedVersion:
        """Read the site-state document as of a commit or a listed version number.

        Raises:
            ValidationError: If neither ``commit_sha`` nor ``version_number`` is given
            NotFoundError: If the version or the site-state file is missing
        """
        if not commit_sha and not version_number:
            raise ValidationError("Either commit_sha or version_number is required")

        if not commit_sha:
            versions = self.list_versions(branch)
            match = next((v for v in versions if v.version_number == version_number), None)
            if match is None:
                raise NotFoundError(f"Version {version_number} not found")
            commit_sha = match.commit_sha

        commit = self.client.get_commit(commit_sha)
        tree = self.client.get_tree(commit.tree_sha, recursive=True)

        candidates = self._candidate_paths()
        by_path = {entry.get("path"): entry for entry in tree if entry.get("type") == "blob"}
        entry = next((by_path[p] for p in candidates if p in by_path), None)
        if entry is None:
            raise NotFoundError(f"{self.site_data_path} not found in commit {commit_sha[:7]}")

        raw = self.client.get_blob(entry["sha"])
        try:
            site_state = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise ValidationError(f"Failed to parse {entry['path']}: {e}") from e

        logger.info("version_loaded", commit_sha=commit_sha, path=entry["path"])
        return LoadedVersion(
            commit_sha=commit_sha,
            commit_message=commit.message,
            site_state=site_state,
        )

    def _candidate_paths(self) -> List[str]:
        paths = [self.site_data_path]
        if self.site_data_path.startswith("frontend/"):
            paths.append(self.site_data_path[len("frontend/"):])
        else:
            paths.append(f"frontend/{self.site_data_path}")
        return paths
