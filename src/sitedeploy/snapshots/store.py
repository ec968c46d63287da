"""Versioned site-state snapshots stored on the publish branch."""

import base64
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..exceptions import NotFoundError, ValidationError
from ..logging import get_logger
from ..models.git import FileAction, FileChange
from ..models.snapshot import Snapshot, SnapshotInfo
from ..remote.object_store import ObjectStoreClient

logger = get_logger(__name__)

SNAPSHOT_NAME = re.compile(r"^v(\d+)\.json$")


class SnapshotStore:
    """Read and build ``<snapshots-path>/v<N>.json`` documents.

    Snapshots are written as part of the publish commit batch (see
    ``build_change``), never on their own, so a snapshot and the content it
    describes become visible together.
    """

    def __init__(self, client: ObjectStoreClient, branch: str, snapshots_path: str):
        self.client = client
        self.branch = branch
        self.snapshots_path = snapshots_path.strip("/")

    def path_for(self, version: int) -> str:
        return f"{self.snapshots_path}/v{version}.json"

    def list(self) -> List[SnapshotInfo]:
        """List snapshots, newest version first.

        Returns an empty list when the snapshot directory does not exist yet.
        """
        try:
            entries = self.client.get_contents(self.snapshots_path, ref=self.branch)
        except NotFoundError:
            logger.info("snapshot_directory_missing", path=self.snapshots_path, branch=self.branch)
            return []

        if not isinstance(entries, list):
            return []

        snapshots = []
        for entry in entries:
            if entry.get("type") != "file":
                continue
            match = SNAPSHOT_NAME.match(entry.get("name", ""))
            if not match:
                continue
            version = int(match.group(1))
            if version <= 0:
                continue
            snapshots.append(SnapshotInfo(
                version=version,
                filename=entry["name"],
                path=entry.get("path", self.path_for(version)),
                sha=entry.get("sha", ""),
                size=entry.get("size", 0),
            ))

        snapshots.sort(key=lambda s: s.version, reverse=True)
        return snapshots

    def latest(self) -> Optional[SnapshotInfo]:
        snapshots = self.list()
        return snapshots[0] if snapshots else None

    def is_first_deploy(self) -> bool:
        return self.latest() is None

    def exists(self, version: int, ref: Optional[str] = None) -> bool:
        """Whether snapshot ``version`` is present at ``ref`` (the branch by default)."""
        try:
            self.client.get_contents(self.path_for(version), ref=ref or self.branch)
        except NotFoundError:
            return False
        return True

    def get(self, version: int) -> Snapshot:
        """Fetch one snapshot.

        Raises:
            NotFoundError: If no snapshot file exists for ``version``
        """
        try:
            payload = self.client.get_contents(self.path_for(version), ref=self.branch)
        except NotFoundError as e:
            raise NotFoundError(f"Snapshot v{version} not found") from e

        if not isinstance(payload, dict) or "content" not in payload:
            raise NotFoundError(f"Snapshot v{version} not found")

        raw = base64.b64decode(payload["content"])
        try:
            document = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise ValidationError(f"Snapshot v{version} is not valid JSON: {e}") from e

        return Snapshot.model_validate(document)

    def build_change(
        self,
        site_state: Dict[str, Any],
        version: int,
        commit_sha: Optional[str],
        timestamp: Optional[datetime] = None,
    ) -> FileChange:
        """Build the FileChange that writes snapshot ``version``.

        ``commit_sha`` is the branch head the publish was built on; a commit
        cannot contain its own SHA.
        """
        snapshot = Snapshot(
            version=version,
            timestamp=timestamp or datetime.now(timezone.utc),
            commit_sha=commit_sha,
            site_state=site_state,
        )
        content = json.dumps(snapshot.to_document(), indent=2)
        return FileChange(path=self.path_for(version), content=content, action=FileAction.CREATE)
