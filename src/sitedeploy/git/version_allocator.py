"""Human-facing version numbers for published commits."""

from typing import Optional

from ..exceptions import SiteDeployError
from ..logging import get_logger
from ..remote.object_store import ObjectStoreClient
from ..snapshots.store import SnapshotStore

logger = get_logger(__name__)

DEFAULT_VERSION = 1


class VersionAllocator:
    """Derive display version numbers for a branch.

    The number is advisory: two concurrent publishers can observe the same
    value. Version display is never allowed to fail a publish.
    """

    def __init__(self, client: ObjectStoreClient, snapshots: Optional[SnapshotStore] = None):
        self.client = client
        self.snapshots = snapshots

    def version_after_commit(self, branch: str) -> int:
        """Count of commits reachable from the branch head, 1-indexed."""
        try:
            count = self.client.count_commits(branch)
        except SiteDeployError as e:
            logger.warning("version_count_failed", branch=branch, error=str(e), default=DEFAULT_VERSION)
            return DEFAULT_VERSION
        return max(count, DEFAULT_VERSION)

    def next_version(self, branch: str, strict: bool = False) -> int:
        """Version the next publish on ``branch`` will carry.

        Prefers the counter stored in the latest snapshot and falls back to
        the commit count when no snapshot exists yet. A lookup failure gives
        ``DEFAULT_VERSION`` unless ``strict`` is set, in which case it is
        re-raised. Callers that use the number as a snapshot key must be strict.
        """
        try:
            if self.snapshots is not None:
                latest = self.snapshots.latest()
                if latest is not None:
                    return latest.version + 1
            return self.client.count_commits(branch) + 1
        except SiteDeployError as e:
            if strict:
                raise
            logger.warning("version_allocation_failed", branch=branch, error=str(e), default=DEFAULT_VERSION)
            return DEFAULT_VERSION
