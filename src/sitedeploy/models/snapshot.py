"""Data models for production snapshots."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SnapshotInfo(BaseModel):
    """Listing entry for one snapshot file."""

    version: int
    filename: str
    path: str
    sha: str
    size: int = 0


class Snapshot(BaseModel):
    """A point-in-time copy of the full site-state document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int
    timestamp: datetime
    commit_sha: Optional[str] = Field(default=None, alias="commitSha")
    site_state: Dict[str, Any] = Field(alias="websiteData")

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the on-branch file layout."""
        return {
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "commitSha": self.commit_sha,
            "websiteData": self.site_state,
        }
