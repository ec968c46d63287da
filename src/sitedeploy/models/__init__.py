"""Data models for sitedeploy."""

from .deployment import (
    DeploymentRecord,
    DeploymentReport,
    DeploymentRun,
    DeploymentStage,
    DeploymentStatus,
    LiveDeployment,
    ReviewResult,
    StageStatus,
)
from .git import CommitInfo, CommitResult, CommitSummary, FileAction, FileChange, TreeEntry, normalize_path
from .rollback import FileChangeRecord, UndoResult
from .snapshot import Snapshot, SnapshotInfo

__all__ = [
    "CommitInfo",
    "CommitResult",
    "CommitSummary",
    "DeploymentRecord",
    "DeploymentReport",
    "DeploymentRun",
    "DeploymentStage",
    "DeploymentStatus",
    "FileAction",
    "FileChange",
    "FileChangeRecord",
    "LiveDeployment",
    "ReviewResult",
    "Snapshot",
    "SnapshotInfo",
    "StageStatus",
    "TreeEntry",
    "UndoResult",
    "normalize_path",
]
