"""sitedeploy - Versioned publishing of site state over the GitHub git data API."""

from .config import PublisherConfig, load_config
from .deploy import DeploymentOrchestrator, PublishOptions
from .git import CommitBuilder, VersionAllocator, VersionService
from .remote import DeploymentStatusClient, ObjectStoreClient
from .rollback import RollbackManager
from .snapshots import SnapshotStore
from .validation import ValidationGate

__version__ = "0.1.0"

__all__ = [
    "CommitBuilder",
    "DeploymentOrchestrator",
    "DeploymentStatusClient",
    "ObjectStoreClient",
    "PublishOptions",
    "PublisherConfig",
    "RollbackManager",
    "SnapshotStore",
    "ValidationGate",
    "VersionAllocator",
    "VersionService",
    "load_config",
]
