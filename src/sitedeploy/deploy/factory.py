"""Wire concrete components from a PublisherConfig."""

from typing import Optional

import requests

from ..config.parser import PublisherConfig
from ..git.commit_builder import CommitBuilder
from ..git.version_allocator import VersionAllocator
from ..git.versions import VersionService
from ..remote.deployments import DeploymentStatusClient
from ..remote.object_store import ObjectStoreClient
from ..rollback.manager import RollbackManager
from ..rollback.site_state import LocalSiteState
from ..snapshots.store import SnapshotStore
from ..storage.records import DeploymentRecordStore
from ..validation.gate import ValidationGate
from .collaborators import HttpCodeReviewer, HttpSeoGenerator, PageFileGenerator
from .events import EventChannel, RecordSink, log_sink
from .orchestrator import DeploymentOrchestrator


def build_snapshot_store(config: PublisherConfig, client: ObjectStoreClient) -> SnapshotStore:
    return SnapshotStore(
        client,
        branch=config.repository.production_branch,
        snapshots_path=config.layout.snapshots_path,
    )


def build_version_service(
    config: PublisherConfig, session: Optional[requests.Session] = None
) -> VersionService:
    client = ObjectStoreClient(config, session=session)
    builder = CommitBuilder(
        client,
        allocator=VersionAllocator(client),
        max_workers=config.publish.max_blob_workers,
    )
    return VersionService(
        client,
        builder,
        default_branch=config.repository.default_branch,
        site_data_path=config.layout.site_data_path,
    )


def build_orchestrator(
    config: PublisherConfig,
    session: Optional[requests.Session] = None,
    record_store: Optional[DeploymentRecordStore] = None,
) -> DeploymentOrchestrator:
    """Build an orchestrator with the HTTP collaborators the config enables."""
    client = ObjectStoreClient(config, session=session)
    snapshots = build_snapshot_store(config, client)
    allocator = VersionAllocator(client, snapshots)
    builder = CommitBuilder(client, allocator, max_workers=config.publish.max_blob_workers)

    review = config.review
    seo_generator = (
        HttpSeoGenerator(review.seo_endpoint, timeout=review.timeout) if review.seo_endpoint else None
    )
    reviewer = (
        HttpCodeReviewer(review.review_endpoint, timeout=review.timeout)
        if review.review_endpoint
        else None
    )
    waiter = None
    if config.deployment.project_id and config.deployment.token:
        waiter = DeploymentStatusClient(config)

    manager = RollbackManager(config.layout.working_copy)
    local_state = LocalSiteState(manager, config.layout.site_data_path)

    channel = EventChannel()
    channel.subscribe(log_sink)
    channel.subscribe(RecordSink(record_store or DeploymentRecordStore(config.layout.records_db)))

    return DeploymentOrchestrator(
        config=config,
        client=client,
        builder=builder,
        allocator=allocator,
        snapshots=snapshots,
        file_generator=PageFileGenerator(),
        gate=ValidationGate(),
        seo_generator=seo_generator,
        reviewer=reviewer,
        waiter=waiter,
        local_state=local_state,
        channel=channel,
    )
