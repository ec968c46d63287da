"""
Publish pipeline for site state.

Stages run strictly in order, each one consuming the previous stage's output:

1. validate        - structural checks, no remote calls
2. generate-seo    - page metadata (degrades to empty metadata)
3. generate-files  - page output files
4. review          - external code review (transport failures degrade)
5. commit          - one atomic commit with files, site state and snapshot
6. wait-for-live   - provider deployment of the new commit (never fatal)

Every outcome is reported through ``DeploymentReport``; nothing raises past
``publish``.
"""

import json
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from ..config.parser import PublisherConfig
from ..exceptions import SiteDeployError, ValidationError
from ..git.commit_builder import CommitBuilder
from ..git.version_allocator import VersionAllocator
from ..logging import RequestContext, get_logger
from ..models.deployment import (
    DeploymentReport,
    DeploymentRun,
    DeploymentStage,
    DeploymentStatus,
    LiveDeployment,
    ReviewResult,
    StageStatus,
)
from ..models.git import CommitResult, FileAction, FileChange
from ..remote.object_store import ObjectStoreClient
from ..rollback.site_state import LocalSiteState
from ..snapshots.store import SnapshotStore
from ..validation.gate import ValidationGate, iter_pages, page_slug
from . import events, stages
from .collaborators import (
    CodeReviewer,
    FileGenerator,
    LiveDeploymentWaiter,
    SeoGenerator,
)
from .stages import Completed, Failed, Skipped, StageOutcome

logger = get_logger(__name__)


@dataclass
class PublishOptions:
    """Per-request publish switches."""

    dry_run: bool = False
    skip_review: bool = False
    skip_live_wait: bool = False
    commit_message: Optional[str] = None
    live_timeout: Optional[float] = None


@dataclass
class _PublishState:
    site_state: Dict[str, Any]
    options: PublishOptions
    seo: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    files: List[FileChange] = field(default_factory=list)
    review: Optional[ReviewResult] = None
    commit: Optional[CommitResult] = None
    live: Optional[LiveDeployment] = None
    tag_name: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class DeploymentOrchestrator:
    """Drive one publish request through the fixed stage sequence."""

    def __init__(
        self,
        config: PublisherConfig,
        client: ObjectStoreClient,
        builder: CommitBuilder,
        allocator: VersionAllocator,
        snapshots: SnapshotStore,
        file_generator: FileGenerator,
        gate: Optional[ValidationGate] = None,
        seo_generator: Optional[SeoGenerator] = None,
        reviewer: Optional[CodeReviewer] = None,
        waiter: Optional[LiveDeploymentWaiter] = None,
        local_state: Optional[LocalSiteState] = None,
        channel: Optional[events.EventChannel] = None,
    ):
        self.config = config
        self.client = client
        self.builder = builder
        self.allocator = allocator
        self.snapshots = snapshots
        self.file_generator = file_generator
        self.gate = gate or ValidationGate()
        self.seo_generator = seo_generator
        self.reviewer = reviewer
        self.waiter = waiter
        self.local_state = local_state
        self.channel = channel

        self.branch = config.repository.production_branch
        self.project_id = config.deployment.project_id or config.repo_slug

        self._handlers: Dict[str, Callable[[_PublishState], StageOutcome]] = {
            stages.VALIDATE: self._validate,
            stages.GENERATE_SEO: self._generate_seo,
            stages.GENERATE_FILES: self._generate_files,
            stages.REVIEW: self._review,
            stages.COMMIT: self._commit,
            stages.WAIT_FOR_LIVE: self._wait_for_live,
        }

    def validate(self, site_state: Dict[str, Any]):
        """Run only the validation gate, for speculative checks."""
        return self.gate.validate(site_state)

    def restore_snapshot(self, version: int, dry_run: bool = False) -> CommitResult:
        """Regenerate the published files from snapshot ``version`` in one new commit.

        The snapshot is read from the production branch and its site state is
        run through the file generator with default SEO metadata. No new
        snapshot is written and no release tag is created.

        Raises:
            NotFoundError: If the snapshot does not exist
            ValidationError: If the generator produces no files
            ConflictError: If the branch moved during the commit
        """
        dry_run = dry_run or self.config.publish.dry_run
        with RequestContext(branch=self.branch, dry_run=dry_run):
            snapshot = self.snapshots.get(version)
            files = list(self.file_generator.generate(snapshot.site_state, {}))
            if not files:
                raise ValidationError(f"Snapshot v{version} produced no files")

            changes = self._with_site_file(files, snapshot.site_state)
            message = (
                f"Sync page data with production snapshot v{version}\n\n"
                f"Regenerated {len(files)} files from {self.snapshots.path_for(version)}"
            )
            commit = self.builder.commit(
                self.branch, message, changes, version=version, dry_run=dry_run
            )

            if not dry_run:
                self._sync_local_state(snapshot.site_state)

            logger.info(
                "snapshot_restored",
                version=version,
                commit_sha=commit.commit_sha,
                files=len(changes),
                dry_run=dry_run,
            )
        return commit

    def publish(
        self,
        site_state: Dict[str, Any],
        options: Optional[PublishOptions] = None,
    ) -> DeploymentReport:
        """Run the pipeline and return a structured report."""
        options = options or PublishOptions()
        if self.config.publish.dry_run and not options.dry_run:
            options = replace(options, dry_run=True)
        state = _PublishState(site_state=site_state, options=options)
        run = DeploymentRun(stages=[DeploymentStage(id=sid, name=name) for sid, name in stages.STAGES])
        start_time = time.monotonic()
        record_id = uuid.uuid4().hex

        with RequestContext(record_id, branch=self.branch, dry_run=options.dry_run):
            self._emit(
                events.DEPLOYMENT_STARTED,
                record_id=record_id,
                project_id=self.project_id,
                commit_message=options.commit_message or "Production deployment",
                dry_run=options.dry_run,
            )

            for index, stage in enumerate(run.stages):
                outcome = self._run_stage(stage, state)
                if isinstance(outcome, Failed):
                    if outcome.fatal:
                        state.errors.extend(outcome.all_errors)
                        for remaining in run.stages[index + 1:]:
                            remaining.status = StageStatus.SKIPPED
                            remaining.message = f"Not run: {stage.name} failed"
                        break
                    state.warnings.append(outcome.error)

            report = self._build_report(run, state, start_time)
            self._emit(
                events.DEPLOYMENT_COMPLETED,
                record_id=record_id,
                status=(DeploymentStatus.SUCCESS if report.success else DeploymentStatus.FAILED).value,
                commit_sha=report.commit_sha,
                build_time=report.total_duration_ms,
                error_message="; ".join(report.errors) or None,
            )

        logger.info(
            "publish_finished",
            success=report.success,
            version=report.version,
            commit_sha=report.commit_sha,
            dry_run=report.dry_run,
            errors=len(report.errors),
            warnings=len(report.warnings),
        )
        return report

    # ------------------------------------------------------------------
    # Stage loop
    # ------------------------------------------------------------------

    def _run_stage(self, stage: DeploymentStage, state: _PublishState) -> StageOutcome:
        stage.status = StageStatus.IN_PROGRESS
        self._emit_stage(stage)
        started = time.monotonic()

        try:
            outcome = self._handlers[stage.id](state)
        except SiteDeployError as e:
            outcome = Failed(str(e))
        except Exception as e:
            logger.exception("stage_crashed", stage=stage.id)
            outcome = Failed(f"{stage.name} failed unexpectedly: {e}")

        stage.duration_ms = int((time.monotonic() - started) * 1000)
        if isinstance(outcome, Completed):
            stage.status = StageStatus.COMPLETED
            stage.message = outcome.message
        elif isinstance(outcome, Skipped):
            stage.status = StageStatus.SKIPPED
            stage.message = outcome.reason
        else:
            stage.status = StageStatus.FAILED
            stage.message = outcome.error

        self._emit_stage(stage)
        return outcome

    def _emit_stage(self, stage: DeploymentStage) -> None:
        self._emit(events.STAGE, **stage.model_dump(mode="json"))

    def _emit(self, kind: str, **payload: Any) -> None:
        if self.channel is not None:
            self.channel.publish(kind, **payload)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate(self, state: _PublishState) -> StageOutcome:
        result = self.gate.validate(state.site_state)
        state.warnings.extend(result.warnings)
        if not result.valid:
            return Failed(result.errors[0], errors=result.errors)

        pages = iter_pages(state.site_state)
        return Completed(f"Validated {len(pages)} pages")

    def _generate_seo(self, state: _PublishState) -> StageOutcome:
        if self.seo_generator is None:
            return Skipped("No SEO generator configured, using default metadata")
        try:
            state.seo = self.seo_generator.generate(state.site_state) or {}
        except Exception as e:
            logger.warning("seo_generation_failed", error=str(e))
            state.seo = {}
            return Skipped(f"Using default SEO metadata ({e})")
        return Completed(f"Generated SEO for {len(state.seo)} pages")

    def _generate_files(self, state: _PublishState) -> StageOutcome:
        state.files = list(self.file_generator.generate(state.site_state, state.seo))
        if not state.files:
            return Failed("File generation produced no files")
        return Completed(f"Generated {len(state.files)} files")

    def _review(self, state: _PublishState) -> StageOutcome:
        if state.options.skip_review:
            return Skipped("Code review skipped")
        if self.reviewer is None:
            return Skipped("No code reviewer configured")

        try:
            result = self.reviewer.review(state.files)
        except Exception as e:
            logger.warning("code_review_unavailable", error=str(e))
            return Skipped(f"Code review skipped (reviewer unavailable: {e})")

        state.review = result
        if not result.approved:
            issues = result.issues or ["Code review did not approve the changes"]
            return Failed(f"Code review failed: {', '.join(issues)}", errors=issues)

        suffix = f" ({len(result.suggestions)} suggestions)" if result.suggestions else ""
        return Completed(f"Code review passed{suffix}")

    def _commit(self, state: _PublishState) -> StageOutcome:
        dry_run = state.options.dry_run
        # the version is the snapshot's storage key, never a fallback
        try:
            version = self.allocator.next_version(self.branch, strict=True)
        except SiteDeployError as e:
            return Failed(f"Could not determine the next snapshot version: {e}")

        base_sha = self.client.get_ref(self.branch)
        if self.snapshots.exists(version, ref=base_sha):
            return Failed(f"Snapshot v{version} already exists, refusing to overwrite it")

        changes = self._with_site_file(state.files, state.site_state)
        changes.append(self.snapshots.build_change(state.site_state, version, base_sha))

        pages = iter_pages(state.site_state)
        message = state.options.commit_message or f"Generated {len(state.files)} files for {len(pages)} pages"
        message = f"{message}\n\nVersion: production-v{version}"

        state.commit = self.builder.commit(
            self.branch, message, changes, version=version, dry_run=dry_run
        )

        if dry_run:
            return Completed(f"Dry run complete (would create v{version})")

        self._tag_release(state, version)
        warning = self._sync_local_state(state.site_state)
        if warning:
            state.warnings.append(warning)
        return Completed(f"Deployed v{version} ({state.commit.commit_sha[:7]})")

    def _with_site_file(self, files: List[FileChange], site_state: Dict[str, Any]) -> List[FileChange]:
        """Generated files plus the canonical site-state file."""
        changes = list(files)
        site_file = FileChange(
            path=self.config.layout.site_data_path,
            content=json.dumps(site_state, indent=2),
            action=FileAction.MODIFY,
        )
        if site_file.path not in {c.path for c in changes}:
            changes.append(site_file)
        return changes

    def _tag_release(self, state: _PublishState, version: int) -> None:
        """Point ``production-v<N>`` at the new commit. Failures are warnings."""
        tag = f"production-v{version}"
        try:
            if self.client.tag_exists(tag):
                logger.info("release_tag_exists", tag=tag)
            else:
                tag_sha = self.client.create_tag(
                    tag, f"Production release v{version}", state.commit.commit_sha
                )
                self.client.create_ref(f"refs/tags/{tag}", tag_sha)
        except SiteDeployError as e:
            logger.warning("release_tag_failed", tag=tag, error=str(e))
            state.warnings.append(f"Release tag {tag} was not created: {e}")
            return
        state.tag_name = tag

    def _sync_local_state(self, site_state: Dict[str, Any]) -> Optional[str]:
        """Write the local site-state file, returning a warning on failure."""
        if self.local_state is None:
            return None
        try:
            self.local_state.write(site_state)
        except (OSError, SiteDeployError) as e:
            logger.warning("local_state_write_failed", error=str(e))
            return f"Local site data was not updated: {e}"
        return None

    def _wait_for_live(self, state: _PublishState) -> StageOutcome:
        if state.options.skip_live_wait:
            return Skipped("Skipped by user")
        if self.waiter is None:
            return Skipped("No deployment project configured")
        if state.options.dry_run:
            state.live = LiveDeployment(success=True, deployment_id="dpl_dry_run")
            return Completed("Dry run: live deployment simulated")

        try:
            live = self.waiter.wait_for_live(state.commit.commit_sha, state.options.live_timeout)
        except Exception as e:
            live = LiveDeployment(success=False, error=str(e))
        state.live = live

        if not live.success:
            return Failed(
                f"Published, but the live deployment wait failed: {live.error or 'unknown error'}",
                fatal=False,
            )
        return Completed(f"Live at {live.url}" if live.url else "Deployment is live")

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    def _build_report(
        self, run: DeploymentRun, state: _PublishState, start_time: float
    ) -> DeploymentReport:
        commit = state.commit
        live = state.live if state.live and state.live.success else None
        pages = [page_slug(p, i) for i, p in enumerate(iter_pages(state.site_state))]

        return DeploymentReport(
            success=not state.errors,
            version=commit.version_number if commit else None,
            commit_sha=commit.commit_sha if commit else None,
            files_generated=len(state.files),
            pages_deployed=pages if commit else [],
            code_review_passed=bool(state.review and state.review.approved),
            deployment_url=live.url if live else None,
            deployment_id=live.deployment_id if live else None,
            snapshot_version=commit.version_number if commit else None,
            tag_name=state.tag_name,
            tag_url=self.client.tag_url(state.tag_name) if state.tag_name else None,
            dry_run=state.options.dry_run,
            errors=state.errors,
            warnings=state.warnings,
            stages=[s.model_copy() for s in run.stages],
            total_duration_ms=int((time.monotonic() - start_time) * 1000),
        )
