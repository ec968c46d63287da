"""Data models for deployment runs and records."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STAGE_STATUSES = (StageStatus.COMPLETED, StageStatus.FAILED, StageStatus.SKIPPED)


class DeploymentStage(BaseModel):
    """One step of the publish pipeline."""

    id: str
    name: str
    status: StageStatus = StageStatus.PENDING
    message: Optional[str] = None
    duration_ms: Optional[int] = None


class DeploymentRun(BaseModel):
    """Ordered stages of one publish request, mutated in place."""

    stages: List[DeploymentStage]
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def stage(self, stage_id: str) -> DeploymentStage:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise KeyError(stage_id)

    @property
    def failed(self) -> bool:
        return any(s.status == StageStatus.FAILED for s in self.stages)

    @property
    def finished(self) -> bool:
        return all(s.status in TERMINAL_STAGE_STATUSES for s in self.stages)


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class DeploymentRecord(BaseModel):
    """Persisted record of one publish attempt."""

    id: str
    project_id: str
    status: DeploymentStatus = DeploymentStatus.PENDING
    started_at: datetime
    completed_at: Optional[datetime] = None
    commit_message: Optional[str] = None
    commit_sha: Optional[str] = None
    build_time: Optional[int] = None
    error_message: Optional[str] = None


class ReviewResult(BaseModel):
    """Verdict returned by the code reviewer."""

    approved: bool
    issues: List[str] = []
    suggestions: List[str] = []


class LiveDeployment(BaseModel):
    """Terminal state of a provider deployment."""

    success: bool
    url: Optional[str] = None
    deployment_id: Optional[str] = None
    error: Optional[str] = None


class DeploymentReport(BaseModel):
    """Structured result returned by every publish attempt."""

    success: bool
    version: Optional[int] = None
    commit_sha: Optional[str] = None
    files_generated: int = 0
    pages_deployed: List[str] = []
    code_review_passed: bool = False
    deployment_url: Optional[str] = None
    deployment_id: Optional[str] = None
    snapshot_version: Optional[int] = None
    tag_name: Optional[str] = None
    tag_url: Optional[str] = None
    dry_run: bool = False
    errors: List[str] = []
    warnings: List[str] = []
    stages: List[DeploymentStage] = []
    total_duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
