"""Deployment pipeline."""

from .collaborators import (
    CodeReviewer,
    FileGenerator,
    HttpCodeReviewer,
    HttpSeoGenerator,
    LiveDeploymentWaiter,
    PageFileGenerator,
    SeoGenerator,
)
from .events import DeploymentEvent, EventChannel, RecordSink
from .orchestrator import DeploymentOrchestrator, PublishOptions
from .stages import Completed, Failed, Skipped, StageOutcome

__all__ = [
    "CodeReviewer",
    "Completed",
    "DeploymentEvent",
    "DeploymentOrchestrator",
    "EventChannel",
    "Failed",
    "FileGenerator",
    "HttpCodeReviewer",
    "HttpSeoGenerator",
    "LiveDeploymentWaiter",
    "PageFileGenerator",
    "PublishOptions",
    "RecordSink",
    "SeoGenerator",
    "Skipped",
    "StageOutcome",
]
