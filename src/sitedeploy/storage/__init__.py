"""Persistent storage."""

from .records import DeploymentRecordStore

__all__ = ["DeploymentRecordStore"]
