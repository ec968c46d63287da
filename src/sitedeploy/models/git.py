"""Data models for remote repository objects."""

import posixpath
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class FileAction(str, Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


def normalize_path(path: str) -> str:
    """Normalize a repository-relative path.

    Strips leading slashes and ``./`` segments and collapses duplicate
    separators. Paths that are empty or escape the repository root are
    rejected.
    """
    cleaned = path.replace("\\", "/").strip()
    cleaned = posixpath.normpath(cleaned.lstrip("/")) if cleaned else ""
    if cleaned in ("", ".") or cleaned == ".." or cleaned.startswith("../"):
        raise ValueError(f"Invalid repository path: {path!r}")
    return cleaned


class FileChange(BaseModel):
    """A single file change in a commit batch.

    Attributes:
        path: Repository-relative path, normalized on construction.
        content: New file content. Required unless ``action`` is DELETE.
        action: Create, modify or delete.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    content: Optional[bytes] = None
    action: FileAction = FileAction.MODIFY

    @field_validator("path")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_path(value)

    @field_validator("content", mode="before")
    @classmethod
    def _encode(cls, value):
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    @model_validator(mode="after")
    def _content_required(self) -> "FileChange":
        if self.action != FileAction.DELETE and self.content is None:
            raise ValueError(f"content is required for {self.action.value} of {self.path}")
        return self


class TreeEntry(BaseModel):
    """One entry of a tree-create request.

    A ``sha`` of ``None`` removes the path from the base tree.
    """

    path: str
    mode: str = "100644"
    type: str = "blob"
    sha: Optional[str] = None


class CommitInfo(BaseModel):
    """Tree and parents of an existing commit."""

    sha: str
    tree_sha: str
    parents: List[str] = []
    message: Optional[str] = None


class CommitSummary(BaseModel):
    """A commit as returned by the commit-list endpoint."""

    sha: str
    message: str = ""
    author: Optional[str] = None
    date: Optional[str] = None
    url: Optional[str] = None


class CommitResult(BaseModel):
    """Outcome of a CommitBuilder run. ``version_number`` is advisory."""

    model_config = ConfigDict(frozen=True)

    commit_sha: str
    commit_url: str
    version_number: int
    message: str
    branch: str
    files_committed: int = 0
    dry_run: bool = False
