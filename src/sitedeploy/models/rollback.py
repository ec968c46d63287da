"""Data models for local file rollback."""

import base64
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from .git import FileAction


class FileChangeRecord(BaseModel):
    """Pre-image of a local file captured before it is written.

    ``original_content`` of ``None`` means the file did not exist, so undo
    deletes it.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    original_content: Optional[bytes] = None
    action: FileAction = FileAction.MODIFY

    @property
    def existed(self) -> bool:
        return self.original_content is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "originalContent": (
                base64.b64encode(self.original_content).decode("ascii")
                if self.original_content is not None
                else None
            ),
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileChangeRecord":
        original = data.get("originalContent")
        return cls(
            path=data["path"],
            original_content=base64.b64decode(original) if original is not None else None,
            action=FileAction(data.get("action", FileAction.MODIFY.value)),
        )


class UndoResult(BaseModel):
    path: str
    success: bool
    error: Optional[str] = None
