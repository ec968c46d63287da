"""Reversible writes to the local working copy."""

from pathlib import Path
from typing import List, Sequence, Union

from ..exceptions import ValidationError
from ..logging import get_logger
from ..models.git import FileAction, FileChange, normalize_path
from ..models.rollback import FileChangeRecord, UndoResult

logger = get_logger(__name__)


class RollbackManager:
    """Capture pre-images of local files so a batch of writes can be undone.

    Only the local working copy is covered. Remote commits are immutable;
    reverting one means publishing a new commit.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Path:
        """Absolute path for a working-copy-relative path.

        Raises:
            ValidationError: If the path is empty or escapes the working copy
        """
        try:
            relative = normalize_path(path)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        full_path = (self.root / relative).resolve()
        if full_path != self.root and self.root not in full_path.parents:
            raise ValidationError(f"Path escapes working copy: {path}")
        return full_path

    def begin_change(self, path: str, action: FileAction = FileAction.MODIFY) -> FileChangeRecord:
        """Record the current content of ``path`` before it is written."""
        full_path = self.resolve(path)
        original = full_path.read_bytes() if full_path.is_file() else None
        return FileChangeRecord(
            path=normalize_path(path),
            original_content=original,
            action=action,
        )

    def commit_change(self, path: str, new_content: Union[bytes, str]) -> None:
        full_path = self.resolve(path)
        if isinstance(new_content, str):
            new_content = new_content.encode("utf-8")
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(new_content)

    def apply(self, changes: Sequence[FileChange]) -> List[FileChangeRecord]:
        """Write a batch, undoing everything already written if any write fails."""
        records: List[FileChangeRecord] = []
        try:
            for change in changes:
                record = self.begin_change(change.path, change.action)
                records.append(record)
                if change.action == FileAction.DELETE:
                    full_path = self.resolve(change.path)
                    if full_path.exists():
                        full_path.unlink()
                else:
                    self.commit_change(change.path, change.content)
        except OSError as e:
            logger.error("local_write_failed", error=str(e), written=len(records))
            self.undo(records)
            raise
        return records

    def undo(self, records: Sequence[FileChangeRecord]) -> List[UndoResult]:
        """Restore every recorded pre-image.

        Records are replayed newest first so that a path written twice ends
        at its earliest pre-image. Failures are reported per record and do
        not stop the remaining restores.
        """
        results: List[UndoResult] = []
        for record in reversed(records):
            try:
                full_path = self.resolve(record.path)
                if record.original_content is None:
                    if full_path.exists():
                        full_path.unlink()
                else:
                    full_path.parent.mkdir(parents=True, exist_ok=True)
                    full_path.write_bytes(record.original_content)
                results.append(UndoResult(path=record.path, success=True))
            except (OSError, ValidationError) as e:
                logger.error("undo_failed", path=record.path, error=str(e))
                results.append(UndoResult(path=record.path, success=False, error=str(e)))
        results.reverse()
        return results
