"""Canonical site-state file in the local working copy."""

import json
from typing import Any, Dict, List, Optional

from ..models.git import FileAction, FileChange
from ..models.rollback import FileChangeRecord
from .manager import RollbackManager


class LocalSiteState:
    """Keeps the local site-state JSON file in step with the remote branch."""

    def __init__(self, manager: RollbackManager, path: str):
        self.manager = manager
        self.path = path

    def read(self) -> Optional[Dict[str, Any]]:
        full_path = self.manager.resolve(self.path)
        if not full_path.is_file():
            return None
        return json.loads(full_path.read_text(encoding="utf-8"))

    def write(self, site_state: Dict[str, Any]) -> List[FileChangeRecord]:
        full_path = self.manager.resolve(self.path)
        action = FileAction.MODIFY if full_path.exists() else FileAction.CREATE
        change = FileChange(path=self.path, content=json.dumps(site_state, indent=2), action=action)
        return self.manager.apply([change])
