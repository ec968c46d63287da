"""Local file rollback."""

from .manager import RollbackManager
from .site_state import LocalSiteState

__all__ = ["LocalSiteState", "RollbackManager"]
