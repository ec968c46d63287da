"""Environment settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentSettings(BaseSettings):
    """Recognized environment variables.

    Unset variables stay ``None`` so that the parser can tell them apart from
    values that were explicitly provided.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Repository identification
    repo_owner: Optional[str] = None
    repo_name: Optional[str] = None

    # Branch strategy
    current_branch: Optional[str] = None
    production_branch: Optional[str] = None

    # GitHub API token
    github_token: Optional[str] = None

    # Deployment provider
    project_id: Optional[str] = None
    deployment_token: Optional[str] = None

    # Layout
    snapshots_path: Optional[str] = None
    site_data_path: Optional[str] = None

    dry_run: Optional[bool] = None

    def as_overrides(self) -> dict:
        """Return the variables that were set, keyed by config section."""
        values = self.model_dump(exclude_none=True)
        mapping = {
            "repo_owner": ("repository", "owner"),
            "repo_name": ("repository", "name"),
            "current_branch": ("repository", "default_branch"),
            "production_branch": ("repository", "production_branch"),
            "github_token": ("repository", "token"),
            "project_id": ("deployment", "project_id"),
            "deployment_token": ("deployment", "token"),
            "snapshots_path": ("layout", "snapshots_path"),
            "site_data_path": ("layout", "site_data_path"),
            "dry_run": ("publish", "dry_run"),
        }
        result: dict = {}
        for key, value in values.items():
            section, field = mapping[key]
            result.setdefault(section, {})[field] = value
        return result
