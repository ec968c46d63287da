"""Configuration parser with Pydantic validation."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigurationError
from .settings import EnvironmentSettings

DEFAULT_CONFIG_PATH = Path(".sitedeploy") / "config.yaml"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class RepositorySettings(_Frozen):
    """Remote repository settings."""

    owner: Optional[str] = None
    name: Optional[str] = None
    default_branch: str = "development"
    production_branch: str = "main"
    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    timeout: float = 30.0
    max_attempts: int = 3


class DeploymentSettings(_Frozen):
    """Deployment provider settings."""

    project_id: Optional[str] = None
    token: Optional[str] = None
    api_url: str = "https://api.vercel.com"
    poll_interval: float = 5.0
    live_timeout: float = 300.0


class ReviewSettings(_Frozen):
    """External generator and reviewer endpoints."""

    seo_endpoint: Optional[str] = None
    review_endpoint: Optional[str] = None
    timeout: float = 180.0


class LayoutSettings(_Frozen):
    """Paths inside the repository and the local working copy."""

    snapshots_path: str = "frontend/production-snapshots"
    site_data_path: str = "frontend/src/data/websiteData.json"
    working_copy: str = "."
    records_db: str = ".sitedeploy/deployments.db"


class PublishSettings(_Frozen):
    """Publish defaults."""

    dry_run: bool = False
    max_blob_workers: int = 8


class PublisherConfig(_Frozen):
    """Immutable configuration passed into every component."""

    repository: RepositorySettings = Field(default_factory=RepositorySettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    review: ReviewSettings = Field(default_factory=ReviewSettings)
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    publish: PublishSettings = Field(default_factory=PublishSettings)

    @property
    def repo_slug(self) -> str:
        return f"{self.repository.owner}/{self.repository.name}"

    def validate_required(self) -> "PublisherConfig":
        """Fail fast on missing credentials or identifiers."""
        missing = []
        if not self.repository.token:
            missing.append("GITHUB_TOKEN")
        if not self.repository.owner:
            missing.append("REPO_OWNER")
        if not self.repository.name:
            missing.append("REPO_NAME")
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
        return self


class ConfigSource:
    """Configuration source tracking."""

    def __init__(self, name: str, data: Dict[str, Any]):
        self.name = name
        self.data = data


def _merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge multiple config dictionaries with later ones taking precedence."""
    result: Dict[str, Any] = {}

    for config in configs:
        _deep_merge(result, config)

    return result


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """Deep merge source into target."""
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    require_credentials: bool = True,
) -> Tuple[PublisherConfig, List[ConfigSource]]:
    """Load configuration with inheritance: defaults < config.yaml < env vars < overrides.

    Raises:
        ConfigurationError: If the file is malformed or, when
            ``require_credentials`` is set, the token or repository
            identifiers are missing.
    """
    sources = []

    defaults = PublisherConfig().model_dump()
    sources.append(ConfigSource("defaults", defaults))

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    file_config: Dict[str, Any] = {}
    if path.exists():
        with open(path, encoding="utf-8") as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        sources.append(ConfigSource(str(path), file_config))
    elif config_path:
        raise ConfigurationError(f"Config file not found: {path}")

    env_config = EnvironmentSettings().as_overrides()
    if env_config:
        sources.append(ConfigSource("environment", env_config))

    cli_config = overrides or {}
    if cli_config:
        sources.append(ConfigSource("overrides", cli_config))

    merged_config = _merge_configs(defaults, file_config, env_config, cli_config)

    try:
        config = PublisherConfig(**merged_config)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if require_credentials:
        config.validate_required()

    return config, sources
