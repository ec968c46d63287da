"""Configuration module."""

from .parser import ConfigSource, PublisherConfig, load_config
from .settings import EnvironmentSettings

__all__ = ["ConfigSource", "EnvironmentSettings", "PublisherConfig", "load_config"]
