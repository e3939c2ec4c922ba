"""Configuration models and loaders."""

from album_edge.config.loader import YamlConfigLoader
from album_edge.config.models import AppConfig, ConfigLoadRequest

__all__ = ["AppConfig", "ConfigLoadRequest", "YamlConfigLoader"]
