from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CORE_ASSETS: tuple[str, ...] = (
    "./",
    "./index.html",
    "./manifest.json",
    "./albums.json",
    "./img/logo.png",
    "./img/star.png",
    "./img/star2.png",
    "./img/icon_album/icon-album-00.png",
    "./img/icon_album/icon-album-01.png",
    "./img/icon_album/icon-album-02.png",
    "./img/icon_album/icon-album+00.png",
    "./img/icon_album/icon-album-news.png",
)


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str
    scope_url: str
    upstream_url: str
    app_shell: str = "./index.html"
    core_assets: Sequence[str] = DEFAULT_CORE_ASSETS
    skip_waiting: bool = True

    @field_validator("scope_url", "upstream_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Expected an http(s) URL, got: {value}")
        return value if value.endswith("/") else value + "/"


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    rotation: FileRotationSettings


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str
    file: FileLoggingSettings


class CacheSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["filesystem", "memory"] = "filesystem"
    storage_dir: str = "data/cache"
    enabled: bool = True
    # Zero disables the quota check.
    max_bytes: int = Field(default=0, ge=0)

    offline_generation: str = "album-offline-v1"
    meta_generation: str = "album-meta-v1"


class TimeoutSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    navigation_seconds: float = Field(default=8.0, gt=0)
    json_seconds: float = Field(default=4.0, gt=0)
    other_seconds: float = Field(default=8.0, gt=0)
    default_seconds: float = Field(default=15.0, gt=0)
    offline_seconds: float = Field(default=8.0, gt=0)
    range_foreground_seconds: float = Field(default=10.0, gt=0)
    range_background_seconds: float = Field(default=30.0, gt=0)


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "127.0.0.1"
    port: int = 8080
    messages_path: str = "/__edge__/messages"


class ConnectivitySettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    # Empty probes the scope root, which the fetcher maps onto the upstream.
    probe_url: str = ""
    interval_seconds: float = Field(default=30.0, gt=0)


class AppConfig(BaseModel):
    """
    Effective runtime configuration after applying all precedence rules.

    Precedence, lowest first: YAML file, .env file, process environment.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    app: AppSettings
    logging: LoggingSettings
    cache: CacheSettings = CacheSettings()
    timeouts: TimeoutSettings = TimeoutSettings()
    server: ServerSettings = ServerSettings()
    connectivity: ConnectivitySettings = ConnectivitySettings()


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "data/config/config.yaml"
    env_prefix: str = "EDGE__"
    dotenv_path: Optional[str] = "data/.env"
