"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, halopub.toml only contains
overrides. A workspace needs no config file at all.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# --- halopub.toml sections ---


class HttpConfig(BaseModel):
    """[http] section."""

    model_config = {"frozen": True}

    timeout: float = 30.0
    user_agent: str = "halopub"

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        return value


class PublishConfig(BaseModel):
    """[publish] section."""

    model_config = {"frozen": True}

    untitled_title: str = "Untitled"
    tag_color: str = "#ffffff"


class StorageConfig(BaseModel):
    """[storage] section."""

    model_config = {"frozen": True}

    path: Path | None = None


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    local_dir: str = ".halopub/plugins"


class HalopubConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    http: HttpConfig = Field(default_factory=HttpConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
