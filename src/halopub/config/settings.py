"""``HaloSettings``: one frozen object built from every configuration layer.

Later layers lose to earlier ones:

1. keyword arguments (the root CLI flags)
2. ``HALOPUB_*`` environment variables, ``__`` separating nested fields
3. the ``halopub.toml`` picked by :func:`~halopub.config.discovery.locate_config`
4. defaults on the section models
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from halopub.config.discovery import locate_config
from halopub.config.models import (
    HalopubConfig,
    HttpConfig,
    PluginsConfig,
    PublishConfig,
    StorageConfig,
)

STATE_DIRNAME = ".halopub"
STORAGE_FILENAME = "storage.json"

# The config file for the settings object currently being built.
_config_file: ContextVar[Path | None] = ContextVar("halopub_config_file", default=None)


class WorkspaceTomlSource(TomlConfigSettingsSource):
    """The workspace ``halopub.toml``, checked against the section models.

    Both a syntax error and a rejected value become a
    :class:`click.ClickException` naming the file, so the CLI reports them
    as a one-line usage error instead of a traceback.
    """

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        try:
            super().__init__(settings_cls, toml_file=path)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {path}: {exc}"
            raise click.ClickException(msg) from exc

        try:
            HalopubConfig.model_validate(self.toml_data)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(part) for part in first["loc"])
            msg = f"Invalid config in {path}: {where}: {first['msg']}"
            raise click.ClickException(msg) from exc


class HaloSettings(BaseSettings):
    """Settings for one ``halopub`` invocation, stored on the AppContext.

    ``workspace_root`` is the directory of the config file in use (or the
    directory the search started from); relative storage and plugin paths
    resolve against it.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="HALOPUB_",
        env_nested_delimiter="__",
    )

    workspace_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Root CLI flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    no_interact: bool = False

    # halopub.toml sections
    http: HttpConfig = Field(default_factory=HttpConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            WorkspaceTomlSource(settings_cls, _config_file.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        workspace_root: Path | None = None,
        **cli_flags: Any,
    ) -> HaloSettings:
        """Build settings for one CLI invocation.

        The config file comes from :func:`locate_config`, searching from
        *workspace_root* when given.  An explicit *workspace_root* also
        wins over the config file's directory.
        """
        try:
            location = locate_config(config_path, start=workspace_root)
        except FileNotFoundError as exc:
            msg = f"Config file not found: {config_path}"
            raise click.ClickException(msg) from exc

        token = _config_file.set(location.path)
        try:
            return cls(
                workspace_root=workspace_root or location.workspace_root,
                config_path=location.path,
                **cli_flags,
            )
        finally:
            _config_file.reset(token)

    @property
    def storage_path(self) -> Path:
        """Settings store location; relative paths resolve against the workspace."""
        path = self.storage.path
        if path is None:
            return self.workspace_root / STATE_DIRNAME / STORAGE_FILENAME
        if not path.is_absolute():
            return self.workspace_root / path
        return path

    @property
    def plugins_dir(self) -> Path:
        path = Path(self.plugins.local_dir)
        if not path.is_absolute():
            return self.workspace_root / path
        return path
