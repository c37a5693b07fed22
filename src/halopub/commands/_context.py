"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy storage, plugin and service
initialization, an event-loop runner for the async engine, and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

import functools
import sys
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, ClassVar

import anyio
import click

from halopub.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    import httpx

    from halopub.config.settings import HaloSettings
    from halopub.domain.sites import Site
    from halopub.infrastructure.halo_client import HaloClient
    from halopub.infrastructure.storage import JsonStorage
    from halopub.plugins.manager import PluginManager
    from halopub.services.reconcile import ReconcileService
    from halopub.services.result import ServiceResult
    from halopub.services.sites import SiteService


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  Storage and plugins
    are created lazily on first use so ``--help`` and ``--version`` never
    touch the workspace.
    """

    # HTTP transport handed to every HaloClient; None means the network.
    transport: ClassVar[httpx.AsyncBaseTransport | None] = None

    def __init__(self, settings: HaloSettings) -> None:
        self.settings = settings
        self._storage: JsonStorage | None = None
        self._plugins: PluginManager | None = None

        # Configure structured logging
        from halopub.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        # Enable telemetry context var when verbose
        if settings.verbose:
            from halopub.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def storage(self) -> JsonStorage:
        """The settings store (created lazily on first access)."""
        if self._storage is None:
            from halopub.infrastructure.storage import JsonStorage

            self._storage = JsonStorage(self.settings.storage_path)
        return self._storage

    @property
    def plugins(self) -> PluginManager:
        """Built-in plus discovered plugins (loaded lazily on first access)."""
        if self._plugins is None:
            from halopub.plugins.manager import PluginManager

            pm = PluginManager()
            pm.register_builtins()
            pm.discover_and_load(local_dir=self.settings.plugins_dir)
            self._plugins = pm
        return self._plugins

    @property
    def sites(self) -> SiteService:
        from halopub.services.sites import SiteService

        return SiteService(self.storage)

    @property
    def reconciler(self) -> ReconcileService:
        from halopub.services.reconcile import ReconcileService

        return ReconcileService(
            client_factory=self.make_client,
            renderer=self.plugins.render,
            plugin_manager=self.plugins,
            untitled_title=self.settings.publish.untitled_title,
        )

    @property
    def is_interactive(self) -> bool:
        """Return True when interactive prompts should fire.

        Prompts require: no ``--no-interact``, no ``--json``, and stdin is a TTY.
        """
        settings = self.settings
        return not settings.no_interact and not settings.json_output and sys.stdin.isatty()

    def make_client(self, site: Site) -> HaloClient:
        """A client for *site* configured from the ``[http]`` and ``[publish]`` sections."""
        from halopub.infrastructure.halo_client import HaloClient

        return HaloClient(
            site,
            timeout=self.settings.http.timeout,
            user_agent=self.settings.http.user_agent,
            tag_color=self.settings.publish.tag_color,
            transport=self.transport,
        )

    def run(
        self,
        func: Callable[..., Awaitable[ServiceResult]],
        *args: Any,
        **kwargs: Any,
    ) -> ServiceResult:
        """Run an async service method to completion on a fresh event loop."""
        return anyio.run(functools.partial(func, *args, **kwargs))

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
          A cancelled selection is a success.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
