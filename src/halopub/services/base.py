"""BaseService — shared foundation for halopub services.

Services receive an optional :class:`PluginManager`; lifecycle events are
dispatched through its hook relay after an operation succeeds.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from halopub.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes."""

    def __init__(self, plugin_manager: PluginManager | None = None) -> None:
        self._plugins = plugin_manager

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event. No-op without a plugin manager.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        if self._plugins is None:
            return
        try:
            getattr(self._plugins.hook, hook_name)(**payload)
        except Exception:
            logger.warning("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")
