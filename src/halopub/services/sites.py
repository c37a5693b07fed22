"""SiteService — configure Halo sites and the publish-by-default setting.

The registry lives under the ``settings`` key of the key-value store in
the same camelCase shape the editor plugin used, so an exported store
can be read back unchanged.

INVARIANT: Every mutation is validated by :class:`SiteRegistry` before it
is saved; an invalid site is rejected and never stored.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from halopub.domain.sites import Site, SiteRegistry, normalize_site_url
from halopub.infrastructure.storage import JsonStorage, StorageError
from halopub.services.base import BaseService
from halopub.services.contracts import SiteChangeData, SiteListData, dump_validated
from halopub.services.result import ServiceResult
from halopub.services.telemetry import traced

SETTINGS_KEY = "settings"

logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    """Hide all but the last four characters of a long token.

    Examples:
        >>> mask_token("pat_1234567890")
        '****7890'
        >>> mask_token("short")
        '****'
    """
    if len(token) <= 8:
        return "****"
    return f"****{token[-4:]}"


def _site_item(site: Site) -> dict[str, Any]:
    return {
        "id": site.id,
        "name": site.name,
        "url": site.url,
        "token": mask_token(site.token),
        "default": site.default,
    }


class SiteService(BaseService):
    """Load, change and persist the site registry."""

    def __init__(self, storage: JsonStorage) -> None:
        super().__init__()
        self._storage = storage

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_registry(self) -> SiteRegistry:
        """Read the stored registry; missing or malformed data yields defaults."""
        raw = self._storage.get(SETTINGS_KEY)
        if not isinstance(raw, dict):
            return SiteRegistry()
        publish_by_default = raw.get("publishByDefault")
        if not isinstance(publish_by_default, bool):
            publish_by_default = True
        try:
            return SiteRegistry(publish_by_default=publish_by_default, sites=raw.get("sites"))
        except ValidationError:
            logger.warning("Stored site settings are invalid; using defaults", exc_info=True)
            return SiteRegistry()

    def _save(self, op: str, registry: SiteRegistry) -> ServiceResult | None:
        try:
            self._storage.set(SETTINGS_KEY, registry.to_storage())
        except StorageError as exc:
            logger.error("Saving site settings failed: %s", exc)
            return ServiceResult.failure(op, "STORAGE_ERROR", str(exc))
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def list_sites(self) -> ServiceResult:
        registry = self.load_registry()
        data = dump_validated(
            SiteListData,
            {
                "publish_by_default": registry.publish_by_default,
                "count": len(registry.sites),
                "items": [_site_item(site) for site in registry.sites],
            },
        )
        return ServiceResult(ok=True, op="list_sites", data=data)

    @traced
    def add_site(
        self,
        url: str,
        token: str,
        *,
        name: str = "",
        make_default: bool = False,
    ) -> ServiceResult:
        """Add a site; the first site added always becomes the default."""
        op = "add_site"
        canonical = normalize_site_url(url)
        token = token.strip()
        if not canonical or not token:
            return ServiceResult.failure(
                op,
                "INVALID_SITE",
                "A site needs a valid URL and a non-empty token",
                detail={"url": url},
            )

        registry = self.load_registry()
        if registry.find_by_url(canonical) is not None:
            return ServiceResult.failure(
                op, "DUPLICATE_SITE", f"Site {canonical} is already configured"
            )

        site = Site(
            name=name.strip(),
            url=canonical,
            token=token,
            default=make_default or not registry.sites,
        )
        registry = registry.with_site(site)
        if (failure := self._save(op, registry)) is not None:
            return failure
        return self._change_result(op, registry, site.id)

    @traced
    def remove_site(self, ref: str) -> ServiceResult:
        """Remove a site by id, URL or name; the default moves to the first remaining site."""
        op = "remove_site"
        registry = self.load_registry()
        site = registry.find(ref)
        if site is None:
            return ServiceResult.failure(
                op, "SITE_NOT_FOUND", f"No configured site matches {ref!r}"
            )

        registry = registry.without_site(site.id)
        if (failure := self._save(op, registry)) is not None:
            return failure
        default = registry.default_site
        data = dump_validated(
            SiteChangeData,
            {
                "site": _site_item(site),
                "default_site": default.url if default else None,
                "count": len(registry.sites),
            },
        )
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def set_default(self, ref: str) -> ServiceResult:
        op = "set_default"
        registry = self.load_registry()
        site = registry.find(ref)
        if site is None:
            return ServiceResult.failure(
                op, "SITE_NOT_FOUND", f"No configured site matches {ref!r}"
            )

        registry = registry.with_default(site.id)
        if (failure := self._save(op, registry)) is not None:
            return failure
        return self._change_result(op, registry, site.id)

    @traced
    def set_publish_default(self, enabled: bool) -> ServiceResult:
        """Turn the publish-by-default setting on or off."""
        op = "set_publish_default"
        registry = self.load_registry().with_publish_by_default(enabled)
        if (failure := self._save(op, registry)) is not None:
            return failure
        return ServiceResult(ok=True, op=op, data={"publish_by_default": enabled})

    @staticmethod
    def _change_result(op: str, registry: SiteRegistry, site_id: str) -> ServiceResult:
        site = next(s for s in registry.sites if s.id == site_id)
        default = registry.default_site
        data = dump_validated(
            SiteChangeData,
            {
                "site": _site_item(site),
                "default_site": default.url if default else None,
                "count": len(registry.sites),
            },
        )
        return ServiceResult(ok=True, op=op, data=data)
