"""Site registry — configured Halo sites and the publish-by-default flag.

INVARIANT: A site without a non-empty url or token is invalid and never
enters the registry.
INVARIANT: After any mutation, exactly one site is the default whenever
at least one site exists.
INVARIANT: ``Site.url`` is a scheme-qualified origin (plus path, if any)
with no trailing slash.

The registry is a frozen value: mutations return a new registry, and the
engine receives it explicitly on every call.
"""

from __future__ import annotations

import re
import uuid
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_site_url(raw: str) -> str:
    """Canonicalize a site URL, or return ``""`` if it cannot be parsed.

    Examples:
        >>> normalize_site_url("blog.example.com/")
        'https://blog.example.com'
        >>> normalize_site_url("http://example.com/halo//")
        'http://example.com/halo'
        >>> normalize_site_url("https://example.com:443")
        'https://example.com'
    """
    url = raw.strip() if isinstance(raw, str) else ""
    if not url:
        return ""
    if not _SCHEME_RE.match(url):
        url = f"https://{url}"
    url = url.rstrip("/")
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return ""
    if not parts.hostname or " " in parts.netloc:
        return ""
    scheme = parts.scheme.lower()
    host = parts.hostname
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    return f"{scheme}://{host}{parts.path.rstrip('/')}"


def new_site_id() -> str:
    return uuid.uuid4().hex


class Site(BaseModel):
    """One configured Halo site."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=new_site_id)
    name: str = ""
    url: str
    token: str
    default: bool = False

    @property
    def label(self) -> str:
        """Human label: the name when set, otherwise the URL."""
        return self.name or self.url

    def matches(self, ref: str) -> bool:
        """Whether *ref* names this site by id, canonical URL or name."""
        ref = ref.strip()
        if not ref:
            return False
        return ref in (self.id, self.name) or normalize_site_url(ref) == self.url


def normalize_site(raw: Any) -> Site | None:
    """Build a :class:`Site` from stored data, or None when invalid.

    Accepts the legacy ``baseUrl`` key for the URL.
    """
    if isinstance(raw, Site):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        return None
    url = normalize_site_url(raw.get("url") or raw.get("baseUrl") or "")
    token = raw.get("token")
    token = token.strip() if isinstance(token, str) else ""
    if not url or not token:
        return None
    name = raw.get("name")
    return Site(
        id=str(raw.get("id") or new_site_id()),
        name=name.strip() if isinstance(name, str) else "",
        url=url,
        token=token,
        default=bool(raw.get("default")),
    )


class SiteRegistry(BaseModel):
    """Validated site list plus the global publish-by-default setting.

    Serialized under the ``settings`` storage key with the camelCase
    ``publishByDefault`` field name.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    publish_by_default: bool = Field(default=True, alias="publishByDefault")
    sites: list[Site] = Field(default_factory=list)

    @field_validator("sites", mode="before")
    @classmethod
    def _normalize_sites(cls, value: Any) -> list[Site]:
        """Drop invalid sites, then keep exactly one default (first wins)."""
        if not isinstance(value, list):
            return []
        sites = [site for site in (normalize_site(item) for item in value) if site is not None]
        if not sites:
            return sites
        default_idx = next((i for i, site in enumerate(sites) if site.default), 0)
        return [
            site.model_copy(update={"default": i == default_idx})
            for i, site in enumerate(sites)
        ]

    # --- Queries ---

    @property
    def default_site(self) -> Site | None:
        return next((site for site in self.sites if site.default), None)

    def find_by_url(self, url: str) -> Site | None:
        """Exact lookup by canonical URL (the linkage ``site`` value)."""
        return next((site for site in self.sites if site.url == url), None)

    def find(self, ref: str) -> Site | None:
        """Lookup by id, canonical URL or name."""
        return next((site for site in self.sites if site.matches(ref)), None)

    # --- Mutations (each returns a new, re-validated registry) ---

    def with_site(self, site: Site) -> SiteRegistry:
        sites = list(self.sites)
        if site.default:
            sites = [s.model_copy(update={"default": False}) for s in sites]
        sites.append(site)
        return self._rebuild(sites)

    def without_site(self, site_id: str) -> SiteRegistry:
        return self._rebuild([s for s in self.sites if s.id != site_id])

    def with_default(self, site_id: str) -> SiteRegistry:
        return self._rebuild(
            [s.model_copy(update={"default": s.id == site_id}) for s in self.sites]
        )

    def with_publish_by_default(self, enabled: bool) -> SiteRegistry:
        return SiteRegistry(publish_by_default=enabled, sites=list(self.sites))

    def _rebuild(self, sites: list[Site]) -> SiteRegistry:
        return SiteRegistry(publish_by_default=self.publish_by_default, sites=sites)

    def to_storage(self) -> dict[str, Any]:
        """Storage representation (camelCase top-level keys)."""
        return self.model_dump(mode="json", by_alias=True)
