"""Typed payload contracts for service and adapter boundaries.

These models validate operation payload shapes before they leave the
service layer so key regressions (for example ``site`` vs ``site_url``)
fail fast in tests and during development.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python")


class PublishResultData(BaseModel):
    """Payload contract for ``ReconcileService.publish``."""

    status: Literal["published", "draft"]
    site: str
    site_label: str
    name: str
    title: str
    slug: str
    created: bool
    published: bool
    categories: list[str]
    tags: list[str]


class PullResultData(BaseModel):
    """Payload contract for ``ReconcileService.pull``."""

    site: str
    site_label: str
    name: str
    title: str
    published: bool
    body_replaced: bool


class SiteItem(BaseModel):
    """One configured site, token masked."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    url: str
    token: str
    default: bool


class SiteListData(BaseModel):
    """Payload contract for ``SiteService.list_sites``."""

    publish_by_default: bool
    count: int
    items: list[SiteItem]


class SiteChangeData(BaseModel):
    """Payload contract for site add/remove/default operations."""

    site: SiteItem
    default_site: str | None
    count: int
