"""Taxonomy kinds — categories and tags share one resolution algorithm.

A :class:`TaxonomyKind` carries everything that differs between the two:
the API namespace, the resource kind and the creation payload. The client
resolves terms generically over a kind.

INVARIANT: Display names match case-insensitively.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from halopub.domain.posts import API_VERSION, slugify


class Term(BaseModel):
    """One category or tag: opaque identifier plus display name."""

    model_config = {"frozen": True}

    identifier: str
    display_name: str

    @classmethod
    def from_resource(cls, item: dict[str, Any]) -> Term | None:
        """Read a Halo list item; None when it has no identifier."""
        metadata = item.get("metadata") or {}
        spec = item.get("spec") or {}
        name = metadata.get("name")
        if not isinstance(name, str) or not name:
            return None
        display = spec.get("displayName")
        return cls(identifier=name, display_name=display if isinstance(display, str) else "")

    def matches(self, display_name: str) -> bool:
        return self.display_name.casefold() == display_name.casefold()


@dataclass(frozen=True)
class TaxonomyKind:
    """API namespace plus the creation payload for one taxonomy."""

    namespace: str
    kind: str
    generate_name: str
    build_spec: Callable[[str, int, dict[str, Any]], dict[str, Any]]

    def creation_payload(
        self,
        display_name: str,
        position: int,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Bare minimal resource for a new term.

        *position* is the term's index in the catalog once created (catalog
        size plus terms already created in this call).
        """
        return {
            "apiVersion": API_VERSION,
            "kind": self.kind,
            "metadata": {"name": "", "generateName": self.generate_name},
            "spec": self.build_spec(display_name, position, options or {}),
        }


def _category_spec(display_name: str, position: int, options: dict[str, Any]) -> dict[str, Any]:
    return {
        "displayName": display_name,
        "slug": slugify(display_name),
        "description": "",
        "cover": "",
        "template": "",
        "priority": position,
        "children": [],
    }


def _tag_spec(display_name: str, position: int, options: dict[str, Any]) -> dict[str, Any]:
    return {
        "displayName": display_name,
        "slug": slugify(display_name),
        "color": options.get("color", DEFAULT_TAG_COLOR),
        "cover": "",
    }


DEFAULT_TAG_COLOR = "#ffffff"

CATEGORIES = TaxonomyKind(
    namespace="categories",
    kind="Category",
    generate_name="category-",
    build_spec=_category_spec,
)

TAGS = TaxonomyKind(
    namespace="tags",
    kind="Tag",
    generate_name="tag-",
    build_spec=_tag_spec,
)
