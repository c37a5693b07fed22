"""ReconcileService — publish a document to its Halo post and pull it back.

Publish pipeline: RESOLVE SITE → GUARD → LOAD → RENDER → APPLY → WRITE →
PUBLISH STATE → REFRESH → MERGE → RESPOND

Pull pipeline: RESOLVE LINKAGE → FETCH → MERGE → RESPOND

INVARIANT: Nothing is written remotely before the site is resolved and the
linkage guard passes.
INVARIANT: A failure in the create/update step is terminal; the publish
state, refresh and display-name steps only ever add warnings.
INVARIANT: Pull never changes the remote publication status.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog

from halopub.domain.frontmatter import Document, parse_document, serialize_document
from halopub.domain.linkage import LINKAGE_KEY, RemoteLinkage
from halopub.domain.posts import (
    FetchedPost,
    Post,
    apply_front_matter,
    extract_title,
    new_content,
    new_post,
    normalize_string_list,
)
from halopub.domain.sites import Site, SiteRegistry, normalize_site_url
from halopub.domain.taxonomy import CATEGORIES, TAGS, TaxonomyKind
from halopub.infrastructure.halo_client import HaloClient, HaloClientError
from halopub.infrastructure.markdown import render_commonmark
from halopub.services.base import BaseService
from halopub.services.contracts import PublishResultData, PullResultData, dump_validated
from halopub.services.result import ServiceResult
from halopub.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from halopub.domain.frontmatter import Value
    from halopub.plugins.manager import PluginManager

logger = structlog.get_logger(__name__)

type ClientFactory = Callable[[Site], HaloClient]
type SiteChooser = Callable[[list[Site]], Site | None]
type Renderer = Callable[[str], str]


class DocumentEditor(Protocol):
    """The local document: read its full text, replace its full text."""

    def get_value(self) -> str: ...

    def set_value(self, text: str) -> None: ...


@dataclass(frozen=True)
class SiteResolution:
    """Outcome of site selection. Neither a site nor an error code means cancelled."""

    site: Site | None = None
    code: str | None = None
    message: str = ""


def resolve_target_site(
    registry: SiteRegistry,
    linkage: RemoteLinkage,
    *,
    use_default: bool = False,
    ask_user: bool = False,
    choose_site: SiteChooser | None = None,
) -> SiteResolution:
    """Pick the site a publish goes to.

    Order: explicit default request, the site named by the linkage, the
    only configured site, an interactive choice, then default-or-first.
    """
    if use_default:
        site = registry.default_site
        if site is None:
            return SiteResolution(code="NO_DEFAULT_SITE", message="No default site is configured")
        return SiteResolution(site)

    if linkage.site:
        site = registry.find_by_url(_canonical(linkage.site))
        if site is None:
            return SiteResolution(
                code="SITE_NOT_CONFIGURED",
                message=f"Site {linkage.site} from the front matter is not configured",
            )
        return SiteResolution(site)

    if len(registry.sites) == 1:
        return SiteResolution(registry.sites[0])

    if ask_user and choose_site is not None:
        return SiteResolution(choose_site(list(registry.sites)))

    return SiteResolution(registry.default_site or (registry.sites[0] if registry.sites else None))


def merge_remote_state(
    front_matter: dict[str, Value],
    post: Post,
    *,
    site_url: str,
    categories: list[str],
    tags: list[str],
) -> dict[str, Value]:
    """Copy of *front_matter* carrying the authoritative remote fields.

    Empty remote values become None, which the serializer omits. The
    linkage block is always rewritten.
    """
    merged: dict[str, Value] = dict(front_matter)
    spec = post.spec
    merged["title"] = spec.title
    merged["slug"] = spec.slug
    merged["cover"] = spec.cover or None
    merged["excerpt"] = None if spec.excerpt.auto_generate else spec.excerpt.raw
    merged["categories"] = list(categories) or None
    merged["tags"] = list(tags) or None
    merged[LINKAGE_KEY] = RemoteLinkage(
        site=site_url,
        name=post.name,
        publish=post.is_published,
    ).to_value()
    return merged


class ReconcileService(BaseService):
    """Publishes documents to Halo and pulls remote state back into them.

    The site registry is passed into every call; the service holds no
    settings of its own beyond the placeholder title.
    """

    def __init__(
        self,
        *,
        client_factory: ClientFactory,
        renderer: Renderer | None = None,
        plugin_manager: PluginManager | None = None,
        untitled_title: str = "Untitled",
    ) -> None:
        super().__init__(plugin_manager)
        self._client_factory = client_factory
        self._render = renderer or render_commonmark
        self._untitled_title = untitled_title

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    @traced
    async def publish(
        self,
        editor: DocumentEditor,
        registry: SiteRegistry,
        *,
        use_default: bool = False,
        ask_user: bool = False,
        choose_site: SiteChooser | None = None,
    ) -> ServiceResult:
        """Create or update the remote post for the document in *editor*."""
        op = "publish"
        warnings: list[str] = []

        if not registry.sites:
            return ServiceResult.failure(op, "NO_SITES", "No Halo sites are configured")

        doc = parse_document(editor.get_value())
        if not doc.body.strip():
            return ServiceResult.failure(op, "EMPTY_DOCUMENT", "The document body is empty")

        linkage = RemoteLinkage.from_front_matter(doc.front_matter)

        # ── RESOLVE SITE ─────────────────────────────────────────
        with trace_span("resolve_site"):
            resolution = resolve_target_site(
                registry,
                linkage,
                use_default=use_default,
                ask_user=ask_user,
                choose_site=choose_site,
            )
        if resolution.code is not None:
            return ServiceResult.failure(op, resolution.code, resolution.message)
        if resolution.site is None:
            logger.info("publish.cancelled")
            return ServiceResult(ok=True, op=op, data={"status": "cancelled"})
        site = resolution.site

        # ── GUARD ────────────────────────────────────────────────
        if linkage.site and _canonical(linkage.site) != site.url:
            return ServiceResult.failure(
                op,
                "SITE_MISMATCH",
                f"The document is linked to {linkage.site}, not {site.url}",
                detail={"linked_site": linkage.site, "target_site": site.url},
            )

        log = logger.bind(site=site.url, name=linkage.name or None)
        async with self._client_factory(site) as client:
            # ── LOAD ─────────────────────────────────────────────
            if linkage.name:
                try:
                    with trace_span("load_remote"):
                        existing = await client.fetch_post(linkage.name)
                except HaloClientError as exc:
                    return _fetch_failure(op, exc, site, linkage.name)
                post, content = existing.post, existing.content
            else:
                post, content = new_post(), new_content()

            # ── RENDER ───────────────────────────────────────────
            with trace_span("render"):
                content.raw_type = "markdown"
                content.raw = doc.body
                content.rendered = self._render(doc.body)

            # ── APPLY ────────────────────────────────────────────
            apply_front_matter(doc.front_matter, post)
            category_names = normalize_string_list(doc.front_matter.get("categories"))
            tag_names = normalize_string_list(doc.front_matter.get("tags"))

            # ── WRITE ────────────────────────────────────────────
            created = not post.name
            try:
                with trace_span("resolve_terms"):
                    post.spec.categories = await _resolve_terms(client, CATEGORIES, category_names)
                    post.spec.tags = await _resolve_terms(client, TAGS, tag_names)
                with trace_span("write_post"):
                    if created:
                        title_hint = extract_title(doc.body, fallback=self._untitled_title)
                        post = await client.create_post(post, content, title_hint)
                    else:
                        await client.update_post(post, content)
            except HaloClientError as exc:
                log.error("publish.write_failed", error=str(exc), status=exc.status_code)
                return ServiceResult.failure(
                    op,
                    "PUBLISH_FAILED",
                    f"Publishing to {site.url} failed: {exc}",
                    detail={"site": site.url, **exc.to_detail()},
                )

            # ── PUBLISH STATE ────────────────────────────────────
            desired = registry.publish_by_default
            if linkage.publish is not None:
                desired = linkage.publish
            with trace_span("publish_state") as span:
                if span is not None:
                    span.annotate("desired", desired)
                if desired != post.is_published:
                    try:
                        await client.change_publish_state(post.name, desired)
                        post.spec.publish = desired
                    except HaloClientError as exc:
                        log.warning("publish.state_failed", error=str(exc), status=exc.status_code)
                        action = "publish" if desired else "unpublish"
                        warnings.append(f"Could not {action} post {post.name}: {exc}")

            # ── REFRESH ──────────────────────────────────────────
            with trace_span("refresh"):
                freshest = await client.get_post(post.name)
                if freshest is not None:
                    post = freshest.post
                else:
                    warnings.append(f"Could not refresh post {post.name}; using the local copy")
                categories = await _display_names(
                    client, CATEGORIES, post.spec.categories, category_names, warnings
                )
                tags = await _display_names(client, TAGS, post.spec.tags, tag_names, warnings)

        # ── MERGE ────────────────────────────────────────────────
        with trace_span("merge"):
            merged = merge_remote_state(
                doc.front_matter,
                post,
                site_url=site.url,
                categories=categories,
                tags=tags,
            )
            editor.set_value(serialize_document(merged, doc.body))

        log.info("publish.done", name=post.name, created=created, published=post.is_published)
        self._dispatch_event(
            "post_publish",
            {
                "site_url": site.url,
                "name": post.name,
                "title": post.spec.title,
                "published": post.is_published,
                "created": created,
            },
            warnings,
        )

        data = dump_validated(
            PublishResultData,
            {
                "status": "published" if post.is_published else "draft",
                "site": site.url,
                "site_label": site.label,
                "name": post.name,
                "title": post.spec.title,
                "slug": post.spec.slug,
                "created": created,
                "published": post.is_published,
                "categories": categories,
                "tags": tags,
            },
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    @traced
    async def pull(self, editor: DocumentEditor, registry: SiteRegistry) -> ServiceResult:
        """Replace the document's metadata and body with its remote post."""
        op = "pull"
        warnings: list[str] = []

        if not registry.sites:
            return ServiceResult.failure(op, "NO_SITES", "No Halo sites are configured")

        doc = parse_document(editor.get_value())
        linkage = RemoteLinkage.from_front_matter(doc.front_matter)
        if not linkage.is_linked:
            return ServiceResult.failure(
                op, "NOT_LINKED", "The document has not been published to Halo yet"
            )

        site = registry.find_by_url(_canonical(linkage.site))
        if site is None:
            return ServiceResult.failure(
                op,
                "SITE_NOT_CONFIGURED",
                f"Site {linkage.site} from the front matter is not configured",
            )

        async with self._client_factory(site) as client:
            try:
                with trace_span("fetch"):
                    fetched = await client.fetch_post(linkage.name)
            except HaloClientError as exc:
                return _fetch_failure(op, exc, site, linkage.name)
            categories = await _display_names(
                client,
                CATEGORIES,
                fetched.post.spec.categories,
                normalize_string_list(doc.front_matter.get("categories")),
                warnings,
            )
            tags = await _display_names(
                client,
                TAGS,
                fetched.post.spec.tags,
                normalize_string_list(doc.front_matter.get("tags")),
                warnings,
            )

        with trace_span("merge"):
            text = _pulled_text(doc, fetched, site_url=site.url, categories=categories, tags=tags)
            editor.set_value(text)

        logger.info("pull.done", site=site.url, name=fetched.post.name)
        self._dispatch_event(
            "post_pull", {"site_url": site.url, "name": fetched.post.name}, warnings
        )

        data = dump_validated(
            PullResultData,
            {
                "site": site.url,
                "site_label": site.label,
                "name": fetched.post.name,
                "title": fetched.post.spec.title,
                "published": fetched.post.is_published,
                "body_replaced": bool(fetched.content.raw),
            },
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fetch_failure(op: str, exc: HaloClientError, site: Site, name: str) -> ServiceResult:
    """A 404 means the linked post is gone; any other failure is an outage."""
    logger.warning("remote.fetch_failed", site=site.url, name=name, error=str(exc))
    if exc.status_code == 404:
        return ServiceResult.failure(
            op,
            "REMOTE_NOT_FOUND",
            f"Remote post {name} was not found on {site.url}",
            detail={"site": site.url, "name": name},
        )
    return ServiceResult.failure(
        op,
        "REMOTE_ERROR",
        f"Could not load remote post {name} from {site.url}: {exc}",
        detail={"site": site.url, "name": name, **exc.to_detail()},
    )


def _canonical(url: str) -> str:
    return normalize_site_url(url) or url


async def _resolve_terms(client: HaloClient, kind: TaxonomyKind, names: list[str]) -> list[str]:
    # An empty list clears the post's terms; nothing to resolve.
    if not names:
        return []
    return await client.resolve_or_create_terms(kind, names)


async def _display_names(
    client: HaloClient,
    kind: TaxonomyKind,
    identifiers: list[str] | None,
    fallback: list[str],
    warnings: list[str],
) -> list[str]:
    try:
        return await client.display_names_for(kind, identifiers or [])
    except HaloClientError as exc:
        logger.warning("reconcile.display_names_failed", kind=kind.kind, error=str(exc))
        warnings.append(f"Could not look up {kind.namespace}: {exc}")
        return fallback


def _pulled_text(
    doc: Document,
    fetched: FetchedPost,
    *,
    site_url: str,
    categories: list[str],
    tags: list[str],
) -> str:
    merged = merge_remote_state(
        doc.front_matter,
        fetched.post,
        site_url=site_url,
        categories=categories,
        tags=tags,
    )
    body = fetched.content.raw or doc.body
    return serialize_document(merged, body)

