"""Async client for one Halo site — posts, drafts, publish state, taxonomy.

Every request carries ``Authorization: Bearer <token>`` and JSON bodies,
and is bounded by the configured timeout. Non-2xx responses, timeouts and
transport failures all raise :class:`HaloClientError`; callers decide
whether a failure is fatal.

INVARIANT: Term creation inside one ``resolve_or_create_terms`` call is
sequential and never creates the same display name twice. Two concurrent
calls can still race; the server is the only arbiter there.
"""

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import ValidationError

from halopub.domain.posts import (
    CONTENT_JSON_ANNOTATION,
    PATCHED_CONTENT_ANNOTATION,
    PATCHED_RAW_ANNOTATION,
    FetchedPost,
    Post,
    PostContent,
    slugify,
)
from halopub.domain.taxonomy import DEFAULT_TAG_COLOR, TaxonomyKind, Term

if TYPE_CHECKING:
    from halopub.domain.sites import Site

POSTS_PATH = "/apis/uc.api.content.halo.run/v1alpha1/posts"
CONTENT_API_PATH = "/apis/content.halo.run/v1alpha1"

_BODY_EXCERPT_CHARS = 500

logger = structlog.get_logger(__name__)


class HaloClientError(Exception):
    """A failed remote call.

    ``status_code`` is None for timeouts and transport failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"reason": str(self)}
        if self.status_code is not None:
            detail["status_code"] = self.status_code
        if self.body:
            detail["body"] = self.body
        return detail


class HaloClient:
    """Remote operations against a single configured :class:`Site`.

    Use as an async context manager so the underlying connection pool is
    closed::

        async with HaloClient(site, timeout=10) as client:
            fetched = await client.get_post("my-post")
    """

    def __init__(
        self,
        site: Site,
        *,
        timeout: float = 30.0,
        user_agent: str | None = None,
        tag_color: str = DEFAULT_TAG_COLOR,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.site = site
        self._tag_color = tag_color
        headers = {"Authorization": f"Bearer {site.token}", "Accept": "application/json"}
        if user_agent:
            headers["User-Agent"] = user_agent
        self._http = httpx.AsyncClient(
            base_url=site.url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._log = logger.bind(site=site.url)

    async def __aenter__(self) -> HaloClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, path, json=payload, params=params)
        except httpx.TimeoutException as exc:
            raise HaloClientError(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise HaloClientError(f"{method} {path} failed: {exc}") from exc

        self._log.debug("halo.request", method=method, path=path, status=response.status_code)
        if not response.is_success:
            raise HaloClientError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                body=response.text[:_BODY_EXCERPT_CHARS],
            )
        return response

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        response = await self._request(method, path, payload=payload, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise HaloClientError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
                body=response.text[:_BODY_EXCERPT_CHARS],
            ) from exc

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def get_post(self, name: str) -> FetchedPost | None:
        """Like :meth:`fetch_post`, but None (with a logged warning) on any failure."""
        try:
            return await self.fetch_post(name)
        except HaloClientError as exc:
            self._log.warning(
                "halo.get_post_failed", name=name, error=str(exc), status=exc.status_code
            )
            return None

    async def fetch_post(self, name: str) -> FetchedPost:
        """Fetch a post and its patched draft content.

        The patched annotations reflect server-side content overlays and
        win over the raw stored content. Raises :class:`HaloClientError`;
        ``status_code == 404`` means the post does not exist.
        """
        post_data = await self._request_json("GET", f"{POSTS_PATH}/{name}")
        snapshot = await self._fetch_draft(name)
        try:
            post = Post.model_validate(post_data)
        except ValidationError as exc:
            raise HaloClientError(f"GET {POSTS_PATH}/{name} returned an unexpected body") from exc

        annotations = _annotations(snapshot)
        spec = snapshot.get("spec") if isinstance(snapshot.get("spec"), dict) else {}
        content = PostContent(
            raw_type=spec.get("rawType") or "markdown",
            raw=annotations.get(PATCHED_RAW_ANNOTATION) or "",
            rendered=annotations.get(PATCHED_CONTENT_ANNOTATION) or "",
        )
        return FetchedPost(post=post, content=content)

    async def create_post(self, post: Post, content: PostContent, title_hint: str) -> Post:
        """Create *post* under a fresh identifier and return the server copy.

        An explicit ``spec.title`` wins over *title_hint*; the slug defaults
        to the slugified title.
        """
        payload = post.model_copy(deep=True)
        payload.metadata.name = str(uuid.uuid4())
        annotations = dict(payload.metadata.annotations or {})
        annotations[CONTENT_JSON_ANNOTATION] = _content_json(content)
        payload.metadata.annotations = annotations
        payload.spec.title = payload.spec.title or title_hint
        payload.spec.slug = payload.spec.slug or slugify(payload.spec.title)

        created = await self._request_json("POST", POSTS_PATH, payload=payload.to_payload())
        try:
            return Post.model_validate(created)
        except ValidationError as exc:
            raise HaloClientError("create post returned an unexpected body") from exc

    async def update_post(self, post: Post, content: PostContent) -> None:
        """Write the post resource, then its draft snapshot with *content*."""
        name = post.name
        await self._request("PUT", f"{POSTS_PATH}/{name}", payload=post.to_payload())

        snapshot = await self._fetch_draft(name)
        metadata = snapshot.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
            snapshot["metadata"] = metadata
        annotations = dict(metadata.get("annotations") or {})
        annotations[CONTENT_JSON_ANNOTATION] = _content_json(content)
        metadata["annotations"] = annotations

        await self._request("PUT", f"{POSTS_PATH}/{name}/draft", payload=snapshot)

    async def change_publish_state(self, name: str, publish: bool) -> None:
        """Publish or unpublish; idempotent on the server side."""
        action = "publish" if publish else "unpublish"
        await self._request("PUT", f"{POSTS_PATH}/{name}/{action}")

    async def _fetch_draft(self, name: str) -> dict[str, Any]:
        snapshot = await self._request_json(
            "GET", f"{POSTS_PATH}/{name}/draft", params={"patched": "true"}
        )
        if not isinstance(snapshot, dict):
            raise HaloClientError(f"draft of {name} is not an object")
        return snapshot

    # ------------------------------------------------------------------
    # Taxonomy
    # ------------------------------------------------------------------

    async def list_terms(self, kind: TaxonomyKind) -> list[Term]:
        """Fetch the full current catalog for *kind*."""
        data = await self._request_json("GET", f"{CONTENT_API_PATH}/{kind.namespace}")
        items = data.get("items") if isinstance(data, dict) else None
        terms: list[Term] = []
        for item in items or []:
            if isinstance(item, dict) and (term := Term.from_resource(item)) is not None:
                terms.append(term)
        return terms

    async def resolve_or_create_terms(
        self,
        kind: TaxonomyKind,
        display_names: list[str],
    ) -> list[str]:
        """Map display names to term identifiers, creating missing terms.

        Returns pre-existing matches first, then newly created terms, each
        group in input order.
        """
        catalog = await self.list_terms(kind)
        existing: list[str] = []
        pending: list[str] = []
        for display_name in display_names:
            found = next((term for term in catalog if term.matches(display_name)), None)
            if found is not None:
                existing.append(found.identifier)
            elif not any(p.casefold() == display_name.casefold() for p in pending):
                pending.append(display_name)

        created: list[str] = []
        for display_name in pending:
            body = kind.creation_payload(
                display_name,
                len(catalog) + len(created),
                {"color": self._tag_color},
            )
            result = await self._request_json(
                "POST", f"{CONTENT_API_PATH}/{kind.namespace}", payload=body
            )
            term = Term.from_resource(result) if isinstance(result, dict) else None
            if term is None:
                raise HaloClientError(f"created {kind.kind} {display_name!r} has no name")
            self._log.info("halo.term_created", kind=kind.kind, name=term.identifier)
            created.append(term.identifier)

        return list(dict.fromkeys(existing + created))

    async def display_names_for(self, kind: TaxonomyKind, identifiers: list[str]) -> list[str]:
        """Display names for *identifiers*; unknown identifiers are dropped."""
        if not identifiers:
            return []
        by_id = {term.identifier: term.display_name for term in await self.list_terms(kind)}
        return [by_id[ident] for ident in identifiers if by_id.get(ident)]


def _annotations(resource: dict[str, Any]) -> dict[str, Any]:
    metadata = resource.get("metadata")
    if not isinstance(metadata, dict):
        return {}
    annotations = metadata.get("annotations")
    return annotations if isinstance(annotations, dict) else {}


def _content_json(content: PostContent) -> str:
    return json.dumps(content.to_payload(), ensure_ascii=False, separators=(",", ":"))
