"""
Collection listing with pagination and soft failure.

Endpoint::

    GET /users/{username}/collection/folders/{folder_id}/releases?page=N&per_page=100

Continuation rule
-----------------
- Response has ``pagination.pages``  → fetch the next page while page < pages.
- No pagination block                → fetch the next page only if this one held
  exactly ``per_page`` items.  A final page of exactly ``per_page`` items
  therefore triggers one extra request; that request's result (empty page or
  error) ends the loop.  This is a known limitation and is kept as-is.
- An empty ``releases`` list always ends the loop.
- Fallback shape ``{"items": [...]}`` is consumed as a single, final page.

Failure policy
--------------
Any error on a page (transport, status, body shape, item validation) stops
pagination.  Everything accumulated so far is returned with
``complete=False``; the error is never raised.  Missing tokens are the one
exception: ``Unauthenticated`` is raised before the first request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

from discogs_quiz.config import CollectionConfig
from discogs_quiz.errors import DiscogsQuizError, ProtocolError
from discogs_quiz.ingestion.session import DiscogsSession
from discogs_quiz.models.collection import CollectionItem

logger = logging.getLogger(__name__)


@dataclass
class CollectionResult:
    """Items fetched for one user, in server delivery order.

    Attributes:
        items: Every item received before pagination ended.
        complete: ``False`` when a page failed and pagination stopped early.
        pages_fetched: Pages successfully consumed.
        failed_page: Page number that failed, if any.
        error: Message of the failure that stopped pagination, if any.
    """

    items: list[CollectionItem] = field(default_factory=list)
    complete: bool = True
    pages_fetched: int = 0
    failed_page: Optional[int] = None
    error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_partial(self) -> bool:
        return not self.complete


@dataclass
class _Page:
    items: list[CollectionItem]
    total_pages: Optional[int]
    is_final: bool


def parse_collection_page(data: dict[str, Any]) -> _Page:
    """Interpret one listing response body.

    Raises:
        ProtocolError: Neither ``releases`` nor ``items`` is a list.
        ValueError: An entry does not fit ``CollectionItem`` (pydantic
            ``ValidationError``) or ``pagination.pages`` is not a number.
    """
    releases = data.get("releases")
    if isinstance(releases, list):
        pagination = data.get("pagination") or {}
        pages = pagination.get("pages")
        return _Page(
            items=[CollectionItem.model_validate(r) for r in releases],
            total_pages=int(pages) if pages is not None else None,
            is_final=False,
        )
    items = data.get("items")
    if isinstance(items, list):
        return _Page(
            items=[CollectionItem.model_validate(r) for r in items],
            total_pages=None,
            is_final=True,
        )
    raise ProtocolError("Collection response has neither 'releases' nor 'items'.")


class CollectionFetcher:
    """Fetches a user's full collection through a ``DiscogsSession``."""

    def __init__(
        self,
        session: DiscogsSession,
        config: Optional[CollectionConfig] = None,
    ) -> None:
        self.session = session
        self.config = config or CollectionConfig()

    def endpoint_for(self, username: str) -> str:
        return (
            f"/users/{quote(username, safe='')}/collection/folders/"
            f"{self.config.folder_id}/releases"
        )

    def fetch_all(self, user_id: str) -> CollectionResult:
        """Fetch every page for ``user_id``'s Discogs account.

        Raises:
            Unauthenticated: No stored tokens for ``user_id``.
        """
        tokens = self.session.require_tokens(user_id)
        endpoint = self.endpoint_for(tokens.username)
        per_page = self.config.per_page
        result = CollectionResult()

        page = 1
        while True:
            try:
                data = self.session.get_json_with(
                    tokens, endpoint, params={"page": page, "per_page": per_page}
                )
                parsed = parse_collection_page(data)
            except (DiscogsQuizError, ValueError) as exc:
                logger.warning(
                    "Collection page %d failed for user=%s; returning %d items: %s",
                    page, user_id, len(result.items), exc,
                )
                result.complete = False
                result.failed_page = page
                result.error = str(exc)
                return result

            result.items.extend(parsed.items)
            result.pages_fetched += 1
            logger.debug(
                "Collection page %d: %d items (total_pages=%s)",
                page, len(parsed.items), parsed.total_pages,
            )

            if parsed.is_final or not parsed.items:
                break
            if parsed.total_pages is not None:
                if page >= parsed.total_pages:
                    break
            elif len(parsed.items) != per_page:
                break
            page += 1

        logger.info(
            "Fetched %d collection items for user=%s across %d pages",
            len(result.items), user_id, result.pages_fetched,
        )
        return result
