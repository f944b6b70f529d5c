"""Collaborator interfaces the resolver depends on."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from redirect_canonical.models.content import Author, Post, Taxonomy, Term
from redirect_canonical.models.query import ResolvedQuery
from redirect_canonical.models.request import RequestContext


class ContentRepository(Protocol):
    """Read-only entity lookups."""

    def get_post(self, post_id: int) -> Optional[Post]: ...

    def get_permalink(self, post_id: int) -> Optional[str]: ...

    def is_post_type_public(self, post_type: str) -> bool: ...

    def get_user(self, user_id: int) -> Optional[Author]: ...

    def author_has_published(self, user_id: int) -> bool: ...

    def get_term_link(self, term_id: int, taxonomy: str) -> Optional[str]: ...

    def get_taxonomy(self, name: str) -> Optional[Taxonomy]: ...

    def get_category_by_path(self, path: str) -> Optional[Term]: ...

    def has_term(self, term_id: int, taxonomy: str, post_id: int) -> bool: ...

    def find_published_by_slug_prefix(
        self,
        prefix: str,
        post_type: Optional[str] = None,
        year: int = 0,
        month: int = 0,
        day: int = 0,
    ) -> list[Post]: ...

    def published_posts(self, limit: int = 200) -> list[Post]: ...

    def verify_preview_nonce(self, nonce: str, post_id: int) -> bool: ...


class PermalinkGuesser(Protocol):
    """Best-effort mapping of an unmatched request to a known permalink."""

    def guess(self, request: RequestContext, query: ResolvedQuery) -> Optional[str]: ...


# (candidate_url, requested_url) -> replacement URL, or None to cancel the redirect
RedirectFilter = Callable[[str, str], Optional[str]]
