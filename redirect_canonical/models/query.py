"""Resolved query: what the upstream router matched for a request."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    POST = "post"
    PAGE = "page"
    ATTACHMENT = "attachment"
    CUSTOM = "custom"  # singular item of a custom post type
    HOME = "home"  # the posts index
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    CATEGORY = "category"
    TAG = "tag"
    TAXONOMY = "taxonomy"
    AUTHOR = "author"
    POST_TYPE_ARCHIVE = "post_type_archive"
    SEARCH = "search"
    NOT_FOUND = "not_found"
    OTHER = "other"


SINGULAR_KINDS = frozenset({ContentKind.POST, ContentKind.PAGE, ContentKind.ATTACHMENT, ContentKind.CUSTOM})
DATE_KINDS = frozenset({ContentKind.YEAR, ContentKind.MONTH, ContentKind.DAY})


class QueriedTerm(BaseModel):
    model_config = ConfigDict(frozen=True)

    term_id: int
    taxonomy: str


class ResolvedQuery(BaseModel):
    """Classification of a request, produced by the host router.

    ``query_vars`` holds every public query var, whether the rewrite layer
    matched it from the path or the client sent it in the query string.
    """

    model_config = ConfigDict(frozen=True)

    kind: ContentKind = ContentKind.OTHER
    queried_object_id: int = 0
    queried_term: Optional[QueriedTerm] = None
    terms_queried: int = 0
    post_count: int = 1
    post_id: int = 0  # first post of the result set

    is_feed: bool = False
    is_preview: bool = False
    is_trackback: bool = False
    is_admin: bool = False
    is_robots: bool = False

    query_vars: dict[str, str] = Field(default_factory=dict)

    # -- query vars ---------------------------------------------------------

    def var(self, name: str) -> str:
        return str(self.query_vars.get(name, "") or "")

    def int_var(self, name: str) -> int:
        value = self.var(name).strip()
        return int(value) if value.isdigit() else 0

    # -- conditionals -------------------------------------------------------

    @property
    def is_singular(self) -> bool:
        return self.kind in SINGULAR_KINDS

    @property
    def is_single(self) -> bool:
        return self.kind in (ContentKind.POST, ContentKind.ATTACHMENT, ContentKind.CUSTOM)

    @property
    def is_page(self) -> bool:
        return self.kind == ContentKind.PAGE

    @property
    def is_attachment(self) -> bool:
        return self.kind == ContentKind.ATTACHMENT

    @property
    def is_home(self) -> bool:
        return self.kind == ContentKind.HOME

    @property
    def is_year(self) -> bool:
        return self.kind in DATE_KINDS

    @property
    def is_month(self) -> bool:
        return self.kind in (ContentKind.MONTH, ContentKind.DAY)

    @property
    def is_day(self) -> bool:
        return self.kind == ContentKind.DAY

    @property
    def is_category(self) -> bool:
        return self.kind == ContentKind.CATEGORY

    @property
    def is_tag(self) -> bool:
        return self.kind == ContentKind.TAG

    @property
    def is_tax(self) -> bool:
        return self.kind == ContentKind.TAXONOMY

    @property
    def is_author(self) -> bool:
        return self.kind == ContentKind.AUTHOR

    @property
    def is_search(self) -> bool:
        return self.kind == ContentKind.SEARCH

    @property
    def is_404(self) -> bool:
        return self.kind == ContentKind.NOT_FOUND

    def is_type(self, name: str) -> bool:
        """Conditional lookup by name, e.g. ``is_type("month")``."""
        return bool(getattr(self, f"is_{name}", False))
