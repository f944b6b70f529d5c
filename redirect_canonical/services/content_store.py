"""In-memory content repository backed by a ContentSnapshot."""

from __future__ import annotations

import hmac
import logging
from typing import Optional
from urllib.parse import unquote

from redirect_canonical.models.content import Author, ContentSnapshot, Post, Taxonomy, Term
from redirect_canonical.services.links import LinkBuilder

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_SLUG = "uncategorized"


class InMemoryContentStore:
    """Serves entity lookups and permalinks from a loaded snapshot."""

    def __init__(self, snapshot: ContentSnapshot, links: LinkBuilder):
        self.snapshot = snapshot
        self.links = links
        self._posts = {p.id: p for p in snapshot.posts}
        self._authors = {a.id: a for a in snapshot.authors}
        self._terms = {(t.taxonomy, t.term_id): t for t in snapshot.terms}
        self._taxonomies = {t.name: t for t in snapshot.taxonomies}
        self._post_types = {t.name: t for t in snapshot.post_types}
        logger.debug(
            "Content store loaded: %d posts, %d authors, %d terms",
            len(self._posts), len(self._authors), len(self._terms),
        )

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def get_post(self, post_id: int) -> Optional[Post]:
        return self._posts.get(post_id)

    def is_post_type_public(self, post_type: str) -> bool:
        obj = self._post_types.get(post_type)
        return bool(obj and obj.public)

    def get_permalink(self, post_id: int) -> Optional[str]:
        post = self._posts.get(post_id)
        if post is None:
            return None
        if post.post_type == "page":
            return self.links.page_link(post, self._page_uri(post))
        if post.post_type == "attachment":
            parent_link = self.get_permalink(post.parent) if post.parent else None
            return self.links.attachment_link(post, parent_link)
        if post.post_type == "post":
            author = self._authors.get(post.author)
            return self.links.post_link(
                post,
                category_path=self._primary_category_path(post),
                author_nicename=author.nicename if author else "",
            )
        type_obj = self._post_types.get(post.post_type)
        if type_obj is None or not type_obj.public:
            return None
        return self.links.custom_post_link(post, type_obj.rewrite_slug or post.post_type)

    def _page_uri(self, page: Post) -> str:
        slugs = [page.slug]
        seen = {page.id}
        parent = self._posts.get(page.parent)
        while parent is not None and parent.id not in seen:
            slugs.insert(0, parent.slug)
            seen.add(parent.id)
            parent = self._posts.get(parent.parent)
        return "/".join(slugs)

    def _primary_category_path(self, post: Post) -> str:
        for term_id in sorted(post.categories):
            term = self._terms.get(("category", term_id))
            if term is not None:
                return self._term_path(term)
        return DEFAULT_CATEGORY_SLUG

    def find_published_by_slug_prefix(
        self,
        prefix: str,
        post_type: Optional[str] = None,
        year: int = 0,
        month: int = 0,
        day: int = 0,
    ) -> list[Post]:
        matches = []
        for post in sorted(self._posts.values(), key=lambda p: p.id):
            if post.status != "publish" or not post.slug.startswith(prefix):
                continue
            if post_type:
                if post.post_type != post_type:
                    continue
            elif not self.is_post_type_public(post.post_type):
                continue
            if year and post.date.year != year:
                continue
            if month and post.date.month != month:
                continue
            if day and post.date.day != day:
                continue
            matches.append(post)
        return matches

    def published_posts(self, limit: int = 200) -> list[Post]:
        posts = [
            p for p in sorted(self._posts.values(), key=lambda p: p.id)
            if p.status == "publish" and self.is_post_type_public(p.post_type)
        ]
        return posts[:limit]

    def verify_preview_nonce(self, nonce: str, post_id: int) -> bool:
        expected = self.snapshot.preview_nonces.get(post_id)
        if not expected or not nonce:
            return False
        return hmac.compare_digest(expected, nonce)

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> Optional[Author]:
        return self._authors.get(user_id)

    def author_has_published(self, user_id: int) -> bool:
        return any(p.author == user_id and p.status == "publish" for p in self._posts.values())

    # ------------------------------------------------------------------
    # Terms
    # ------------------------------------------------------------------

    def get_taxonomy(self, name: str) -> Optional[Taxonomy]:
        return self._taxonomies.get(name)

    def get_term_link(self, term_id: int, taxonomy: str) -> Optional[str]:
        term = self._terms.get((taxonomy, term_id))
        if term is None:
            return None
        return self.links.term_link(term, self._taxonomies.get(taxonomy), self._term_path(term))

    def _term_path(self, term: Term) -> str:
        slugs = [term.slug]
        seen = {term.term_id}
        parent = self._terms.get((term.taxonomy, term.parent))
        while parent is not None and parent.term_id not in seen:
            slugs.insert(0, parent.slug)
            seen.add(parent.term_id)
            parent = self._terms.get((parent.taxonomy, parent.parent))
        return "/".join(slugs)

    def get_category_by_path(self, path: str) -> Optional[Term]:
        """Find a category whose full slug path matches ``path`` exactly."""
        wanted = "/".join(s for s in unquote(path).strip("/").split("/") if s)
        if not wanted:
            return None
        leaf = wanted.rsplit("/", 1)[-1]
        for term in self.snapshot.terms:
            if term.taxonomy == "category" and term.slug == leaf and self._term_path(term) == wanted:
                return term
        return None

    def has_term(self, term_id: int, taxonomy: str, post_id: int) -> bool:
        post = self._posts.get(post_id)
        if post is None:
            return False
        if taxonomy == "category":
            return term_id in post.categories
        if taxonomy == "post_tag":
            return term_id in post.tags
        return term_id in post.terms.get(taxonomy, [])
