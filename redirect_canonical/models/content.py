"""Content entities the resolver looks up: posts, authors, terms."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class Post(BaseModel):
    id: int
    post_type: str = "post"  # post, page, attachment, revision, or a custom type
    status: str = "publish"  # publish, draft, pending, future, private, auto-draft, inherit
    slug: str = ""
    title: str = ""
    parent: int = 0
    author: int = 0
    date: datetime = Field(default_factory=lambda: datetime(2000, 1, 1))
    content: str = ""
    categories: list[int] = Field(default_factory=list)
    tags: list[int] = Field(default_factory=list)
    terms: dict[str, list[int]] = Field(default_factory=dict)  # custom taxonomies


class Author(BaseModel):
    id: int
    login: str
    nicename: str
    display_name: str = ""


class Term(BaseModel):
    term_id: int
    taxonomy: str  # category, post_tag, or a custom taxonomy
    slug: str
    name: str = ""
    parent: int = 0


class Taxonomy(BaseModel):
    name: str
    query_var: Optional[str] = None
    # None disables pretty links for the taxonomy
    rewrite_slug: Optional[str] = None
    hierarchical: bool = False


class PostType(BaseModel):
    name: str
    public: bool = True
    rewrite_slug: Optional[str] = None


def _default_post_types() -> list[PostType]:
    return [
        PostType(name="post"),
        PostType(name="page"),
        PostType(name="attachment"),
        PostType(name="revision", public=False),
    ]


def _default_taxonomies() -> list[Taxonomy]:
    return [
        Taxonomy(name="category", query_var="category_name", rewrite_slug="category", hierarchical=True),
        Taxonomy(name="post_tag", query_var="tag", rewrite_slug="tag"),
    ]


class ContentSnapshot(BaseModel):
    """Everything the in-memory repository serves, loadable from JSON."""

    posts: list[Post] = Field(default_factory=list)
    authors: list[Author] = Field(default_factory=list)
    terms: list[Term] = Field(default_factory=list)
    taxonomies: list[Taxonomy] = Field(default_factory=_default_taxonomies)
    post_types: list[PostType] = Field(default_factory=_default_post_types)
    preview_nonces: dict[int, str] = Field(default_factory=dict)  # post id -> valid nonce

    @classmethod
    def load(cls, path: str | Path) -> "ContentSnapshot":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Content file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)
