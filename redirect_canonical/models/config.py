"""Configuration models for the canonical redirect resolver."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from redirect_canonical.url_utils import trailingslashit, untrailingslashit


class RewriteConfig(BaseModel):
    """How the site's rewrite layer builds pretty URLs."""

    # Empty structure means plain ``?p=123`` links
    permalink_structure: str = ""
    index: str = "index.php"
    pagination_base: str = "page"
    comments_base: str = "comments"
    comments_pagination_base: str = "comment-page"
    feed_base: str = "feed"
    category_base: str = "category"
    tag_base: str = "tag"
    author_base: str = "author"
    feeds: list[str] = Field(default_factory=lambda: ["feed", "rdf", "rss", "rss2", "atom"])
    # Per URL-type override of the trailing slash convention, e.g. {"paged": false}
    trailing_slash_overrides: dict[str, bool] = Field(default_factory=dict)

    def using_permalinks(self) -> bool:
        return bool(self.permalink_structure)

    def using_index_permalinks(self) -> bool:
        if not self.permalink_structure:
            return False
        return re.match(r"^/*" + re.escape(self.index), self.permalink_structure) is not None

    @property
    def use_trailing_slashes(self) -> bool:
        return self.permalink_structure.endswith("/")

    @property
    def front(self) -> str:
        """Static prefix of the permalink structure, up to the first tag."""
        pos = self.permalink_structure.find("%")
        return self.permalink_structure[:pos] if pos != -1 else ""

    @property
    def root(self) -> str:
        return f"{self.index}/" if self.using_index_permalinks() else ""

    def user_trailingslashit(self, value: str, type_of_url: str = "") -> str:
        use_slash = self.trailing_slash_overrides.get(type_of_url, self.use_trailing_slashes)
        return trailingslashit(value) if use_slash else untrailingslashit(value)


class SiteConfig(BaseModel):
    home_url: str
    site_url: str = ""
    network_url: str = ""

    # Reading settings
    show_on_front: str = "posts"  # posts, page
    page_on_front: int = 0
    page_for_posts: int = 0

    # Discussion settings
    page_comments: bool = False
    default_comments_page: str = "newest"  # newest, oldest

    default_feed: str = "rss2"
    multisite: bool = False
    # Host cannot serve pretty permalinks although a structure is configured
    permalinks_unsupported: bool = False

    @field_validator("home_url", mode="before")
    @classmethod
    def resolve_env_home(cls, v: str) -> str:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v

    def model_post_init(self, __context) -> None:
        if not self.site_url:
            self.site_url = self.home_url
        if not self.network_url:
            self.network_url = self.site_url


class UpdateConfig(BaseModel):
    enabled: bool = True
    manifest_url: str = (
        "https://raw.githubusercontent.com/dimadin/redirect-canonical-fix/rest-api/latest.json"
    )
    # Version of the hosting CMS the fix is deployed on
    host_version: str = "5.1"
    timeout_seconds: float = 10.0
    state_path: str = ".redirect-canonical/update_state.json"


class ResolverConfig(BaseModel):
    site: SiteConfig
    rewrite: RewriteConfig = Field(default_factory=RewriteConfig)
    updates: UpdateConfig = Field(default_factory=UpdateConfig)

    # 404 guessing
    guess_404: bool = True
    ai_guess_enabled: bool = False
    ai_model: str = "claude-sonnet-4-20250514"
    ai_max_guess_calls: int = 3
    ai_max_tokens: int = 1024
    ai_max_candidates: int = 200

    @classmethod
    def load(cls, path: str | Path) -> "ResolverConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
