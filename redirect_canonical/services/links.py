"""Link building for archives, feeds, authors, terms and posts."""

from __future__ import annotations

import re
from typing import Optional

from redirect_canonical.models.config import RewriteConfig, SiteConfig
from redirect_canonical.models.content import Author, Post, Taxonomy, Term
from redirect_canonical.url_utils import trailingslashit

_TAG_RE = re.compile(r"%[^%/]+?%")


def zeroise(value: int | str, width: int = 2) -> str:
    return str(value).zfill(width)


class LinkBuilder:
    """Builds canonical links from the site and rewrite configuration."""

    def __init__(self, site: SiteConfig, rewrite: RewriteConfig):
        self.site = site
        self.rewrite = rewrite

    def home_url(self, path: str = "") -> str:
        url = self.site.home_url
        if path:
            url = url.rstrip("/") + "/" + path.lstrip("/")
        return url

    def _pretty(self, path: str, type_of_url: str = "") -> str:
        path = re.sub(r"/+", "/", "/" + path)
        return self.home_url(self.rewrite.user_trailingslashit(path, type_of_url))

    # ------------------------------------------------------------------
    # Date archives
    # ------------------------------------------------------------------

    def _date_front(self) -> str:
        front = self.rewrite.front
        tokens = _TAG_RE.findall(self.rewrite.permalink_structure)
        # Numeric post ids up front would collide with /YYYY/ archives
        if "%post_id%" in tokens[:3]:
            front += "date/"
        return front

    def year_link(self, year: int | str) -> str:
        if not self.rewrite.using_permalinks():
            return self.home_url(f"?m={year}")
        return self._pretty(f"{self._date_front()}{year}", "year")

    def month_link(self, year: int | str, month: int | str) -> str:
        if not self.rewrite.using_permalinks():
            return self.home_url(f"?m={year}{zeroise(month)}")
        return self._pretty(f"{self._date_front()}{year}/{zeroise(month)}", "month")

    def day_link(self, year: int | str, month: int | str, day: int | str) -> str:
        if not self.rewrite.using_permalinks():
            return self.home_url(f"?m={year}{zeroise(month)}{zeroise(day)}")
        return self._pretty(f"{self._date_front()}{year}/{zeroise(month)}/{zeroise(day)}", "day")

    # ------------------------------------------------------------------
    # Authors and terms
    # ------------------------------------------------------------------

    def author_link(self, author: Author) -> str:
        if not self.rewrite.using_permalinks():
            return self.home_url(f"?author={author.id}")
        return self._pretty(f"{self.rewrite.front}{self.rewrite.author_base}/{author.nicename}")

    def term_link(self, term: Term, taxonomy: Optional[Taxonomy], term_path: str = "") -> str:
        """Link to a term archive. ``term_path`` is the slug path of hierarchical terms."""
        slug_path = term_path or term.slug
        if self.rewrite.using_permalinks():
            if term.taxonomy == "category":
                return self._pretty(f"{self.rewrite.front}{self.rewrite.category_base}/{slug_path}", "category")
            if term.taxonomy == "post_tag":
                return self._pretty(f"{self.rewrite.front}{self.rewrite.tag_base}/{term.slug}", "category")
            if taxonomy is not None and taxonomy.rewrite_slug:
                slug = slug_path if taxonomy.hierarchical else term.slug
                return self._pretty(f"{self.rewrite.front}{taxonomy.rewrite_slug}/{slug}", "category")

        if term.taxonomy == "category":
            return self.home_url(f"?cat={term.term_id}")
        if term.taxonomy == "post_tag":
            return self.home_url(f"?tag={term.slug}")
        if taxonomy is not None and taxonomy.query_var:
            return self.home_url(f"?{taxonomy.query_var}={term.slug}")
        return self.home_url(f"?taxonomy={term.taxonomy}&term={term.slug}")

    # ------------------------------------------------------------------
    # Feeds
    # ------------------------------------------------------------------

    def feed_link(self, feed: str = "") -> str:
        default = self.site.default_feed
        if not self.rewrite.using_permalinks():
            feed = feed or default
            feed = feed.replace("comments_", "comments-")
            return self.home_url(f"?feed={feed}")

        permastruct = f"{self.rewrite.root}{self.rewrite.feed_base}/%feed%"
        if "comments_" in feed:
            feed = feed.replace("comments_", "")
            permastruct = f"{self.rewrite.root}{self.rewrite.comments_base}/{self.rewrite.feed_base}/%feed%"
        if feed == default:
            feed = ""
        return self._pretty(permastruct.replace("%feed%", feed), "feed")

    def post_comments_feed_link(self, post: Post, permalink: str, feed: str = "") -> str:
        default = self.site.default_feed
        if feed in ("", "feed"):
            feed = default

        if self.rewrite.using_permalinks():
            url = trailingslashit(permalink) + self.rewrite.feed_base
            if feed != default:
                url += f"/{feed}"
            return self.rewrite.user_trailingslashit(url, "single_feed")

        id_arg = {"page": "page_id", "attachment": "attachment_id"}.get(post.post_type, "p")
        return self.home_url(f"/?feed={feed}&{id_arg}={post.id}")

    # ------------------------------------------------------------------
    # Posts and pages
    # ------------------------------------------------------------------

    def post_link(self, post: Post, category_path: str = "", author_nicename: str = "") -> str:
        structure = self.rewrite.permalink_structure
        if not structure or post.status in ("draft", "pending", "auto-draft", "future"):
            return self.home_url(f"?p={post.id}")

        replacements = {
            "%year%": str(post.date.year),
            "%monthnum%": zeroise(post.date.month),
            "%day%": zeroise(post.date.day),
            "%hour%": zeroise(post.date.hour),
            "%minute%": zeroise(post.date.minute),
            "%second%": zeroise(post.date.second),
            "%postname%": post.slug,
            "%post_id%": str(post.id),
            "%category%": category_path,
            "%author%": author_nicename,
            "%pagename%": post.slug,
        }
        link = _TAG_RE.sub(lambda m: replacements.get(m.group(0), m.group(0)), structure)
        return self.rewrite.user_trailingslashit(self.home_url(link), "single")

    def page_link(self, page: Post, page_uri: str) -> str:
        if self.site.show_on_front == "page" and page.id == self.site.page_on_front:
            return self.home_url("/")
        if not self.rewrite.using_permalinks() or page.status in ("draft", "pending", "auto-draft"):
            return self.home_url(f"?page_id={page.id}")
        return self._pretty(f"{self.rewrite.root}{page_uri}", "page")

    def attachment_link(self, attachment: Post, parent_link: Optional[str]) -> str:
        if not self.rewrite.using_permalinks():
            return self.home_url(f"?attachment_id={attachment.id}")
        if parent_link and "?" not in parent_link:
            return self.rewrite.user_trailingslashit(trailingslashit(parent_link) + attachment.slug)
        return self._pretty(f"{self.rewrite.root}{attachment.slug}")

    def custom_post_link(self, post: Post, rewrite_slug: Optional[str]) -> str:
        if not self.rewrite.using_permalinks() or not rewrite_slug:
            return self.home_url(f"?post_type={post.post_type}&p={post.id}")
        return self._pretty(f"{self.rewrite.front}{rewrite_slug}/{post.slug}", "single")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def registration_url(self) -> str:
        if self.site.multisite:
            return self.site.network_url.rstrip("/") + "/wp-signup.php"
        return self.site.site_url.rstrip("/") + "/wp-login.php?action=register"
