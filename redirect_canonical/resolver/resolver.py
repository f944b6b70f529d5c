"""Canonical URL resolution: decides whether a request must be redirected.

Search engines treat ``www.example.com`` and ``example.com``, ``?p=42`` and
``/hello-world/``, ``/page/1/`` and ``/`` as distinct URLs. The resolver
computes the single canonical address for a request and reports a 301 when
the request differs from it.

Requests that are never redirected: non GET/HEAD methods, trackbacks,
searches, admin screens, previews, robots.txt, and hosts that cannot serve
pretty permalinks.

Unmatched (404) requests are mapped back to real content where possible:
explicit ids, impossible dates, the configured guesser, and out-of-range
``<!--nextpage-->`` pages.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from redirect_canonical.models.config import ResolverConfig
from redirect_canonical.models.decision import CanonicalURL, NoRedirect, RedirectResult
from redirect_canonical.models.query import ContentKind, ResolvedQuery
from redirect_canonical.models.request import RequestContext
from redirect_canonical.resolver import path as paths
from redirect_canonical.services.links import LinkBuilder
from redirect_canonical.services.ports import ContentRepository, PermalinkGuesser, RedirectFilter
from redirect_canonical.url_utils import (
    ParsedURL,
    QueryString,
    add_query_args,
    build_url,
    lowercase_octets,
    parse_url,
    remove_args_unless_in_url,
    strip_fragment,
    trailingslashit,
)

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")
PAGE_BREAK = "<!--nextpage-->"
LEGACY_REGISTER_FILE = "wp-register.php"

# Old direct-access feed scripts and the feed type they serve ("" = default feed)
LEGACY_FEED_FILES = {
    "wp-atom.php": "atom",
    "wp-commentsrss2.php": "comments_rss2",
    "wp-feed.php": "",
    "wp-rdf.php": "rdf",
    "wp-rss.php": "rss2",
    "wp-rss2.php": "rss2",
}

POST_ID_ARGS = ("p", "page_id", "attachment_id", "pagename", "name", "post_type")
TERMINATING_ARGS = ("p", "page_id", "cat", "tag")
TRAILING_SLASH_TYPES = ("single", "category", "page", "day", "month", "year", "home")


def _filled(value: Optional[str]) -> bool:
    """Query-var truthiness: missing, empty and "0" count as unset."""
    return bool(value) and value != "0"


def _is_valid_date(year: int, month: int, day: int) -> bool:
    if not (1 <= year <= 9999 and 1 <= month <= 12):
        return False
    return 1 <= day <= calendar.monthrange(year, month)[1]


def _is_www_variant(original_host: str, candidate_host: str) -> bool:
    a, b = original_host.lower(), candidate_host.lower()
    return a != b and (a == f"www.{b}" or f"www.{a}" == b)


class _ShortCircuit(Exception):
    """A legacy URL that is answered immediately, bypassing the pipeline."""

    def __init__(self, url: str, reason: str):
        super().__init__(reason)
        self.url = url
        self.reason = reason


@dataclass
class _Candidate:
    """Working copy of the request URL that the pipeline rewrites."""

    scheme: str
    host: str
    port: Optional[int]
    path: str
    query: QueryString

    @classmethod
    def from_parsed(cls, parsed: ParsedURL) -> "_Candidate":
        return cls(parsed.scheme, parsed.host, parsed.port, parsed.path, parsed.query)

    @property
    def url(self) -> str:
        return build_url(self.scheme, self.host, self.port, self.path, self.query)


@dataclass
class _Resolution:
    request: RequestContext
    query: ResolvedQuery
    get: dict[str, str]
    candidate: _Candidate
    redirect_url: Optional[str] = None


class CanonicalResolver:
    """Computes the canonical URL for a request."""

    def __init__(
        self,
        config: ResolverConfig,
        repository: ContentRepository,
        guesser: PermalinkGuesser | None = None,
        redirect_filter: RedirectFilter | None = None,
    ):
        self.config = config
        self.site = config.site
        self.rewrite = config.rewrite
        self.repository = repository
        self.guesser = guesser
        self.redirect_filter = redirect_filter
        self.links = LinkBuilder(config.site, config.rewrite)

        self._matched_handlers: dict[ContentKind, Callable[[_Resolution], None]] = {
            ContentKind.ATTACHMENT: self._normalize_attachment,
            ContentKind.POST: self._normalize_single,
            ContentKind.CUSTOM: self._normalize_single,
            ContentKind.PAGE: self._normalize_page,
            ContentKind.HOME: self._normalize_posts_page,
            ContentKind.YEAR: self._normalize_date,
            ContentKind.MONTH: self._normalize_date,
            ContentKind.DAY: self._normalize_date,
            ContentKind.AUTHOR: self._normalize_author,
            ContentKind.CATEGORY: self._normalize_term,
            ContentKind.TAG: self._normalize_term,
            ContentKind.TAXONOMY: self._normalize_term,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def resolve(self, request: RequestContext, query: ResolvedQuery) -> RedirectResult:
        """Propose a redirect, then verify the target is itself stable.

        A target that would redirect again is dropped so that clients never
        enter a redirect chain.
        """
        proposal = self.propose(request, query)
        if not proposal or proposal.immediate:
            return proposal

        follow_up = self.propose(RequestContext(method=request.method, url=proposal.url), query)
        if follow_up:
            logger.warning(
                "Suppressing redirect %s -> %s: target would redirect again to %s",
                request.url, proposal.url, follow_up.url,
            )
            return NoRedirect("redirect chain detected")

        logger.info("Canonical redirect %s -> %s", request.url, proposal.url)
        return proposal

    def propose(self, request: RequestContext, query: ResolvedQuery) -> RedirectResult:
        """Single resolution pass with no stability check."""
        if request.method.upper() not in ALLOWED_METHODS:
            return NoRedirect(f"{request.method.upper()} requests are not redirected")

        query = self._demote_stale_preview(request, query)
        skip = self._skip_reason(query)
        if skip:
            return NoRedirect(skip)

        original = parse_url(request.url)
        if original is None:
            logger.debug("Unparsable request URL: %r", request.url)
            return NoRedirect("unparsable URL")

        state = _Resolution(
            request=request,
            query=query,
            get=request.get_params,
            candidate=_Candidate.from_parsed(original),
        )

        try:
            self._prepare(state)
            if query.is_404:
                self._resolve_not_found(state)
            elif self.rewrite.using_permalinks():
                handler = self._matched_handlers.get(query.kind)
                if handler is not None:
                    handler(state)
                self._paginate_singular(state)
                self._paginate_archives_and_feeds(state)
                self._check_legacy_registration(state)
        except _ShortCircuit as stop:
            logger.info("Legacy URL %s answered immediately (%s): %s", request.url, stop.reason, stop.url)
            immediate = CanonicalURL.from_url(stop.url, immediate=True)
            return immediate or NoRedirect("unparsable legacy target")

        self._attach_leftover_query(state)
        self._normalize_candidate(state, original)
        return self._decide(state, original)

    # ------------------------------------------------------------------
    # Early exits
    # ------------------------------------------------------------------

    def _demote_stale_preview(self, request: RequestContext, query: ResolvedQuery) -> ResolvedQuery:
        """A preview of published content needs a valid preview token to stay a preview."""
        if not (query.is_preview and query.int_var("p")):
            return query
        post = self.repository.get_post(query.int_var("p"))
        if post is None or post.status != "publish":
            return query

        get = request.get_params
        preview_id = get.get("preview_id", "")
        nonce = get.get("preview_nonce", "")
        if preview_id.isdigit() and nonce and self.repository.verify_preview_nonce(nonce, int(preview_id)):
            return query

        logger.debug("Post %d is published and the preview token is missing or invalid", post.id)
        return query.model_copy(update={"is_preview": False})

    def _skip_reason(self, query: ResolvedQuery) -> Optional[str]:
        if query.is_trackback:
            return "trackback"
        if query.is_search:
            return "search"
        if query.is_admin:
            return "admin"
        if query.is_preview:
            return "preview"
        if query.is_robots:
            return "robots.txt"
        if self.site.permalinks_unsupported:
            return "host cannot serve pretty permalinks"
        return None

    # ------------------------------------------------------------------
    # Candidate preparation
    # ------------------------------------------------------------------

    def _prepare(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate

        # Trailing non-breaking spaces are almost always pasted by accident
        c.path = paths.strip_trailing_nbsp(c.path)

        if q.var("preview"):
            c.query = c.query.remove("preview")

        post_id = q.int_var("p")
        if q.is_feed and post_id:
            post = self.repository.get_post(post_id)
            permalink = self.repository.get_permalink(post_id) if post is not None else None
            if post is not None and permalink:
                url = self.links.post_comments_feed_link(post, permalink, q.var("feed"))
                state.redirect_url = url
                c.query = remove_args_unless_in_url(c.query, POST_ID_ARGS + ("feed",), url)
                target = parse_url(url)
                if target is not None:
                    c.path = target.path

        if q.is_singular and q.post_count < 1 and post_id:
            post = self.repository.get_post(post_id)
            if post is not None:
                target_id = post.parent if post.post_type == "revision" and post.parent > 0 else post_id
                url = self.repository.get_permalink(target_id)
                if url:
                    state.redirect_url = url
                    c.query = remove_args_unless_in_url(c.query, POST_ID_ARGS, url)

    # ------------------------------------------------------------------
    # 404 resolution
    # ------------------------------------------------------------------

    def _resolve_not_found(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate

        post_id = max(q.int_var("p"), q.int_var("page_id"), q.int_var("attachment_id"))
        post = self.repository.get_post(post_id) if post_id else None
        if (
            post is not None
            and self.repository.is_post_type_public(post.post_type)
            and post.status != "auto-draft"
        ):
            url = self.repository.get_permalink(post.id)
            if url:
                state.redirect_url = url
                c.query = remove_args_unless_in_url(c.query, POST_ID_ARGS, url)

        year, month, day = q.int_var("year"), q.int_var("monthnum"), q.int_var("day")
        if year and month and day:
            if not _is_valid_date(year, month, day):
                url = self.links.month_link(q.var("year"), q.var("monthnum"))
                state.redirect_url = url
                c.query = remove_args_unless_in_url(c.query, ("year", "monthnum", "day"), url)
        elif year and month and month > 12:
            url = self.links.year_link(q.var("year"))
            state.redirect_url = url
            c.query = remove_args_unless_in_url(c.query, ("year", "monthnum"), url)

        if not state.redirect_url and self.guesser is not None:
            url = self.guesser.guess(state.request, q)
            if url:
                logger.debug("404 guess for %s: %s", state.request.url, url)
                state.redirect_url = url
                c.query = remove_args_unless_in_url(c.query, ("page", "feed") + POST_ID_ARGS, url)

        page = q.int_var("page")
        current = self.repository.get_post(q.post_id) if q.post_id else None
        if page and current is not None and PAGE_BREAK in current.content:
            page_count = current.content.count(PAGE_BREAK) + 1
            if page > page_count:
                c.path = paths.strip_trailing_segment(c.path, str(page))
                c.query = c.query.remove("page")
                state.redirect_url = self.repository.get_permalink(current.id) or state.redirect_url

    # ------------------------------------------------------------------
    # Matched-content normalization (pretty permalinks only)
    # ------------------------------------------------------------------

    def _normalize_attachment(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate
        if set(q.query_vars) <= {"attachment", "attachment_id"} and not state.redirect_url:
            if _filled(state.get.get("attachment_id")):
                url = self.repository.get_permalink(q.int_var("attachment_id"))
                if url:
                    state.redirect_url = url
                    c.query = c.query.remove("attachment_id")
            else:
                state.redirect_url = self.repository.get_permalink(q.queried_object_id)
            return
        self._normalize_single(state)

    def _normalize_single(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate
        if _filled(state.get.get("p")) and not state.redirect_url:
            url = self.repository.get_permalink(q.int_var("p"))
            if url:
                state.redirect_url = url
                c.query = c.query.remove("p", "post_type")
            return
        if _filled(state.get.get("name")) and not state.redirect_url:
            url = self.repository.get_permalink(q.queried_object_id)
            if url:
                state.redirect_url = url
                c.query = c.query.remove("name")
            return
        self._check_category_path(state)

    def _check_category_path(self, state: _Resolution) -> None:
        """A stale category segment in the path is replaced by the real permalink."""
        q = state.query
        category_path = q.var("category_name")
        if "%category%" not in self.rewrite.permalink_structure or not category_path:
            return
        category = self.repository.get_category_by_path(category_path)
        if category is None or not self.repository.has_term(category.term_id, "category", q.queried_object_id):
            url = self.repository.get_permalink(q.queried_object_id)
            if url:
                state.redirect_url = url

    def _normalize_page(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate
        if _filled(state.get.get("page_id")) and not state.redirect_url:
            url = self.repository.get_permalink(q.int_var("page_id"))
            if url:
                state.redirect_url = url
                c.query = c.query.remove("page_id")
            return
        if (
            not q.is_feed
            and self.site.show_on_front == "page"
            and q.queried_object_id == self.site.page_on_front
            and not state.redirect_url
        ):
            state.redirect_url = self.links.home_url("/")

    def _normalize_posts_page(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate
        if (
            _filled(state.get.get("page_id"))
            and self.site.show_on_front == "page"
            and q.int_var("page_id") == self.site.page_for_posts
            and not state.redirect_url
        ):
            url = self.repository.get_permalink(self.site.page_for_posts)
            if url:
                state.redirect_url = url
                c.query = c.query.remove("page_id")

    def _normalize_date(self, state: _Resolution) -> None:
        q, c, get = state.query, state.candidate, state.get

        if _filled(get.get("m")):
            m = q.var("m")
            url = None
            if len(m) == 4:
                url = self.links.year_link(m)
            elif len(m) == 6:
                url = self.links.month_link(m[:4], m[4:6])
            elif len(m) == 8:
                url = self.links.day_link(m[:4], m[4:6], m[6:8])
            if url:
                state.redirect_url = url
                c.query = c.query.remove("m")
            return

        year, month = q.var("year"), q.var("monthnum")
        if q.is_day and _filled(year) and _filled(month) and _filled(get.get("day")):
            state.redirect_url = self.links.day_link(year, month, q.var("day"))
            c.query = c.query.remove("year", "monthnum", "day")
        elif q.is_month and _filled(year) and _filled(get.get("monthnum")):
            state.redirect_url = self.links.month_link(year, month)
            c.query = c.query.remove("year", "monthnum")
        elif q.is_year and _filled(get.get("year")):
            state.redirect_url = self.links.year_link(year)
            c.query = c.query.remove("year")

    def _normalize_author(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate
        raw = state.get.get("author", "")
        if not (_filled(raw) and raw.isdigit()):
            return
        author = self.repository.get_user(q.int_var("author"))
        if author is not None and self.repository.author_has_published(author.id):
            state.redirect_url = self.links.author_link(author)
            c.query = c.query.remove("author")

    def _normalize_term(self, state: _Resolution) -> None:
        q, c = state.query, state.candidate
        term = q.queried_term
        if q.terms_queried > 1 or term is None or not term.term_id:
            return
        term_url = self.repository.get_term_link(term.term_id, term.taxonomy)
        if not term_url or not c.query:
            return

        qv_remove = ["term", "taxonomy"]
        if q.is_category:
            qv_remove += ["category_name", "cat"]
        elif q.is_tag:
            qv_remove += ["tag", "tag_id"]
        else:
            taxonomy = self.repository.get_taxonomy(term.taxonomy)
            if taxonomy is not None and taxonomy.query_var:
                qv_remove.append(taxonomy.query_var)

        rewrite_vars = set(q.query_vars) - set(state.get)
        if not rewrite_vars:
            # Every query var came from the query string: swap them for the term link
            c.query = c.query.remove(*qv_remove)
            target = parse_url(term_url)
            if target is None:
                return
            if target.query:
                c.query = c.query.merge(target.query)
            else:
                c.path = target.path
        else:
            c.query = c.query.remove(*(qv for qv in qv_remove if qv in rewrite_vars))

    # ------------------------------------------------------------------
    # Pagination and feeds
    # ------------------------------------------------------------------

    def _paginate_singular(self, state: _Resolution) -> None:
        q = state.query
        if not (q.is_singular and _filled(q.var("page"))):
            return
        if not state.redirect_url:
            state.redirect_url = self.repository.get_permalink(q.queried_object_id)

        page = q.int_var("page")
        if page > 1 and state.redirect_url:
            if self._is_front_page(q):
                suffix = self.rewrite.user_trailingslashit(f"{self.rewrite.pagination_base}/{page}", "paged")
            else:
                suffix = self.rewrite.user_trailingslashit(str(page), "single_paged")
            state.redirect_url = trailingslashit(state.redirect_url) + suffix
        state.candidate.query = state.candidate.query.remove("page")

    def _paginate_archives_and_feeds(self, state: _Resolution) -> None:
        q, c, rw = state.query, state.candidate, self.rewrite
        if not (_filled(q.var("paged")) or q.is_feed or _filled(q.var("cpage"))):
            return

        c.path = paths.strip_paging_and_feed(c.path, rw)

        addl_path = ""
        feed = q.var("feed")
        if q.is_feed and feed in rw.feeds:
            if not q.is_singular and _filled(q.var("withcomments")):
                addl_path += f"{rw.comments_base}/"
            default = self.site.default_feed
            if (default == "rss" and feed == "feed") or feed == "rss":
                feed_format = "" if default == "rss2" else "rss2"
            else:
                feed_format = "" if feed in (default, "feed") else feed
            addl_path += rw.user_trailingslashit(f"{rw.feed_base}/{feed_format}", "feed")
            c.query = c.query.remove("feed")
        elif q.is_feed and feed == "old":
            script = paths.basename(c.path)
            if script in LEGACY_FEED_FILES:
                feed_type = LEGACY_FEED_FILES[script] or self.site.default_feed
                raise _ShortCircuit(self.links.feed_link(feed_type), f"legacy feed file {script}")

        paged = q.int_var("paged")
        if paged > 0:
            c.query = c.query.remove("paged")
            if not q.is_feed:
                if paged > 1 and not q.is_single:
                    addl_path = (trailingslashit(addl_path) if addl_path else "") + rw.user_trailingslashit(
                        f"{rw.pagination_base}/{paged}", "paged"
                    )
                elif not q.is_single:
                    addl_path = trailingslashit(addl_path) if addl_path else ""
            elif paged > 1:
                c.query = c.query.set("paged", str(paged))

        cpage = q.int_var("cpage")
        newest_first = self.site.default_comments_page == "newest"
        if self.site.page_comments and ((newest_first and cpage > 0) or (not newest_first and cpage > 1)):
            addl_path = (trailingslashit(addl_path) if addl_path else "") + rw.user_trailingslashit(
                f"{rw.comments_pagination_base}-{cpage}", "commentpaged"
            )
            c.query = c.query.remove("cpage")

        c.path = rw.user_trailingslashit(paths.strip_trailing_index(c.path, rw.index))
        if addl_path and rw.using_index_permalinks() and f"/{rw.index}/" not in c.path:
            c.path = trailingslashit(c.path) + rw.index + "/"
        if addl_path:
            c.path = trailingslashit(c.path) + addl_path
        state.redirect_url = f"{c.scheme}://{c.host}{c.path}"

    def _check_legacy_registration(self, state: _Resolution) -> None:
        if paths.basename(state.candidate.path) == LEGACY_REGISTER_FILE:
            raise _ShortCircuit(self.links.registration_url(), "legacy registration page")

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    def _attach_leftover_query(self, state: _Resolution) -> None:
        """Carry query args the pipeline did not consume over to the new target."""
        if state.redirect_url and state.candidate.query:
            leftover = state.candidate.query
            target = parse_url(state.redirect_url)
            if leftover.get("name") and not (target is not None and target.query.get("name")):
                leftover = leftover.remove("name")
            state.redirect_url = add_query_args(state.redirect_url, leftover.reencoded())

        if state.redirect_url:
            target = parse_url(state.redirect_url)
            if target is not None:
                state.candidate = _Candidate.from_parsed(target)

    def _normalize_candidate(self, state: _Resolution, original: ParsedURL) -> None:
        c, q, rw = state.candidate, state.query, self.rewrite

        # www.example.com vs example.com
        home = parse_url(self.site.home_url)
        if home is not None and home.host:
            c.host = home.host
        home_path = home.path if home is not None and home.path else "/"
        c.port = home.port if home is not None and home.port else None

        c.path = paths.strip_trailing_index(c.path, rw.index)
        c.path = paths.trim_path_punctuation(c.path)

        if c.query:
            c.query = self._clean_query(c.query)

        if not rw.using_index_permalinks():
            c.path = paths.strip_inner_index(c.path, rw.index)

        is_front = self._is_front_page(q)
        paged = q.int_var("paged")
        if rw.using_permalinks() and not q.is_404 and (not is_front or paged > 1):
            if paged > 0:
                ts_type = "paged"
            else:
                ts_type = next((t for t in TRAILING_SLASH_TYPES if q.is_type(t)), "")
            c.path = rw.user_trailingslashit(c.path, ts_type)
        elif is_front:
            c.path = trailingslashit(c.path)

        c.path = paths.collapse_slashes(c.path)

        # Always trailing-slash the front page
        if trailingslashit(c.path) == trailingslashit(home_path):
            c.path = trailingslashit(c.path)

        # Capitalization-only host differences would loop; only www <-> no-www is rewritten
        if not _is_www_variant(original.host, c.host):
            c.host = original.host

    @staticmethod
    def _clean_query(query: QueryString) -> QueryString:
        pairs = query.pairs

        if pairs and pairs[-1][0] in TERMINATING_ARGS and pairs[-1][1] is not None:
            key, value = pairs[-1]
            pairs[-1] = (key, paths.trim_trailing_punctuation(value))

        pairs = [(k, v) for k, v in pairs if not (k in TERMINATING_ARGS and not v)]
        # rss is an obsolete alias
        pairs = [(k, "rss2" if k == "feed" and v == "rss" else v) for k, v in pairs]
        return QueryString(pairs)

    def _is_front_page(self, query: ResolvedQuery) -> bool:
        if self.site.show_on_front == "posts" and query.is_home:
            return True
        return (
            self.site.show_on_front == "page"
            and bool(self.site.page_on_front)
            and query.is_page
            and query.queried_object_id == self.site.page_on_front
        )

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def _decide(self, state: _Resolution, original: ParsedURL) -> RedirectResult:
        c = state.candidate
        original_key = (
            original.host,
            lowercase_octets(original.path),
            original.port,
            lowercase_octets(str(original.query)) or None,
        )
        candidate_key = (
            c.host,
            lowercase_octets(c.path),
            c.port,
            lowercase_octets(str(c.query)) or None,
        )
        if original_key == candidate_key:
            return NoRedirect("already canonical")

        redirect_url = c.url
        requested = state.request.url
        if redirect_url == requested:
            return NoRedirect("already canonical")
        requested = lowercase_octets(requested)

        if self.redirect_filter is not None:
            filtered = self.redirect_filter(redirect_url, requested)
            if not filtered:
                logger.info("Redirect %s -> %s cancelled by filter", requested, redirect_url)
                return NoRedirect("cancelled by redirect filter")
            redirect_url = filtered

        if strip_fragment(redirect_url) == strip_fragment(requested):
            return NoRedirect("already canonical")

        result = CanonicalURL.from_url(redirect_url)
        if result is None:
            logger.debug("Filtered redirect target is not a URL: %r", redirect_url)
            return NoRedirect("unparsable redirect target")
        return result


def resolve(
    request: RequestContext,
    query: ResolvedQuery,
    config: ResolverConfig,
    repository: ContentRepository,
    guesser: PermalinkGuesser | None = None,
    redirect_filter: RedirectFilter | None = None,
) -> RedirectResult:
    """Resolve a single request without keeping a resolver around."""
    resolver = CanonicalResolver(config, repository, guesser=guesser, redirect_filter=redirect_filter)
    return resolver.resolve(request, query)
