"""Page-number link filter.

Rebuilds ``/page/N/`` links for the current request so that links on an
already-paginated archive do not stack a second pagination suffix onto the
first one.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

from redirect_canonical.models.config import RewriteConfig, SiteConfig
from redirect_canonical.updates.checker import compare_versions
from redirect_canonical.url_utils import QueryString, parse_url, trailingslashit

logger = logging.getLogger(__name__)

# Hosts from this version on build page-number links correctly on their own
FIXED_IN_VERSION = "5.2"

_TRAILING_NUMBER_RE = re.compile(r"[^/]*[0-9](?=/$|$)")


def get_pagenum_from_path(path: str) -> str:
    """Last path segment when it ends in a digit, with or without a trailing slash."""
    match = _TRAILING_NUMBER_RE.search(path)
    return match.group(0) if match else ""


def _drop_paged(request_uri: str) -> str:
    path, sep, query = request_uri.partition("?")
    if not sep:
        return path
    remaining = QueryString.parse(query).remove("paged")
    return path + ("?" + str(remaining) if remaining else "")


def get_pagenum_link(
    link: str,
    pagenum: int = 1,
    *,
    request_uri: str,
    site: SiteConfig,
    rewrite: RewriteConfig,
    is_admin: bool = False,
    host_version: str = "5.1",
) -> str:
    """Return the link to page ``pagenum`` of the current request.

    ``link`` is the link the host generated; it is returned untouched when
    permalinks are off or in admin screens.
    """
    if not rewrite.using_permalinks() or is_admin:
        return link

    request = _drop_paged(request_uri)

    if compare_versions(host_version, FIXED_IN_VERSION) < 0:
        link_num = get_pagenum_from_path(link)
        if link_num.isdigit() and int(link_num) > 1 and link_num != get_pagenum_from_path(request):
            logger.debug("Taking page number %s from link %s", link_num, link)
            pagenum = int(link_num)

    home = parse_url(site.home_url)
    home_path = home.path if home is not None else ""
    if home_path:
        request = re.sub("^" + re.escape(home_path), "", request, flags=re.IGNORECASE)
    request = request.lstrip("/")

    request, sep, query_string = request.partition("?")
    query_string = sep + query_string

    paging_base = re.escape(quote(rewrite.pagination_base, safe=""))
    request = re.sub(paging_base + r"/\d+/?$", "", request)
    request = re.sub("^" + re.escape(rewrite.index), "", request, flags=re.IGNORECASE)
    request = request.lstrip("/")

    base = trailingslashit(site.home_url)
    if rewrite.using_index_permalinks() and (pagenum > 1 or request):
        base += rewrite.index + "/"

    if pagenum > 1:
        suffix = rewrite.user_trailingslashit(f"{rewrite.pagination_base}/{pagenum}", "paged")
        request = (trailingslashit(request) if request else request) + suffix

    return base + request + query_string
