"""Segment-level operations on URL paths.

Paths are handled as ``/``-separated segment lists so that pagination, feed
and comment-page suffixes are removed or appended as whole segments instead
of by pattern rewriting on the encoded string.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from redirect_canonical.models.config import RewriteConfig

FEED_SEGMENTS = frozenset({"feed", "rss", "rss2", "rdf", "atom"})

# Longest forms first so "%E2%80%9C" wins over a bare "%"-prefix match
TRAILING_PUNCTUATION = (
    "%E2%80%9C", "%E2%80%9D",  # curly quotes
    "%20", " ",
    "%21", "!",
    "%22", '"',
    "%27", "'",
    "%28", "(",
    "%29", ")",
    "%2C", ",",
    "%2E", ".",
    "%3B", ";",
    "%7B", "{",
    "%7D", "}",
)

_NBSP_RE = re.compile(r"(%C2%A0)+$", re.IGNORECASE)


def split_segments(path: str) -> list[str]:
    """Non-empty segments of ``path``."""
    return [s for s in path.split("/") if s]


def join_segments(segments: list[str], trailing: bool = True) -> str:
    if not segments:
        return "/"
    return "/" + "/".join(segments) + ("/" if trailing else "")


def basename(path: str) -> str:
    segments = split_segments(path)
    return segments[-1] if segments else ""


def _strip_one_suffix(segments: list[str], rewrite: RewriteConfig) -> bool:
    """Drop one pagination, feed or comment-page suffix. Returns True if one was dropped."""
    if not segments:
        return False
    last = segments[-1]
    paging_base = quote(rewrite.pagination_base, safe="")

    if last.isdigit() and len(segments) >= 2 and segments[-2] == paging_base:
        del segments[-2:]
        return True
    if last.startswith(paging_base) and last[len(paging_base):].isdigit():
        segments.pop()
        return True

    if last in FEED_SEGMENTS:
        segments.pop()
        if segments and segments[-1] == rewrite.comments_base:
            segments.pop()
        return True

    comment_page = quote(rewrite.comments_pagination_base, safe="") + "-"
    if last.startswith(comment_page) and last[len(comment_page):].isdigit():
        segments.pop()
        return True
    return False


def strip_paging_and_feed(path: str, rewrite: RewriteConfig) -> str:
    """Remove every trailing pagination, feed and comment-page suffix.

    The path is returned untouched when it carries no such suffix.
    """
    segments = split_segments(path)
    stripped = False
    while _strip_one_suffix(segments, rewrite):
        stripped = True
    return join_segments(segments) if stripped else path


def strip_trailing_segment(path: str, value: str) -> str:
    """Drop the last segment when it equals ``value``; the result has no trailing slash."""
    segments = split_segments(path)
    if segments and segments[-1] == value:
        segments.pop()
    return join_segments(segments, trailing=False) if segments else ""


def strip_trailing_index(path: str, index: str) -> str:
    """``/index.php`` or ``/index.php/`` at the end of the path becomes ``/``."""
    return re.sub("/" + re.escape(index) + "/*$", "/", path)


def strip_inner_index(path: str, index: str) -> str:
    return path.replace(f"/{index}/", "/")


def strip_trailing_nbsp(path: str) -> str:
    return _NBSP_RE.sub("", path)


def collapse_slashes(path: str) -> str:
    if "//" not in path:
        return path
    return re.sub(r"/+", "/", path)


def trim_trailing_punctuation(text: str) -> str:
    """Strip trailing spaces and end punctuation, raw or percent-encoded."""
    changed = True
    while changed and text:
        changed = False
        for token in TRAILING_PUNCTUATION:
            if text[-len(token):].upper() == token:
                text = text[: -len(token)]
                changed = True
                break
    return text


def trim_path_punctuation(path: str) -> str:
    """Trim end punctuation from the last segment, keeping any trailing slash."""
    bare = path.rstrip("/")
    trimmed = trim_trailing_punctuation(bare)
    if trimmed == bare:
        return path
    return trimmed + path[len(bare):]
