"""Shared URL utilities: parse URLs, edit query strings, fold percent-octets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import quote, unquote_plus, urlsplit

_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")


class QueryString:
    """Ordered query string that keeps untouched pairs byte-for-byte.

    Each pair is ``(key, value)`` where ``value`` is ``None`` for a bare key
    (``?flag``) and the raw, still-encoded text otherwise. Editing methods
    return a new instance.
    """

    def __init__(self, pairs: Iterable[tuple[str, Optional[str]]] = ()):
        self._pairs: list[tuple[str, Optional[str]]] = list(pairs)

    @classmethod
    def parse(cls, raw: str | None) -> "QueryString":
        if not raw:
            return cls()
        raw = raw.lstrip("?")
        pairs: list[tuple[str, Optional[str]]] = []
        for part in raw.split("&"):
            if not part:
                continue
            if "=" in part:
                key, value = part.split("=", 1)
                pairs.append((key, value))
            else:
                pairs.append((part, None))
        return cls(pairs)

    @property
    def pairs(self) -> list[tuple[str, Optional[str]]]:
        return list(self._pairs)

    def keys(self) -> list[str]:
        return [unquote_plus(k) for k, _ in self._pairs]

    def has(self, key: str) -> bool:
        return key in self.keys()

    def get(self, key: str) -> Optional[str]:
        """Decoded value of the last occurrence of ``key`` (``""`` for a bare key)."""
        found: Optional[str] = None
        for k, v in self._pairs:
            if unquote_plus(k) == key:
                found = unquote_plus(v) if v is not None else ""
        return found

    def to_dict(self) -> dict[str, str]:
        return {unquote_plus(k): (unquote_plus(v) if v is not None else "") for k, v in self._pairs}

    def remove(self, *keys: str) -> "QueryString":
        drop = set(keys)
        return QueryString((k, v) for k, v in self._pairs if unquote_plus(k) not in drop)

    def set(self, key: str, value: Optional[str], raw_key: Optional[str] = None) -> "QueryString":
        """Replace every ``key`` with a single raw value, appending ``raw_key`` (or ``key``) when absent."""
        pairs: list[tuple[str, Optional[str]]] = []
        placed = False
        for k, v in self._pairs:
            if unquote_plus(k) == key:
                if not placed:
                    pairs.append((k, value))
                    placed = True
                continue
            pairs.append((k, v))
        if not placed:
            pairs.append((raw_key or key, value))
        return QueryString(pairs)

    def merge(self, other: "QueryString") -> "QueryString":
        merged = QueryString(self._pairs)
        for k, v in other.pairs:
            merged = merged.set(unquote_plus(k), v, raw_key=k)
        return merged

    def reencoded(self) -> "QueryString":
        """Decode then rawurlencode every key and value; empty values become bare keys."""
        pairs: list[tuple[str, Optional[str]]] = []
        for k, v in self._pairs:
            decoded = unquote_plus(v) if v is not None else ""
            pairs.append((quote(unquote_plus(k), safe="[]"), quote(decoded, safe="") if decoded else None))
        return QueryString(pairs)

    def __str__(self) -> str:
        return "&".join(k if v is None else f"{k}={v}" for k, v in self._pairs)

    def __bool__(self) -> bool:
        return bool(self._pairs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, QueryString):
            return self._pairs == other._pairs
        return NotImplemented

    def __repr__(self) -> str:
        return f"QueryString({str(self)!r})"


@dataclass
class ParsedURL:
    scheme: str
    host: str
    port: Optional[int] = None
    path: str = ""
    query: QueryString = field(default_factory=QueryString)
    fragment: str = ""

    @property
    def url(self) -> str:
        return build_url(self.scheme, self.host, self.port, self.path, self.query)


def parse_url(url: str) -> Optional[ParsedURL]:
    """Split an absolute URL, keeping the host's original capitalization.

    Returns None when the URL cannot be parsed or has no host.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    netloc = parts.netloc.rpartition("@")[2]
    if netloc.startswith("["):
        host = netloc[: netloc.find("]") + 1]
    else:
        host = netloc.split(":", 1)[0]
    if not parts.scheme or not host:
        return None
    return ParsedURL(
        scheme=parts.scheme,
        host=host,
        port=port,
        path=parts.path,
        query=QueryString.parse(parts.query),
        fragment=parts.fragment,
    )


def build_url(
    scheme: str,
    host: str,
    port: Optional[int] = None,
    path: str = "",
    query: QueryString | str | None = None,
) -> str:
    url = f"{scheme}://{host}"
    if port:
        url += f":{port}"
    url += path
    query_text = str(query) if query else ""
    if query_text:
        url += "?" + query_text
    return url


def add_query_args(url: str, args: QueryString) -> str:
    """Merge ``args`` into the query of ``url``, overriding existing keys."""
    base, _, rest = url.partition("?")
    rest, hash_mark, fragment = rest.partition("#")
    if "#" in base:
        base, hash_mark, fragment = base.partition("#")
    query = QueryString.parse(rest).merge(args)
    text = base + ("?" + str(query) if query else "")
    return text + (hash_mark + fragment if hash_mark else "")


def lowercase_octets(text: str) -> str:
    """Hex-encoded octets are case-insensitive; fold them to lowercase."""
    if "%" not in text:
        return text
    return _OCTET_RE.sub(lambda m: m.group(0).lower(), text)


def strip_fragment(url: str) -> str:
    return url.split("#", 1)[0]


def trailingslashit(value: str) -> str:
    return untrailingslashit(value) + "/"


def untrailingslashit(value: str) -> str:
    return value.rstrip("/\\")


def remove_args_unless_in_url(query: QueryString, args: Iterable[str], url: str) -> QueryString:
    """Drop ``args`` from ``query`` unless the target URL carries them itself."""
    args = list(args)
    target = parse_url(url)
    if target is not None and target.query:
        target_keys = set(target.query.keys())
        return query.remove(*(a for a in args if a not in target_keys))
    return query.remove(*args)
