"""Resolver output: a canonical URL to redirect to, or a reasoned no-op."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from redirect_canonical.url_utils import build_url, parse_url


class CanonicalURL(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheme: str
    host: str
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    status_code: int = 301
    # Legacy feed file / registration page: answered before the normal pipeline finishes
    immediate: bool = False

    @property
    def url(self) -> str:
        return build_url(self.scheme, self.host, self.port, self.path, self.query)

    @classmethod
    def from_url(cls, url: str, immediate: bool = False) -> Optional["CanonicalURL"]:
        parsed = parse_url(url)
        if parsed is None:
            return None
        return cls(
            scheme=parsed.scheme,
            host=parsed.host,
            port=parsed.port,
            path=parsed.path,
            query=str(parsed.query),
            immediate=immediate,
        )

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class NoRedirect:
    reason: str = ""

    def __bool__(self) -> bool:
        return False


RedirectResult = Union[CanonicalURL, NoRedirect]
