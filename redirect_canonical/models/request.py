"""Inbound request context handed to the resolver."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from redirect_canonical.url_utils import ParsedURL, QueryString, parse_url


class RequestContext(BaseModel):
    """The request as seen in the address bar. Never mutated."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> Optional["RequestContext"]:
        """Build the address-bar URL from a WSGI environ.

        Returns None when the environ carries no host.
        """
        host = environ.get("HTTP_HOST")
        if not host:
            return None
        is_ssl = environ.get("HTTPS", "").lower() in ("on", "1") or environ.get("wsgi.url_scheme") == "https"
        uri = environ.get("REQUEST_URI")
        if uri is None:
            uri = environ.get("PATH_INFO", "/")
            if environ.get("QUERY_STRING"):
                uri += "?" + environ["QUERY_STRING"]
        scheme = "https" if is_ssl else "http"
        return cls(method=environ.get("REQUEST_METHOD", "GET"), url=f"{scheme}://{host}{uri}")

    def parsed(self) -> Optional[ParsedURL]:
        return parse_url(self.url)

    @property
    def query(self) -> QueryString:
        parsed = self.parsed()
        return parsed.query if parsed else QueryString()

    @property
    def get_params(self) -> dict[str, str]:
        """Decoded query-string parameters (what the client typed)."""
        return self.query.to_dict()
