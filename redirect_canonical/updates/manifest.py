"""Release manifest: which resolver version each host branch should run."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

VERSION = "1.0.0"

# Host branch => recommended resolver version
DEFAULT_RECOMMENDATIONS = {"5.1": VERSION}


class UpdateManifest(BaseModel):
    """Published as ``latest.json``.

    ``disable.wp_version`` names the first host branch that no longer needs
    the resolver.
    """

    version: dict[str, str] = Field(default_factory=dict)
    disable: dict[str, str] = Field(default_factory=dict)

    @field_validator("version", "disable", mode="before")
    @classmethod
    def empty_list_is_empty_map(cls, v: Any) -> Any:
        # Empty maps are serialized as [] by some producers
        if isinstance(v, list) and not v:
            return {}
        return v

    @property
    def disable_from(self) -> Optional[str]:
        return self.disable.get("wp_version")

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.model_dump(), indent=indent)


def build_manifest(
    recommendations: dict[str, str] | None = None,
    disable_from: str | None = None,
) -> UpdateManifest:
    """Build the manifest to publish for the current release."""
    disable = {"wp_version": disable_from} if disable_from else {}
    return UpdateManifest(
        version=dict(DEFAULT_RECOMMENDATIONS if recommendations is None else recommendations),
        disable=disable,
    )
