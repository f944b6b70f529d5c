"""Batch resolution scenarios and their outcomes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from redirect_canonical.models.query import ResolvedQuery


class Scenario(BaseModel):
    """One request to resolve, with the router's classification of it."""

    name: str = ""
    method: str = "GET"
    url: str
    query: ResolvedQuery = Field(default_factory=ResolvedQuery)
    # Either the expected Location, or expect_no_redirect; neither means unchecked
    expected_location: Optional[str] = None
    expect_no_redirect: bool = False


class ScenarioSet(BaseModel):
    scenarios: list[Scenario] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> "ScenarioSet":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Scenario file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, list):
            data = {"scenarios": data}
        return cls(**data)


class ScenarioOutcome(BaseModel):
    name: str = ""
    url: str
    redirected: bool = False
    location: Optional[str] = None
    status_code: Optional[int] = None
    immediate: bool = False
    reason: str = ""
    passed: Optional[bool] = None  # None when the scenario carries no expectation
