"""Update state: persists the outcome of the last update check."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

NEW_VERSION_TTL_SECONDS = 24 * 60 * 60


class UpdateState(BaseModel):
    last_checked: str = ""
    branch: str = ""
    recommended_version: Optional[str] = None
    # Epoch seconds after which the new-version notice is stale
    new_version_expires_at: Optional[float] = None
    disabled: bool = False
    disable_from: Optional[str] = None

    def has_new_version(self, now: float | None = None) -> bool:
        if self.new_version_expires_at is None:
            return False
        return (now if now is not None else time.time()) < self.new_version_expires_at


class UpdateStateManager:
    """Manages the update state JSON file."""

    def __init__(self, state_path: Path):
        self.path = Path(state_path)

    def load(self) -> UpdateState:
        """Load state from disk, or start fresh."""
        if self.path.exists():
            try:
                with open(self.path) as f:
                    data = json.load(f)
                return UpdateState(**data)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load update state: %s. Starting fresh.", e)
        return UpdateState()

    def save(self, state: UpdateState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        state.last_checked = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        with open(self.path, "w") as f:
            json.dump(state.model_dump(), f, indent=2)
        logger.debug("Saved update state to %s", self.path)

    @staticmethod
    def mark_new_version(state: UpdateState, recommended: str, now: float | None = None) -> None:
        state.recommended_version = recommended
        state.new_version_expires_at = (now if now is not None else time.time()) + NEW_VERSION_TTL_SECONDS

    @staticmethod
    def clear_new_version(state: UpdateState) -> None:
        state.recommended_version = None
        state.new_version_expires_at = None
