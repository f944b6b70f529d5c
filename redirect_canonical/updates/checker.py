"""Update checker: compares the running version against the release manifest.

The check is best-effort: network and manifest errors are logged and leave
the stored state untouched. Its outcome never affects request resolution.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import httpx

from redirect_canonical.models.config import UpdateConfig
from redirect_canonical.updates.manifest import VERSION, UpdateManifest
from redirect_canonical.updates.state import UpdateStateManager

logger = logging.getLogger(__name__)

__all__ = [
    "VERSION",
    "UpdateStatus",
    "UpdateCheckResult",
    "UpdateChecker",
    "compare_versions",
    "host_branch",
    "start_background_check",
]


def _version_key(version: str) -> tuple[int, ...]:
    parts = []
    for piece in re.split(r"[.\-+]", version.strip()):
        match = re.match(r"\d+", piece)
        parts.append(int(match.group(0)) if match else 0)
    while parts and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def compare_versions(a: str, b: str) -> int:
    """-1, 0 or 1 as ``a`` is older than, equal to or newer than ``b``."""
    ka, kb = _version_key(a), _version_key(b)
    return (ka > kb) - (ka < kb)


def host_branch(version: str) -> str:
    """Major.minor branch of a host version, e.g. ``5.1.3-beta`` -> ``5.1``."""
    return ".".join(re.split(r"[.-]", version)[:2])


class UpdateStatus(str, Enum):
    CURRENT = "current"
    NEW_VERSION = "new_version"
    DISABLE = "disable"
    UNKNOWN = "unknown"


@dataclass
class UpdateCheckResult:
    status: UpdateStatus
    branch: str
    recommended_version: Optional[str] = None
    disable_from: Optional[str] = None


class UpdateChecker:
    """Fetches the manifest and records whether an update is due."""

    def __init__(
        self,
        config: UpdateConfig,
        state_manager: UpdateStateManager | None = None,
        version: str = VERSION,
    ):
        self.config = config
        self.state_manager = state_manager or UpdateStateManager(Path(config.state_path))
        self.version = version

    def fetch_manifest(self) -> Optional[UpdateManifest]:
        try:
            response = httpx.get(
                self.config.manifest_url,
                timeout=self.config.timeout_seconds,
                follow_redirects=True,
            )
            response.raise_for_status()
            return UpdateManifest.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.warning("Update check failed: %s", e)
        except ValueError as e:
            logger.warning("Update manifest at %s is invalid: %s", self.config.manifest_url, e)
        return None

    def check(self) -> UpdateCheckResult:
        branch = host_branch(self.config.host_version)
        manifest = self.fetch_manifest()
        if manifest is None:
            return UpdateCheckResult(UpdateStatus.UNKNOWN, branch)

        state = self.state_manager.load()
        state.branch = branch
        result = UpdateCheckResult(UpdateStatus.CURRENT, branch)

        disable_from = manifest.disable_from
        if disable_from:
            # A pending disable entry replaces the version check; the new-version flag is left alone
            state.disable_from = disable_from
            state.disabled = compare_versions(branch, disable_from) >= 0
            if state.disabled:
                logger.warning("Host branch %s no longer needs the resolver (disabled from %s)", branch, disable_from)
                result = UpdateCheckResult(UpdateStatus.DISABLE, branch, disable_from=disable_from)
            else:
                logger.debug("Resolver will be disabled from host branch %s", disable_from)
                result = UpdateCheckResult(UpdateStatus.CURRENT, branch, disable_from=disable_from)
        elif branch in manifest.version:
            recommended = manifest.version[branch]
            state.disabled = False
            state.disable_from = None
            if compare_versions(self.version, recommended) < 0:
                logger.info("New version %s available for branch %s (running %s)", recommended, branch, self.version)
                self.state_manager.mark_new_version(state, recommended)
                result = UpdateCheckResult(UpdateStatus.NEW_VERSION, branch, recommended_version=recommended)
            else:
                self.state_manager.clear_new_version(state)
                result = UpdateCheckResult(UpdateStatus.CURRENT, branch, recommended_version=recommended)

        self.state_manager.save(state)
        return result


def start_background_check(checker: UpdateChecker) -> threading.Thread:
    """Run ``checker.check()`` in a daemon thread and return the thread."""
    thread = threading.Thread(target=checker.check, name="update-check", daemon=True)
    thread.start()
    logger.debug("Started background update check against %s", checker.config.manifest_url)
    return thread
