"""Wires the content store, guessers, resolver and update checker together."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from redirect_canonical.ai.client import AIClient
from redirect_canonical.models.config import ResolverConfig
from redirect_canonical.models.content import ContentSnapshot
from redirect_canonical.models.decision import RedirectResult
from redirect_canonical.models.query import ResolvedQuery
from redirect_canonical.models.request import RequestContext
from redirect_canonical.models.scenario import Scenario, ScenarioOutcome
from redirect_canonical.pagenum import get_pagenum_link
from redirect_canonical.resolver.resolver import CanonicalResolver
from redirect_canonical.services.content_store import InMemoryContentStore
from redirect_canonical.services.guesser import AIGuesser, SlugGuesser
from redirect_canonical.services.links import LinkBuilder
from redirect_canonical.services.ports import PermalinkGuesser, RedirectFilter
from redirect_canonical.updates.checker import UpdateChecker, UpdateCheckResult, start_background_check
from redirect_canonical.updates.state import UpdateState, UpdateStateManager

logger = logging.getLogger(__name__)


class Orchestrator:
    """Entry point for hosts embedding the resolver."""

    def __init__(
        self,
        config: ResolverConfig,
        snapshot: ContentSnapshot | None = None,
        redirect_filter: RedirectFilter | None = None,
        work_dir: Path = Path(".redirect-canonical"),
    ):
        self.config = config
        self.work_dir = Path(work_dir)
        self.links = LinkBuilder(config.site, config.rewrite)
        self.store = InMemoryContentStore(snapshot or ContentSnapshot(), self.links)
        self.guesser = self._build_guesser()
        self.resolver = CanonicalResolver(
            config, self.store, guesser=self.guesser, redirect_filter=redirect_filter,
        )
        self.update_checker = UpdateChecker(
            config.updates, UpdateStateManager(Path(config.updates.state_path)),
        )

    def _build_guesser(self) -> Optional[PermalinkGuesser]:
        if not self.config.guess_404:
            return None
        slug_guesser = SlugGuesser(self.store, self.links)
        if not self.config.ai_guess_enabled:
            return slug_guesser

        # AI guessing is optional; slug guessing keeps working without it
        try:
            ai_client = AIClient(
                model=self.config.ai_model,
                max_tokens=self.config.ai_max_tokens,
                debug_dir=self.work_dir / "debug",
            )
        except EnvironmentError as e:
            logger.warning("AI client unavailable: %s. Using slug guessing only.", e)
            return slug_guesser

        return AIGuesser(
            ai_client,
            self.store,
            fallback=slug_guesser,
            max_calls=self.config.ai_max_guess_calls,
            max_candidates=self.config.ai_max_candidates,
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, request: RequestContext, query: ResolvedQuery) -> RedirectResult:
        return self.resolver.resolve(request, query)

    def run_scenarios(self, scenarios: list[Scenario]) -> list[ScenarioOutcome]:
        outcomes = []
        for scenario in scenarios:
            request = RequestContext(method=scenario.method, url=scenario.url)
            result = self.resolver.resolve(request, scenario.query)
            outcome = ScenarioOutcome(name=scenario.name, url=scenario.url)
            if result:
                outcome.redirected = True
                outcome.location = result.url
                outcome.status_code = result.status_code
                outcome.immediate = result.immediate
            else:
                outcome.reason = result.reason

            if scenario.expected_location is not None:
                outcome.passed = outcome.location == scenario.expected_location
            elif scenario.expect_no_redirect:
                outcome.passed = not outcome.redirected
            if outcome.passed is False:
                logger.warning(
                    "Scenario %s: expected %s, got %s",
                    scenario.name or scenario.url,
                    scenario.expected_location or "no redirect",
                    outcome.location or f"no redirect ({outcome.reason})",
                )
            outcomes.append(outcome)

        logger.info(
            "Resolved %d scenarios: %d redirects",
            len(outcomes), sum(1 for o in outcomes if o.redirected),
        )
        return outcomes

    def pagenum_link(self, link: str, pagenum: int, request_uri: str, is_admin: bool = False) -> str:
        return get_pagenum_link(
            link,
            pagenum,
            request_uri=request_uri,
            site=self.config.site,
            rewrite=self.config.rewrite,
            is_admin=is_admin,
            host_version=self.config.updates.host_version,
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def check_updates(self) -> Optional[UpdateCheckResult]:
        if not self.config.updates.enabled:
            logger.info("Update checks are disabled")
            return None
        return self.update_checker.check()

    def stored_update_state(self) -> Optional[UpdateState]:
        """Outcome of the last update check, as persisted by the checker."""
        if not self.config.updates.enabled:
            return None
        return self.update_checker.state_manager.load()

    def start_update_check(self) -> Optional[threading.Thread]:
        if not self.config.updates.enabled:
            return None
        return start_background_check(self.update_checker)
