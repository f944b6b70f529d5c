"""404 permalink guessers: map an unmatched request to a published post."""

from __future__ import annotations

import logging
from typing import Optional

import anthropic

from redirect_canonical.ai.client import AIClient
from redirect_canonical.ai.prompts.guess import GUESS_SYSTEM_PROMPT, build_guess_prompt
from redirect_canonical.models.query import ResolvedQuery
from redirect_canonical.models.request import RequestContext
from redirect_canonical.services.links import LinkBuilder
from redirect_canonical.services.ports import ContentRepository, PermalinkGuesser
from redirect_canonical.url_utils import trailingslashit

logger = logging.getLogger(__name__)


class SlugGuesser:
    """Guesses from the ``name`` query var by slug prefix.

    ``post_type``, ``year``, ``monthnum`` and ``day`` narrow the search when
    present. The first published match wins.
    """

    def __init__(self, repository: ContentRepository, links: LinkBuilder):
        self.repository = repository
        self.links = links

    def guess(self, request: RequestContext, query: ResolvedQuery) -> Optional[str]:
        name = query.var("name")
        if not name:
            return None

        matches = self.repository.find_published_by_slug_prefix(
            name,
            post_type=query.var("post_type") or None,
            year=query.int_var("year"),
            month=query.int_var("monthnum"),
            day=query.int_var("day"),
        )
        if not matches:
            logger.debug("No published post with slug prefix %r", name)
            return None

        post = matches[0]
        permalink = self.repository.get_permalink(post.id)
        if not permalink:
            return None

        if query.var("feed"):
            return self.links.post_comments_feed_link(post, permalink, query.var("feed"))
        page = query.int_var("page")
        if page > 1:
            return trailingslashit(permalink) + self.links.rewrite.user_trailingslashit(str(page), "single_paged")
        return permalink


class AIGuesser:
    """Asks Claude to pick a permalink when the slug guess comes up empty.

    The answer is only accepted when it is one of the candidate permalinks
    sent in the prompt. Calls are budgeted per run.
    """

    def __init__(
        self,
        ai_client: AIClient,
        repository: ContentRepository,
        fallback: PermalinkGuesser | None = None,
        max_calls: int = 3,
        max_candidates: int = 200,
    ):
        self.ai_client = ai_client
        self.repository = repository
        self.fallback = fallback
        self.max_calls = max_calls
        self.max_candidates = max_candidates
        self._call_count = 0

    def reset(self) -> None:
        self._call_count = 0

    @property
    def budget_remaining(self) -> int:
        return max(0, self.max_calls - self._call_count)

    def guess(self, request: RequestContext, query: ResolvedQuery) -> Optional[str]:
        if self.fallback is not None:
            url = self.fallback.guess(request, query)
            if url:
                return url

        if self._call_count >= self.max_calls:
            logger.warning("AI guess budget exhausted, skipping %s", request.url)
            return None

        candidates: list[tuple[str, str]] = []
        for post in self.repository.published_posts(self.max_candidates):
            permalink = self.repository.get_permalink(post.id)
            if permalink:
                candidates.append((permalink, post.title))
        if not candidates:
            return None

        self._call_count += 1
        logger.info("AI guess call %d/%d for %s", self._call_count, self.max_calls, request.url)

        try:
            data = self.ai_client.complete_json(
                system_prompt=GUESS_SYSTEM_PROMPT,
                user_message=build_guess_prompt(request.url, candidates),
            )
        except (anthropic.APIError, ValueError) as e:
            logger.warning("AI guess failed for %s: %s", request.url, e)
            return None

        url = data.get("url")
        if not url:
            logger.debug("AI declined to guess for %s: %s", request.url, data.get("reasoning", ""))
            return None
        if url not in {permalink for permalink, _ in candidates}:
            logger.warning("AI guess %r is not a known permalink, ignoring", url)
            return None
        return url
