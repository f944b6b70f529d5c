"""Tests for the 404 permalink guessers."""

from unittest.mock import Mock

import anthropic
import pytest

from redirect_canonical.models.query import ContentKind, ResolvedQuery
from redirect_canonical.models.request import RequestContext
from redirect_canonical.services.guesser import AIGuesser, SlugGuesser

HELLO = "http://example.com/2024/01/15/hello-world/"


def not_found(**query_vars) -> ResolvedQuery:
    return ResolvedQuery(kind=ContentKind.NOT_FOUND, query_vars=query_vars)


@pytest.fixture
def request_ctx() -> RequestContext:
    return RequestContext(url="http://example.com/helo-wrld/")


@pytest.fixture
def slug_guesser(store, links) -> SlugGuesser:
    return SlugGuesser(store, links)


class TestSlugGuesser:
    def test_prefix_match(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found(name="hello")) == HELLO

    def test_no_name(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found()) is None

    def test_no_match(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found(name="zzz")) is None

    def test_date_filter(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found(name="hello", year="2023")) is None
        assert slug_guesser.guess(request_ctx, not_found(name="hello", year="2024", monthnum="01")) == HELLO

    def test_post_type_filter(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found(name="hello", post_type="page")) is None
        assert slug_guesser.guess(request_ctx, not_found(name="ab", post_type="page")) == "http://example.com/about/"

    def test_feed(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found(name="hello", feed="atom")) == HELLO + "feed/atom/"

    def test_page(self, slug_guesser, request_ctx):
        assert slug_guesser.guess(request_ctx, not_found(name="multi", page="2")) == (
            "http://example.com/2024/02/03/multi-page/2/"
        )


class TestAIGuesser:
    @pytest.fixture
    def ai_client(self) -> Mock:
        return Mock()

    def test_uses_fallback_first(self, ai_client, store, slug_guesser, request_ctx):
        guesser = AIGuesser(ai_client, store, fallback=slug_guesser)
        assert guesser.guess(request_ctx, not_found(name="hello")) == HELLO
        ai_client.complete_json.assert_not_called()

    def test_accepts_known_permalink(self, ai_client, store, request_ctx):
        ai_client.complete_json.return_value = {"url": HELLO, "confidence": 0.9, "reasoning": "typo"}
        guesser = AIGuesser(ai_client, store)

        assert guesser.guess(request_ctx, not_found()) == HELLO
        prompt = ai_client.complete_json.call_args.kwargs["user_message"]
        assert "http://example.com/helo-wrld/" in prompt
        assert HELLO in prompt
        assert guesser.budget_remaining == 2

    def test_rejects_invented_url(self, ai_client, store, request_ctx):
        ai_client.complete_json.return_value = {"url": "http://example.com/made-up/"}
        assert AIGuesser(ai_client, store).guess(request_ctx, not_found()) is None

    def test_null_answer(self, ai_client, store, request_ctx):
        ai_client.complete_json.return_value = {"url": None, "reasoning": "no match"}
        assert AIGuesser(ai_client, store).guess(request_ctx, not_found()) is None

    def test_api_error_is_no_guess(self, ai_client, store, request_ctx):
        ai_client.complete_json.side_effect = anthropic.APIError(message="boom", request=Mock(), body=None)
        assert AIGuesser(ai_client, store).guess(request_ctx, not_found()) is None

    def test_invalid_json_is_no_guess(self, ai_client, store, request_ctx):
        ai_client.complete_json.side_effect = ValueError("AI returned invalid JSON")
        assert AIGuesser(ai_client, store).guess(request_ctx, not_found()) is None

    def test_budget(self, ai_client, store, request_ctx):
        ai_client.complete_json.return_value = {"url": None}
        guesser = AIGuesser(ai_client, store, max_calls=2)
        for _ in range(4):
            guesser.guess(request_ctx, not_found())

        assert ai_client.complete_json.call_count == 2
        assert guesser.budget_remaining == 0
        guesser.reset()
        assert guesser.budget_remaining == 2

    def test_candidate_limit(self, ai_client, store, request_ctx):
        ai_client.complete_json.return_value = {"url": None}
        AIGuesser(ai_client, store, max_candidates=1).guess(request_ctx, not_found())
        prompt = ai_client.complete_json.call_args.kwargs["user_message"]
        assert "http://example.com/about/" in prompt
        assert HELLO not in prompt
