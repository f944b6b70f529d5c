"""Claude API client wrapper used for 404 permalink guessing."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Optional

import anthropic

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json|)?\s*\n(.*?)\n```\s*$", re.DOTALL | re.MULTILINE)


class AIClient:
    """Wrapper around the Anthropic Claude API."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1024,
        debug_dir: Path | None = None,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Set it or disable ai_guess_enabled in the config."
            )
        # Guesses run inside request handling; keep the timeout short
        self.client = anthropic.Anthropic(api_key=api_key, timeout=30.0)
        self.model = model
        self.max_tokens = max_tokens
        self.debug_dir = debug_dir
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> str:
        """Send a completion request to Claude and return the text response."""
        self._call_count += 1
        tokens = max_tokens or self.max_tokens
        logger.info(
            "Calling AI (call #%d, model=%s, max_tokens=%d)...",
            self._call_count, self.model, tokens,
        )

        try:
            call_start = time.time()
            response = self.client.messages.create(
                model=self.model,
                max_tokens=tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
            text = response.content[0].text
            logger.info("AI response received in %.1fs (%d chars)", time.time() - call_start, len(text))
            if response.stop_reason == "max_tokens":
                logger.warning("AI response was truncated at max_tokens=%d", tokens)
            self._save_exchange_log(system_prompt, user_message, text, None)
            return text
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", e)
            self._save_exchange_log(system_prompt, user_message, "", str(e))
            raise

    def complete_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
    ) -> dict[str, Any]:
        """Send a completion request and parse the response as JSON."""
        text = self.complete(system_prompt, user_message, max_tokens)
        return self._parse_json_response(text)

    @staticmethod
    def _parse_json_response(text: str) -> dict[str, Any]:
        """Parse AI response as JSON, tolerating code fences and surrounding prose."""
        text = text.strip()
        match = _FENCE_RE.search(text)
        if match:
            text = match.group(1).strip()

        try:
            data = json.loads(text, strict=False)
        except json.JSONDecodeError:
            first, last = text.find("{"), text.rfind("}")
            if first == -1 or last <= first:
                raise ValueError(f"AI returned no JSON object: {text[:100]!r}")
            cleaned = re.sub(r",\s*([}\]])", r"\1", text[first:last + 1])
            try:
                data = json.loads(cleaned, strict=False)
            except json.JSONDecodeError as e:
                logger.error("Failed to parse AI response as JSON: %s", e)
                raise ValueError(f"AI returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("AI returned JSON that is not an object")
        return data

    def _save_exchange_log(
        self,
        system_prompt: str,
        user_message: str,
        response_text: str,
        error: str | None,
    ) -> None:
        """Save the full AI exchange to ``debug_dir`` when one is configured."""
        if self.debug_dir is None:
            return
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            ts = time.strftime("%Y%m%d_%H%M%S")
            log_file = self.debug_dir / f"ai_call_{ts}_{self._call_count:03d}.log"
            with open(log_file, "w", encoding="utf-8") as f:
                f.write(f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n{system_prompt}\n\n")
                f.write(f"=== USER MESSAGE ({len(user_message)} chars) ===\n{user_message}\n\n")
                f.write(f"=== RESPONSE ({len(response_text)} chars) ===\n{response_text or '(empty)'}\n")
                if error:
                    f.write(f"\n=== ERROR ===\n{error}\n")
            logger.debug("AI exchange logged to %s", log_file)
        except OSError as log_err:
            logger.debug("Failed to save AI exchange log: %s", log_err)
