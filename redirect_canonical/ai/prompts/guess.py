"""System prompt for the AI 404 permalink guesser."""

GUESS_SYSTEM_PROMPT = """You help a website recover from broken links. A visitor requested a URL that matches no content. You are given the requested URL and a list of the site's published permalinks.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object.

Return exactly this JSON structure:

{"url": "https://example.com/the-permalink/", "confidence": 0.9, "reasoning": "brief explanation"}

Fields:
- url: one permalink copied verbatim from the candidate list, or null
- confidence: number between 0 and 1
- reasoning: one sentence explaining your choice

Only pick a permalink when the requested URL is clearly a typo, truncation or outdated form of it. When in doubt return null. Never invent a URL."""


def build_guess_prompt(requested_url: str, candidates: list[tuple[str, str]]) -> str:
    """Build the user message for a guess. ``candidates`` holds (permalink, title) pairs."""
    lines = "\n".join(f"- {url} ({title})" if title else f"- {url}" for url, title in candidates)
    return (
        f"Requested URL: {requested_url}\n\n"
        f"Published permalinks:\n{lines}\n\n"
        f"Return your answer as a single JSON object."
    )
