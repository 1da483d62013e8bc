"""
Narrative text for a set of search results.

The UI already renders names, addresses and links, so the model is asked for a
short summary of what stands out instead of a restated list.
"""
from __future__ import annotations

import logging
from typing import List, Sequence

from services.llm_client import LLMClient, LLMError
from services.places_types import PlaceRecord

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """
You are a helpful local guide recommending places.
Write a short summary (2-4 sentences) of the search results for the user.
Highlight what stands out: high ratings, large numbers of reviews, places that are open now, and which option best suits the request.
Do NOT list names, addresses or links one by one; the user already sees them.
Respond in the same language and tone as the user's request.
""".strip()

NO_RESULTS_SYSTEM_PROMPT = """
You are a helpful local guide.
No places matched the user's request. Apologize briefly, explain that nothing was found, and suggest how they could rephrase or broaden the search (another area, a more general type of place).
Keep it to 2-3 sentences. Respond in the same language and tone as the user's request.
""".strip()


class NarrativeError(RuntimeError):
    """Raised when no narrative text could be generated."""


def _describe_place(index: int, place: PlaceRecord) -> str:
    parts: List[str] = [f"{index}. {place.name}"]
    if place.rating is not None:
        reviews = f" from {place.user_ratings_total} reviews" if place.user_ratings_total else ""
        parts.append(f"rating {place.rating}{reviews}")
    if place.open_now is True:
        parts.append("open now")
    elif place.open_now is False:
        parts.append("closed now")
    if place.price_level is not None:
        parts.append(f"price level {place.price_level}/4")
    if place.types:
        parts.append("types: " + ", ".join(place.types[:3]))
    return " - ".join(parts)


def build_summary_prompt(places: Sequence[PlaceRecord], original_prompt: str) -> str:
    lines = "\n".join(_describe_place(i, p) for i, p in enumerate(places, start=1))
    return (
        f'User request: """{original_prompt}"""\n\n'
        f"Search results ({len(places)}):\n{lines}\n\n"
        "Write the summary now."
    )


def build_no_results_prompt(original_prompt: str) -> str:
    return f'User request: """{original_prompt}"""\n\nNo matching places were found. Write the reply now.'


class NarrativeGenerator:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    def summarize(self, places: Sequence[PlaceRecord], original_prompt: str) -> str:
        """
        Return narrative text for ``places``.

        An empty sequence uses the "nothing found" prompt. Failures raise
        NarrativeError; a response without narrative text is incomplete.
        """
        if places:
            prompt = build_summary_prompt(places, original_prompt)
            system = SUMMARY_SYSTEM_PROMPT
        else:
            prompt = build_no_results_prompt(original_prompt)
            system = NO_RESULTS_SYSTEM_PROMPT
        try:
            text = self.llm.generate(prompt, system)
        except LLMError as exc:
            raise NarrativeError(f"Narrative generation failed: {exc}") from exc
        text = (text or "").strip()
        if not text:
            raise NarrativeError("Narrative generation returned empty text")
        return text
