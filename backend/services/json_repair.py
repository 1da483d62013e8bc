"""
Tolerant JSON parsing for model output.

Models asked for "only JSON" still wrap it in code fences, add a sentence
before it, use single quotes or leave trailing commas. ``parse_json_loose``
runs an ordered list of repair strategies and returns the first value that
parses.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterator, List, Tuple

logger = logging.getLogger(__name__)

_SMART_QUOTES = re.compile("[‘’“”]")
_FENCE_OPEN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


class JSONRepairError(ValueError):
    """Raised when no strategy could recover a JSON value."""


def clean_text(text: str) -> str:
    """Normalize smart quotes and strip markdown code fences."""
    s = _SMART_QUOTES.sub('"', text).strip()
    s = _FENCE_OPEN.sub("", s, count=1)
    return s.replace("```", "").strip()


def fix_quotes(text: str) -> str:
    return text.replace("'", '"')


def drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def find_balanced_blocks(text: str) -> List[str]:
    """
    Return every balanced ``{...}`` substring, one per opening brace.

    Braces inside string literals are not special-cased; model output rarely
    contains them and a bad candidate simply fails to parse.
    """
    blocks: List[str] = []
    for start, ch in enumerate(text):
        if ch != "{":
            continue
        depth = 0
        for end in range(start, len(text)):
            if text[end] == "{":
                depth += 1
            elif text[end] == "}":
                depth -= 1
                if depth == 0:
                    blocks.append(text[start : end + 1])
                    break
    return blocks


def _direct(text: str) -> Iterator[str]:
    yield text


def _balanced_blocks(text: str) -> Iterator[str]:
    for block in sorted(find_balanced_blocks(text), key=len, reverse=True):
        yield block
        quoted = fix_quotes(block)
        yield quoted
        yield drop_trailing_commas(quoted)


def _whole_text_fixups(text: str) -> Iterator[str]:
    yield drop_trailing_commas(fix_quotes(text))


Strategy = Tuple[str, Callable[[str], Iterator[str]]]

STRATEGIES: List[Strategy] = [
    ("direct", _direct),
    ("balanced_block", _balanced_blocks),
    ("whole_text_fixups", _whole_text_fixups),
]


def parse_json_loose(raw: str) -> Any:
    """Parse ``raw`` as JSON, trying each repair strategy in order."""
    if not raw or not isinstance(raw, str):
        raise JSONRepairError("No text to parse")

    text = clean_text(raw)
    for name, candidates in STRATEGIES:
        for candidate in candidates(text):
            try:
                value = json.loads(candidate)
            except ValueError:
                continue
            logger.info("JSON recovered with strategy=%s", name)
            return value
    raise JSONRepairError("Unable to parse JSON from LLM response")
