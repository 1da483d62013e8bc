import pytest

from services.llm_client import LLMError
from services.narrative_engine import (
    NO_RESULTS_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    NarrativeError,
    NarrativeGenerator,
    build_no_results_prompt,
    build_summary_prompt,
)

from fakes import FakeLLM, make_place


def test_summary_prompt_lists_standout_attributes():
    places = [
        make_place("p1", "Kopi Tuku", opening_hours={"open_now": True}, price_level=1),
        make_place("p2", "Anomali"),
    ]
    prompt = build_summary_prompt(places, "kopi enak di jakarta")

    assert "kopi enak di jakarta" in prompt
    assert "Search results (2)" in prompt
    assert "rating 4.5 from 120 reviews" in prompt
    assert "open now" in prompt
    assert "price level 1/4" in prompt
    # links are rendered by the UI, not narrated
    assert "google.com/maps" not in prompt


def test_non_empty_places_use_summary_template():
    llm = FakeLLM(["  Both spots are highly rated.  "])
    text = NarrativeGenerator(llm).summarize([make_place("p1", "Kopi Tuku")], "coffee")

    assert text == "Both spots are highly rated."
    assert llm.calls[0]["system_prompt"] == SUMMARY_SYSTEM_PROMPT


def test_empty_places_use_no_results_template():
    llm = FakeLLM(["Maaf, tidak ada tempat yang cocok."])
    text = NarrativeGenerator(llm).summarize([], "cari ramen di majene")

    assert text.startswith("Maaf")
    call = llm.calls[0]
    assert call["system_prompt"] == NO_RESULTS_SYSTEM_PROMPT
    assert call["prompt"] == build_no_results_prompt("cari ramen di majene")


def test_backend_failure_is_fatal():
    llm = FakeLLM([LLMError("timeout")])
    with pytest.raises(NarrativeError):
        NarrativeGenerator(llm).summarize([make_place("p1", "A")], "x")


def test_blank_text_is_fatal():
    llm = FakeLLM(["   "])
    with pytest.raises(NarrativeError):
        NarrativeGenerator(llm).summarize([], "x")
