"""
Property-based tests for the batch translation dispatcher.

Feature: batch-translation
Property 3: One Outcome Per Item
Property 4: Summary Consistency
Property 5: Input Order Preservation
"""

import asyncio

import pytest
from hypothesis import given, strategies as st, settings

from polyglot_proxy.batch import (
    BatchResult,
    Failure,
    Success,
    WorkItem,
    build_work_items,
    dispatch,
)
from polyglot_proxy.errors import UpstreamError, ValidationError
from polyglot_proxy.middleware.validator import MAX_BATCH_SIZE


def make_items(texts: list[str], language: str = "pt") -> list[WorkItem]:
    return build_work_items(texts, language)


def run(coro) -> BatchResult:
    return asyncio.run(coro)


async def echo_translate(text: str, target_lang: str) -> str:
    return f"{text} [{target_lang}]"


async def failing_translate(text: str, target_lang: str) -> str:
    raise UpstreamError("Translation service returned HTTP 503", upstream_status=503)


class RecordingTranslator:
    """Counts calls so tests can assert nothing was dispatched."""

    def __init__(self):
        self.calls = []

    async def translate(self, text: str, target_lang: str) -> str:
        self.calls.append((text, target_lang))
        return text.upper()


class TestOneOutcomePerItem:
    """
    Property 3: One Outcome Per Item

    For any valid batch, dispatch returns exactly one outcome per input item,
    indexed by the item's input position.
    """

    @given(
        st.lists(st.text(min_size=1, max_size=20), min_size=1, max_size=MAX_BATCH_SIZE),
        st.data(),
    )
    @settings(max_examples=50, deadline=None)
    def test_one_outcome_per_item(self, words: list[str], data):
        failing = data.draw(st.sets(st.integers(min_value=0, max_value=len(words) - 1)))
        texts = [f"{i}:{word}" for i, word in enumerate(words)]

        async def translate(text: str, target_lang: str) -> str:
            if int(text.split(":", 1)[0]) in failing:
                raise UpstreamError("boom")
            return text

        result = run(dispatch(make_items(texts), translate))

        assert len(result.results) == len(texts)
        assert [outcome.index for outcome in result.results] == list(range(len(texts)))
        assert [outcome.original_text for outcome in result.results] == texts
        assert {outcome.index for outcome in result.results if not outcome.success} == failing


class TestSummaryConsistency:
    """
    Property 4: Summary Consistency

    total == successful + failed == number of results, and the success rate
    is rendered as a percentage with two decimals.
    """

    @given(st.lists(st.booleans(), min_size=1, max_size=MAX_BATCH_SIZE))
    @settings(max_examples=50, deadline=None)
    def test_counts_add_up(self, succeeds: list[bool]):
        texts = [f"text-{i}" for i in range(len(succeeds))]

        async def translate(text: str, target_lang: str) -> str:
            if succeeds[int(text.split("-")[1])]:
                return text
            raise UpstreamError("nope")

        result = run(dispatch(make_items(texts), translate))
        summary = result.summary

        assert summary.total == len(result.results) == len(succeeds)
        assert summary.successful + summary.failed == summary.total
        assert summary.successful == sum(succeeds)
        expected_rate = f"{sum(succeeds) / len(succeeds) * 100:.2f}%"
        assert summary.success_rate_percent == expected_rate

    def test_all_success(self):
        result = run(dispatch(make_items(["a", "b", "c"]), echo_translate))

        assert result.summary.failed == 0
        assert result.summary.successful == 3
        assert result.summary.success_rate_percent == "100.00%"
        assert all(isinstance(outcome, Success) for outcome in result.results)

    def test_all_failure(self):
        result = run(dispatch(make_items(["a", "b", "c"]), failing_translate))

        assert result.summary.successful == 0
        assert result.summary.failed == 3
        assert result.summary.success_rate_percent == "0.00%"
        assert all(outcome.status_code == 503 for outcome in result.results)

    def test_rate_is_rounded_to_two_decimals(self):
        async def translate(text: str, target_lang: str) -> str:
            if text == "bad":
                raise UpstreamError("nope")
            return text

        result = run(dispatch(make_items(["ok", "ok", "bad"]), translate))

        assert result.summary.success_rate_percent == "66.67%"


class TestInputOrderPreservation:
    """
    Property 5: Input Order Preservation

    Results are ordered by input index regardless of completion order.
    """

    def test_reversed_completion_order_keeps_input_order(self):
        texts = [f"t{i}" for i in range(6)]
        completed = []

        async def translate(text: str, target_lang: str) -> str:
            index = int(text[1:])
            await asyncio.sleep((len(texts) - index) * 0.01)
            completed.append(index)
            return text.upper()

        result = run(dispatch(make_items(texts), translate))

        assert completed == list(reversed(range(len(texts))))
        assert [outcome.index for outcome in result.results] == list(range(len(texts)))
        assert [outcome.translated_text for outcome in result.results] == [t.upper() for t in texts]

    @given(st.permutations(list(range(8))))
    @settings(max_examples=20, deadline=None)
    def test_any_completion_order_keeps_input_order(self, delays: list[int]):
        texts = [f"t{i}" for i in range(8)]

        async def translate(text: str, target_lang: str) -> str:
            await asyncio.sleep(delays[int(text[1:])] * 0.001)
            return text

        result = run(dispatch(make_items(texts), translate))

        assert [outcome.translated_text for outcome in result.results] == texts


class TestMixedOutcomes:
    """A failing item never affects its siblings."""

    def test_success_and_timeout_scenario(self):
        async def translate(text: str, target_lang: str) -> str:
            if text == "hello":
                return "olá"
            await asyncio.sleep(1)
            return "mundo"

        items = make_items(["hello", "world"], "pt")
        result = run(dispatch(items, translate, timeout=0.05))

        first, second = result.results
        assert isinstance(first, Success)
        assert first.to_dict() == {
            "index": 0,
            "success": True,
            "originalText": "hello",
            "translatedText": "olá",
        }
        assert isinstance(second, Failure)
        assert second.index == 1
        assert "timed out" in second.error_message
        assert second.to_dict()["success"] is False
        assert result.to_dict()["summary"] == {
            "total": 2,
            "successful": 1,
            "failed": 1,
            "successRatePercent": "50.00%",
        }

    def test_unexpected_item_exception_is_captured(self):
        async def translate(text: str, target_lang: str) -> str:
            if text == "boom":
                raise RuntimeError("socket closed")
            return text

        result = run(dispatch(make_items(["fine", "boom", "fine"]), translate))

        assert [outcome.success for outcome in result.results] == [True, False, True]
        assert result.results[1].error_message == "socket closed"
        assert result.results[1].status_code is None

    def test_empty_translation_counts_as_failure(self):
        async def translate(text: str, target_lang: str) -> str:
            return ""

        result = run(dispatch(make_items(["hello"]), translate))

        assert isinstance(result.results[0], Failure)
        assert "invalid response" in result.results[0].error_message.lower()

    def test_failure_without_status_omits_status_code(self):
        failure = Failure(index=0, original_text="x", error_message="bad")

        assert "statusCode" not in failure.to_dict()


class TestFailFastValidation:
    """Structural problems are rejected before any upstream call."""

    def test_empty_batch_is_rejected_before_dispatch(self):
        translator = RecordingTranslator()

        with pytest.raises(ValidationError):
            run(dispatch([], translator.translate))

        assert translator.calls == []

    def test_oversized_batch_names_the_cap(self):
        translator = RecordingTranslator()
        items = make_items(["x"] * 26)

        with pytest.raises(ValidationError, match="25"):
            run(dispatch(items, translator.translate, max_batch_size=25))

        assert translator.calls == []

    def test_batch_at_cap_is_dispatched(self):
        translator = RecordingTranslator()
        items = make_items(["x"] * 25)

        result = run(dispatch(items, translator.translate, max_batch_size=25))

        assert len(translator.calls) == 25
        assert result.summary.total == 25


class TestBuildWorkItems:
    def test_shared_target_language(self):
        items = build_work_items(["a", "b"], "pt")

        assert items == [WorkItem(0, "a", "pt"), WorkItem(1, "b", "pt")]

    def test_per_item_target_language_overrides_shared(self):
        items = build_work_items(
            [{"text": "a", "targetLang": "fr"}, {"text": "b", "targetLang": None}, "c"],
            "pt",
        )

        assert [item.target_language for item in items] == ["fr", "pt", "pt"]

    def test_dispatch_passes_per_item_language(self):
        items = build_work_items([{"text": "a", "targetLang": "fr"}, "b"], "de")

        result = run(dispatch(items, echo_translate))

        assert [outcome.translated_text for outcome in result.results] == ["a [fr]", "b [de]"]
