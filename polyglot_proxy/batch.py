"""
Batch translation dispatcher.

Fans a list of texts out to the translation upstream concurrently, waits for
every call to settle and returns one outcome per input item in input order.
A failing item never cancels or fails its siblings.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from .errors import UpstreamError, ValidationError
from .middleware.validator import MAX_BATCH_SIZE

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

TranslateFn = Callable[[str, str], Awaitable[str]]


@dataclass(frozen=True)
class WorkItem:
    """One text to translate, tagged with its position in the request."""
    index: int
    text: str
    target_language: str


@dataclass(frozen=True)
class Success:
    index: int
    original_text: str
    translated_text: str
    success: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "success": True,
            "originalText": self.original_text,
            "translatedText": self.translated_text,
        }


@dataclass(frozen=True)
class Failure:
    index: int
    original_text: str
    error_message: str
    status_code: Optional[int] = None
    success: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "index": self.index,
            "success": False,
            "originalText": self.original_text,
            "error": self.error_message,
        }
        if self.status_code is not None:
            data["statusCode"] = self.status_code
        return data


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class Summary:
    total: int
    successful: int
    failed: int
    success_rate_percent: str

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[Outcome]) -> "Summary":
        total = len(outcomes)
        successful = sum(1 for outcome in outcomes if outcome.success)
        rate = successful / total * 100 if total else 0.0
        return cls(
            total=total,
            successful=successful,
            failed=total - successful,
            success_rate_percent=f"{rate:.2f}%",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "successRatePercent": self.success_rate_percent,
        }


@dataclass(frozen=True)
class BatchResult:
    results: tuple[Outcome, ...]
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [outcome.to_dict() for outcome in self.results],
            "summary": self.summary.to_dict(),
        }


def build_work_items(texts: Sequence[Union[str, dict[str, Any]]], target_lang: Optional[str]) -> list[WorkItem]:
    """
    Turn the wire 'texts' list into work items.

    Object items may carry their own 'targetLang', which overrides the shared one.
    """
    items = []
    for index, entry in enumerate(texts):
        if isinstance(entry, dict):
            text = entry["text"]
            language = entry.get("targetLang") or target_lang
        else:
            text = entry
            language = target_lang
        items.append(WorkItem(index=index, text=text, target_language=language))
    return items


def _to_outcome(item: WorkItem, result: Union[str, BaseException], timeout: float) -> Outcome:
    if isinstance(result, asyncio.TimeoutError):
        message = f"Translation timed out after {timeout:g}s"
        status_code = None
    elif isinstance(result, UpstreamError):
        message = result.message
        status_code = result.upstream_status
    elif isinstance(result, BaseException):
        message = str(result) or type(result).__name__
        status_code = None
    elif not isinstance(result, str) or not result:
        message = "Invalid response from translation service"
        status_code = None
    else:
        return Success(index=item.index, original_text=item.text, translated_text=result)

    logger.warning(f"Batch item {item.index} failed: {message}")
    return Failure(index=item.index, original_text=item.text, error_message=message, status_code=status_code)


async def dispatch(
    items: Sequence[WorkItem],
    translate: TranslateFn,
    max_batch_size: int = MAX_BATCH_SIZE,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> BatchResult:
    """
    Translate every item concurrently and collect one outcome per item.

    Args:
        items: Work items, in the caller's order.
        translate: Coroutine function called as translate(text, target_language).
        max_batch_size: Maximum number of items accepted.
        timeout: Seconds each upstream call may take before it counts as failed.

    Returns:
        BatchResult with outcomes ordered by item index and aggregate counts.

    Raises:
        ValidationError: If items is empty or larger than max_batch_size.
            Nothing is dispatched in that case.
    """
    if not items:
        raise ValidationError("Batch must contain at least one text")
    if len(items) > max_batch_size:
        raise ValidationError(
            f"Batch exceeds maximum size of {max_batch_size} items (got {len(items)})",
            max_batch_size=max_batch_size,
        )

    settled = await asyncio.gather(
        *(asyncio.wait_for(translate(item.text, item.target_language), timeout) for item in items),
        return_exceptions=True,
    )

    outcomes = sorted(
        (_to_outcome(item, result, timeout) for item, result in zip(items, settled)),
        key=lambda outcome: outcome.index,
    )
    return BatchResult(results=tuple(outcomes), summary=Summary.from_outcomes(outcomes))
