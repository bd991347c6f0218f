"""
Microsoft Translator proxy endpoints for single and batch translation.

Provides secure API access to Microsoft Translator without exposing the
subscription key to the client.
"""

import logging
from typing import Optional, Union

import httpx
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from .batch import build_work_items, dispatch
from .config import Settings, get_settings
from .errors import UpstreamError, ValidationError
from .middleware.validator import validate_batch_request, validate_translate_request

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/translate", tags=["translation"])

API_VERSION = "3.0"


class MicrosoftTranslator:
    """
    Client for the Microsoft Translator Text API v3.

    An injected httpx.AsyncClient is reused for every call; without one a
    short-lived client is opened per call.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.endpoint = settings.translator_endpoint.rstrip("/")
        self.region = settings.translator_region
        self.timeout = settings.upstream_timeout_seconds
        self._key = settings.translator_key
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {
            "Ocp-Apim-Subscription-Key": self._key,
            "Ocp-Apim-Subscription-Region": self.region,
            "Content-Type": "application/json",
        }

    async def _post(self, text: str, target_lang: str, timeout: float) -> httpx.Response:
        url = f"{self.endpoint}/translate"
        params = {"api-version": API_VERSION, "to": target_lang}
        if self._client is not None:
            return await self._client.post(
                url, params=params, json=[{"text": text}], headers=self._headers(), timeout=timeout
            )
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, params=params, json=[{"text": text}], headers=self._headers())

    async def translate(self, text: str, target_lang: str, timeout: Optional[float] = None) -> str:
        """
        Translate text into target_lang.

        Returns:
            The translated text.

        Raises:
            UpstreamError: On timeout, transport failure, non-2xx status or
                a response without a translated text.
        """
        try:
            response = await self._post(text, target_lang, timeout or self.timeout)
        except httpx.TimeoutException as e:
            raise UpstreamError("Translation request timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Translation request failed: {type(e).__name__}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Translation service returned HTTP {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            translated_text = response.json()[0]["translations"][0]["text"]
        except (ValueError, LookupError, TypeError) as e:
            raise UpstreamError("Invalid response from translation service") from e

        if not isinstance(translated_text, str) or not translated_text:
            raise UpstreamError("Invalid response from translation service")

        return translated_text


def get_translator(request: Request) -> MicrosoftTranslator:
    """FastAPI dependency returning the translator created at startup."""
    return request.app.state.translator


# Pydantic models for request/response
class TranslateRequest(BaseModel):
    text: Optional[str] = None
    targetLang: Optional[str] = None


class TranslateResponse(BaseModel):
    success: bool = True
    originalText: str
    translatedText: str
    targetLanguage: str


class BatchTextItem(BaseModel):
    text: Optional[str] = None
    targetLang: Optional[str] = None


class BatchTranslateRequest(BaseModel):
    texts: Optional[list[Union[str, BatchTextItem]]] = None
    targetLang: Optional[str] = None


class BatchItemResult(BaseModel):
    index: int
    success: bool
    originalText: str
    translatedText: Optional[str] = None
    error: Optional[str] = None
    statusCode: Optional[int] = None


class BatchSummary(BaseModel):
    total: int
    successful: int
    failed: int
    successRatePercent: str


class BatchTranslateResponse(BaseModel):
    success: bool = True
    targetLanguage: Optional[str] = None
    results: list[BatchItemResult] = Field(default_factory=list)
    summary: BatchSummary


@router.post("", response_model=TranslateResponse)
async def translate_text(
    body: TranslateRequest,
    settings: Settings = Depends(get_settings),
    translator: MicrosoftTranslator = Depends(get_translator),
):
    """
    Translate a single text.

    Args:
        body: TranslateRequest with text and targetLang

    Returns:
        TranslateResponse with original and translated text
    """
    validation = validate_translate_request(body.model_dump())
    if not validation.valid:
        raise ValidationError(validation.error_message)

    logger.info(f"Translate request: {len(body.text)} chars, lang={body.targetLang}")

    try:
        translated_text = await translator.translate(
            body.text, body.targetLang, timeout=settings.upstream_timeout_seconds
        )
    except UpstreamError as e:
        logger.error(f"Microsoft Translator error: {e.message}")
        raise UpstreamError("Translation failed", upstream_status=e.upstream_status) from e

    return TranslateResponse(
        originalText=body.text,
        translatedText=translated_text,
        targetLanguage=body.targetLang,
    )


@router.post("/batch", response_model=BatchTranslateResponse, response_model_exclude_none=True)
async def translate_batch(
    body: BatchTranslateRequest,
    settings: Settings = Depends(get_settings),
    translator: MicrosoftTranslator = Depends(get_translator),
):
    """
    Translate a list of texts concurrently.

    Individual upstream failures are reported per item and still yield 200;
    only structural problems with the request are rejected.

    Args:
        body: BatchTranslateRequest with texts and targetLang

    Returns:
        BatchTranslateResponse with ordered per-item results and a summary
    """
    data = body.model_dump()
    validation = validate_batch_request(data, settings.max_batch_size)
    if not validation.valid:
        raise ValidationError(validation.error_message)

    items = build_work_items(data["texts"], body.targetLang)
    logger.info(f"Batch translate request: {len(items)} items, lang={body.targetLang}")

    result = await dispatch(
        items,
        translator.translate,
        max_batch_size=settings.max_batch_size,
        timeout=settings.upstream_timeout_seconds,
    )

    summary = result.summary
    logger.info(
        f"Batch translate finished: {summary.successful}/{summary.total} succeeded "
        f"({summary.success_rate_percent})"
    )

    return BatchTranslateResponse(targetLanguage=body.targetLang, **result.to_dict())
