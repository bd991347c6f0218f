"""
ElevenLabs proxy endpoints for Text-to-Speech.

Provides secure API access to ElevenLabs without exposing API keys to the client.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel

from .config import Settings
from .errors import UpstreamError, ValidationError
from .middleware.validator import is_language_tag, validate_speak_request

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/speak", tags=["speech"])

AUDIO_MEDIA_TYPE = "audio/mpeg"

# Voice configuration by primary language subtag
# Using actual ElevenLabs voice IDs (not display names)
# See: https://elevenlabs.io/docs/api-reference/voices
VOICE_CONFIG = {
    "en": {
        "default": "21m00Tcm4TlvDq8ikWAM",  # Rachel
        "available": {
            "Rachel": "21m00Tcm4TlvDq8ikWAM",
            "Domi": "AZnzlk1XvdvUeBnXmlld",
            "Drew": "29vD33N1CtxCmqQRPOHJ",
        },
        "model": "eleven_turbo_v2",
    },
    "pt": {
        "default": "XrExE9yKIg1WjnnlVkGX",  # Laura (multilingual)
        "available": {
            "Laura": "XrExE9yKIg1WjnnlVkGX",
        },
        "model": "eleven_multilingual_v2",
    },
    "es": {
        "default": "XrExE9yKIg1WjnnlVkGX",  # Laura (multilingual)
        "available": {
            "Laura": "XrExE9yKIg1WjnnlVkGX",
        },
        "model": "eleven_multilingual_v2",
    },
    "de": {
        "default": "ErXwobaYiN019PkySvjV",  # Antoni (multilingual, works for German)
        "available": {
            "Antoni": "ErXwobaYiN019PkySvjV",
        },
        "model": "eleven_multilingual_v2",
    },
    "fr": {
        "default": "XrExE9yKIg1WjnnlVkGX",  # Laura (multilingual)
        "available": {
            "Laura": "XrExE9yKIg1WjnnlVkGX",
        },
        "model": "eleven_multilingual_v2",
    },
}

# Languages without an entry fall back to a multilingual voice
MULTILINGUAL_FALLBACK = {
    "default": "XrExE9yKIg1WjnnlVkGX",
    "available": {
        "Laura": "XrExE9yKIg1WjnnlVkGX",
    },
    "model": "eleven_multilingual_v2",
}


class SpeakRequest(BaseModel):
    text: Optional[str] = None
    languageCode: Optional[str] = None
    voiceId: Optional[str] = None


def create_tts_client(settings: Settings):
    """Create the ElevenLabs SDK client used for synthesis."""
    from elevenlabs import ElevenLabs

    return ElevenLabs(api_key=settings.tts_api_key)


def get_tts_client(request: Request):
    """FastAPI dependency returning the ElevenLabs client created at startup."""
    return request.app.state.tts_client


def voice_config_for(language_code: str) -> dict[str, Any]:
    """Pick the voice table for a language code such as 'pt-BR'."""
    primary = language_code.split("-")[0].lower()
    return VOICE_CONFIG.get(primary, MULTILINGUAL_FALLBACK)


def resolve_voice(language_code: str, voice: Optional[str]) -> tuple[str, str]:
    """
    Resolve the voice ID and model for a request.

    voice can be either a voice ID or a voice name from the language table.

    Returns:
        (voice_id, model_id)
    """
    config = voice_config_for(language_code)
    if not voice:
        voice_id = config["default"]
    elif voice in config.get("available", {}):
        voice_id = config["available"][voice]
    else:
        # Otherwise assume it's already a valid voice ID
        voice_id = voice
    return voice_id, config["model"]


def _synthesize(client, text: str, voice_id: str, model_id: str) -> bytes:
    audio_generator = client.text_to_speech.convert(
        voice_id=voice_id,
        text=text,
        model_id=model_id,
    )

    # Collect audio chunks
    audio_chunks = []
    for chunk in audio_generator:
        audio_chunks.append(chunk)

    return b"".join(audio_chunks)


@router.post("", response_class=Response)
async def speak(body: SpeakRequest, client=Depends(get_tts_client)):
    """
    Convert text to speech using ElevenLabs.

    Args:
        body: SpeakRequest with text, languageCode and optional voiceId

    Returns:
        MP3 audio bytes
    """
    validation = validate_speak_request(body.model_dump())
    if not validation.valid:
        raise ValidationError(validation.error_message)

    voice_id, model_id = resolve_voice(body.languageCode, body.voiceId)

    logger.info(f"TTS request: {len(body.text)} chars, voice={voice_id}, lang={body.languageCode}")

    try:
        audio_bytes = await run_in_threadpool(_synthesize, client, body.text, voice_id, model_id)
    except Exception as e:
        logger.error(f"ElevenLabs API error: {e}")
        raise UpstreamError("Text-to-speech conversion failed") from e

    if not audio_bytes:
        logger.error("ElevenLabs API returned no audio")
        raise UpstreamError("Text-to-speech conversion failed")

    return Response(content=audio_bytes, media_type=AUDIO_MEDIA_TYPE)


def describe_voices(config: dict[str, Any]) -> dict[str, Any]:
    """Voice table entry with voice names (not IDs) for client display."""
    return {
        "default": config["default"],
        "available": list(config.get("available", {}).keys()),
        "model": config["model"],
    }


@router.get("/voices")
async def get_voices(language: Optional[str] = None):
    """
    Get available voices by language.

    A language code such as 'pt-BR' resolves the same way as in POST /speak,
    so unlisted languages report the multilingual fallback.
    """
    if language:
        if not is_language_tag(language):
            raise HTTPException(status_code=400, detail=f"Invalid language code: {language}")
        return {language: describe_voices(voice_config_for(language))}

    return {lang: describe_voices(config) for lang, config in VOICE_CONFIG.items()}
