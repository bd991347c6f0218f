"""
Request validation middleware for API endpoints.

Validates incoming requests and returns appropriate error responses.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Constants
MAX_TEXT_LENGTH = 5000
MAX_BATCH_SIZE = 25
LANGUAGE_TAG_PATTERN = re.compile(r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*$")

# Error code mapping
ERROR_CODES = {
    "bad_request": 400,
    "server_error": 500,
}


@dataclass
class ValidationResult:
    """Result of request validation."""
    valid: bool
    error_code: Optional[int] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None


def log_validation_error(error_type: str, message: str) -> None:
    """Log validation errors for monitoring."""
    logger.warning(f"Validation error [{error_type}]: {message}")


def _reject(message: str, error_type: str = "bad_request") -> ValidationResult:
    log_validation_error(error_type, message)
    return ValidationResult(
        valid=False,
        error_code=ERROR_CODES[error_type],
        error_message=message,
        error_type=error_type,
    )


def is_language_tag(value: Any) -> bool:
    """Check that value looks like a language tag such as 'pt', 'pt-BR' or 'zh-Hans'."""
    return isinstance(value, str) and bool(LANGUAGE_TAG_PATTERN.match(value))


def _check_text(text: Any, field: str = "text") -> Optional[ValidationResult]:
    if text is None or text == "":
        return _reject(f"Field '{field}' is required")

    if not isinstance(text, str):
        return _reject(f"Field '{field}' must be a string")

    if len(text) > MAX_TEXT_LENGTH:
        return _reject(f"Field '{field}' exceeds maximum length of {MAX_TEXT_LENGTH} characters")

    if len(text.strip()) == 0:
        return _reject(f"Field '{field}' cannot be empty or whitespace only")

    return None


def _check_language(language: Any, field: str) -> Optional[ValidationResult]:
    if not language:
        return _reject(f"Field '{field}' is required")

    if not is_language_tag(language):
        return _reject(f"Field '{field}' must be a language code like 'pt' or 'pt-BR', got '{language}'")

    return None


def validate_translate_request(data: dict[str, Any]) -> ValidationResult:
    """
    Validate single text translation request.

    Args:
        data: Request body containing text and targetLang.

    Returns:
        ValidationResult with valid status or error details.
    """
    if not data:
        return _reject("Request body is required")

    error = _check_text(data.get("text"))
    if error:
        return error

    error = _check_language(data.get("targetLang"), "targetLang")
    if error:
        return error

    return ValidationResult(valid=True)


def validate_batch_request(data: dict[str, Any], max_batch_size: int = MAX_BATCH_SIZE) -> ValidationResult:
    """
    Validate batch translation request.

    Items in 'texts' are either strings, which use the shared 'targetLang',
    or objects with their own 'text' and optional 'targetLang'.

    Args:
        data: Request body containing texts and targetLang.
        max_batch_size: Maximum number of items accepted in one batch.

    Returns:
        ValidationResult with valid status or error details.
    """
    if not data:
        return _reject("Request body is required")

    texts = data.get("texts")
    if texts is None:
        return _reject("Field 'texts' is required")

    if not isinstance(texts, list):
        return _reject("Field 'texts' must be an array")

    if len(texts) == 0:
        return _reject("Field 'texts' must contain at least one item")

    if len(texts) > max_batch_size:
        return _reject(f"Batch exceeds maximum size of {max_batch_size} items (got {len(texts)})")

    shared_language = data.get("targetLang")
    if shared_language is not None:
        error = _check_language(shared_language, "targetLang")
        if error:
            return error

    for index, item in enumerate(texts):
        if isinstance(item, dict):
            error = _check_text(item.get("text"), f"texts[{index}].text")
            if error:
                return error
            item_language = item.get("targetLang")
            if item_language is not None:
                error = _check_language(item_language, f"texts[{index}].targetLang")
                if error:
                    return error
                continue
        else:
            error = _check_text(item, f"texts[{index}]")
            if error:
                return error

        if shared_language is None:
            return _reject(f"Field 'targetLang' is required (texts[{index}] has no target language)")

    return ValidationResult(valid=True)


def validate_speak_request(data: dict[str, Any]) -> ValidationResult:
    """
    Validate text-to-speech request.

    Args:
        data: Request body containing text, languageCode and optional voiceId.

    Returns:
        ValidationResult with valid status or error details.
    """
    if not data:
        return _reject("Request body is required")

    error = _check_text(data.get("text"))
    if error:
        return error

    error = _check_language(data.get("languageCode"), "languageCode")
    if error:
        return error

    voice_id = data.get("voiceId")
    if voice_id is not None and (not isinstance(voice_id, str) or not voice_id.strip()):
        return _reject("Field 'voiceId' must be a non-empty string")

    return ValidationResult(valid=True)
