"""Middleware components for request validation."""

from .validator import validate_translate_request, validate_batch_request, validate_speak_request

__all__ = [
    "validate_translate_request",
    "validate_batch_request",
    "validate_speak_request",
]
