"""
Service configuration and credential loading.

Settings are built once at startup and handed to the components that need
them. Each credential is resolved from, in order:

1. an environment variable,
2. a mounted secret file under ``SECRETS_DIR`` (default ``/etc/secrets``),
3. a development fallback variable, only outside production.
"""

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from fastapi import Request

from .errors import ConfigurationError
from .middleware.validator import MAX_BATCH_SIZE

logger = logging.getLogger(__name__)

DEFAULT_SECRETS_DIR = "/etc/secrets"
DEFAULT_TRANSLATOR_ENDPOINT = "https://api.cognitive.microsofttranslator.com"
DEFAULT_TRANSLATOR_REGION = "eastus"
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 10.0
PRODUCTION = "production"


@dataclass(frozen=True)
class SecretSource:
    """Where a single credential may be found."""
    label: str
    env_var: str
    secret_file: str
    dev_env_var: str


TRANSLATOR_KEY_SOURCE = SecretSource(
    label="Microsoft Translator key",
    env_var="TRANSLATOR_KEY",
    secret_file="CHAVE_TRADUTOR",
    dev_env_var="TRANSLATOR_DEV_KEY",
)

TTS_KEY_SOURCE = SecretSource(
    label="ElevenLabs API key",
    env_var="ELEVENLABS_API_KEY",
    secret_file="CHAVE_ELEVENLABS",
    dev_env_var="ELEVENLABS_DEV_KEY",
)


@dataclass(frozen=True)
class Settings:
    """Immutable proxy configuration."""
    translator_key: str
    tts_api_key: str
    translator_region: str = DEFAULT_TRANSLATOR_REGION
    translator_endpoint: str = DEFAULT_TRANSLATOR_ENDPOINT
    max_batch_size: int = MAX_BATCH_SIZE
    upstream_timeout_seconds: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS
    environment: str = PRODUCTION

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == PRODUCTION


def resolve_secret(
    source: SecretSource,
    env: Mapping[str, str],
    secrets_dir: str,
    allow_dev_fallback: bool,
) -> Optional[str]:
    """
    Resolve a credential following the env var, secret file, dev fallback order.

    Args:
        source: Names of the variables and file holding the credential.
        env: Environment mapping to read from.
        secrets_dir: Directory holding mounted secret files.
        allow_dev_fallback: Whether the development fallback variable may be used.

    Returns:
        The credential, or None if no source provides a non-empty value.
    """
    value = env.get(source.env_var, "").strip()
    if value:
        logger.info(f"{source.label} loaded from environment")
        return value

    secret_path = Path(secrets_dir) / source.secret_file
    if secret_path.is_file():
        value = secret_path.read_text(encoding="utf-8").strip()
        if value:
            logger.info(f"{source.label} loaded from secret file {secret_path}")
            return value

    if allow_dev_fallback:
        value = env.get(source.dev_env_var, "").strip()
        if value:
            logger.warning(f"{source.label} loaded from development fallback {source.dev_env_var}")
            return value

    logger.error(f"{source.label} not found")
    return None


def _positive_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'")
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive finite number, got '{raw}'")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from the environment and mounted secrets.

    Raises:
        ConfigurationError: If a credential is missing or a numeric value is invalid.
    """
    env = os.environ if env is None else env

    environment = env.get("ENVIRONMENT", PRODUCTION).strip() or PRODUCTION
    allow_dev_fallback = environment.lower() != PRODUCTION
    secrets_dir = env.get("SECRETS_DIR", DEFAULT_SECRETS_DIR)

    translator_key = resolve_secret(TRANSLATOR_KEY_SOURCE, env, secrets_dir, allow_dev_fallback)
    tts_api_key = resolve_secret(TTS_KEY_SOURCE, env, secrets_dir, allow_dev_fallback)

    missing = [
        source.label
        for source, value in ((TRANSLATOR_KEY_SOURCE, translator_key), (TTS_KEY_SOURCE, tts_api_key))
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Credentials not configured: {', '.join(missing)}")

    return Settings(
        translator_key=translator_key,
        tts_api_key=tts_api_key,
        translator_region=env.get("TRANSLATOR_REGION", DEFAULT_TRANSLATOR_REGION),
        translator_endpoint=env.get("TRANSLATOR_ENDPOINT", DEFAULT_TRANSLATOR_ENDPOINT),
        max_batch_size=_positive_number(env, "MAX_BATCH_SIZE", MAX_BATCH_SIZE, int),
        upstream_timeout_seconds=_positive_number(
            env, "UPSTREAM_TIMEOUT_SECONDS", DEFAULT_UPSTREAM_TIMEOUT_SECONDS, float
        ),
        environment=environment,
    )


def get_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings loaded at startup."""
    return request.app.state.settings
