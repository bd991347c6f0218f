"""
FastAPI application entry point for the Polyglot translation proxy.

Combines the Microsoft Translator and ElevenLabs routers into a single FastAPI application.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from polyglot_proxy import __version__
from polyglot_proxy.config import Settings, load_settings
from polyglot_proxy.elevenlabs import create_tts_client, router as elevenlabs_router
from polyglot_proxy.errors import register_error_handlers
from polyglot_proxy.microsoft import MicrosoftTranslator, router as microsoft_router

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    translator=None,
    tts_client=None,
) -> FastAPI:
    """
    Build the proxy application.

    Settings are loaded during startup when not given, so missing credentials
    stop the process before it serves any request.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings or load_settings()
        http_client = None
        try:
            if translator is None:
                http_client = httpx.AsyncClient(timeout=app.state.settings.upstream_timeout_seconds)
                app.state.translator = MicrosoftTranslator(app.state.settings, client=http_client)
            else:
                app.state.translator = translator
            app.state.tts_client = tts_client or create_tts_client(app.state.settings)
            logger.info(
                f"Proxy ready: environment={app.state.settings.environment}, "
                f"max_batch_size={app.state.settings.max_batch_size}"
            )
            yield
        finally:
            if http_client is not None:
                await http_client.aclose()

    # Create FastAPI app
    app = FastAPI(
        title="Polyglot Translation Proxy",
        description="Backend proxy for Microsoft Translator and ElevenLabs TTS",
        version=__version__,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(microsoft_router)
    app.include_router(elevenlabs_router)

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Polyglot Translation Proxy",
            "version": __version__,
            "endpoints": {
                "translate": "/translate",
                "batch": "/translate/batch",
                "speak": "/speak",
                "health": "/health",
            },
        }

    @app.get("/health")
    async def health(request: Request):
        """Global health check endpoint."""
        settings = request.app.state.settings
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "translatorKey": bool(settings.translator_key),
            "ttsKey": bool(settings.tts_api_key),
        }

    return app


app = create_app()

# AWS Lambda / Google Cloud Functions handler
handler = Mangum(app)
