"""StudyHub FastAPI application entry point.

Wires together providers, services, and routes via dependency injection.
Loads configuration from ``config/config.yaml`` overlaid by ``.env`` and
environment variables, and configures structured logging.

``build_pipeline`` is also used by the CLI to assemble the same services
outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_settings
from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.persistence_gateway import IPersistenceGateway
from src.pipeline.orchestrator import DocumentPipeline
from src.pipeline.progress_tracker import ProgressTracker
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.persistence.sqlite_persistence_gateway import SQLitePersistenceGateway
from src.services.chunker import TextChunker
from src.services.document_service import DocumentService
from src.services.extraction import TextExtractor
from src.services.generation_client import GenerationClient
from src.services.merger import ResultMerger
from src.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first LLM provider with a configured API key.

    Priority order: OpenAI -> Anthropic.  With neither key set the OpenAI
    provider is returned unconfigured, so processing fails fast with
    :class:`~src.utils.errors.NotConfiguredError`.
    """
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    return OpenAILLMProvider(settings=app_settings)


# ---------------------------------------------------------------------------
# DI assembly
# ---------------------------------------------------------------------------


def build_pipeline(
    app_settings: Settings,
    llm_provider: ILLMProvider | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> DocumentPipeline:
    """Construct a :class:`DocumentPipeline` with its collaborators."""
    llm = llm_provider or _build_llm_provider(app_settings)
    return DocumentPipeline(
        extractor=TextExtractor(app_settings),
        chunker=TextChunker(),
        generation_client=GenerationClient(llm, app_settings),
        merger=ResultMerger(app_settings.concept_match_threshold),
        settings=app_settings,
        progress_tracker=progress_tracker,
    )


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    primary_llm = _build_llm_provider(app_settings)
    progress_tracker = ProgressTracker()
    pipeline = build_pipeline(app_settings, primary_llm, progress_tracker)
    gateway: IPersistenceGateway = SQLitePersistenceGateway(app_settings.database_path)
    document_service = DocumentService(pipeline, gateway)

    provider_registry: dict[str, Any] = {
        "llm": primary_llm.is_available(),
        "llm_provider": primary_llm.get_provider_name(),
        "persistence": True,
        "persistence_provider": gateway.get_provider_name(),
    }

    return {
        "settings": app_settings,
        "primary_llm": primary_llm,
        "progress_tracker": progress_tracker,
        "pipeline": pipeline,
        "gateway": gateway,
        "document_service": document_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or load_settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        components = _build_all(app_settings)
        for key, value in components.items():
            setattr(application.state, key, value)

        await components["gateway"].initialize()

        _logger.info(
            "app_startup",
            version=_VERSION,
            environment=app_settings.app_env,
            llm_provider=components["provider_registry"]["llm_provider"],
            llm_configured=components["provider_registry"]["llm"],
        )
        yield
        _logger.info("app_shutdown")

    application = FastAPI(
        title="StudyHub API",
        version=_VERSION,
        description=(
            "Upload course documents and get AI-generated analyses, summaries, "
            "flashcards and multiple-choice quizzes."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


if __name__ == "__main__":
    _settings = load_settings()
    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host=_settings.app_host,
        port=_settings.app_port,
        reload=(_settings.app_env == "development"),
    )
