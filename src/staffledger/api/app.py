"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from staffledger.api.errors import register_exception_handlers
from staffledger.api.routes import end_of_work_documents, health, recruitment
from staffledger.core.config import AppSettings
from staffledger.core.logging_config import configure_logging
from staffledger.core.protocols import IPdfRenderer
from staffledger.persistence import Persistence, create_persistence
from staffledger.services.documents import EndOfWorkDocumentService
from staffledger.services.recruitment import RecruitmentService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging once the server starts."""
    settings: AppSettings = app.state.settings
    configure_logging(settings.log_level)
    logger.info("StaffLedger API starting (environment=%s)", settings.environment)
    yield


def create_app(
    settings: AppSettings | None = None,
    persistence: Persistence | None = None,
    renderer: IPdfRenderer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``persistence`` defaults to the DynamoDB stores built from ``settings``;
    tests pass memory stores instead. Without a ``renderer`` the PDF
    endpoint answers 500.
    """
    if settings is None:
        settings = AppSettings()
    if persistence is None:
        persistence = create_persistence(settings)

    app = FastAPI(
        title=settings.api.title,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pdf_renderer = renderer
    app.state.document_service = EndOfWorkDocumentService(
        documents=persistence.documents,
        sequences=persistence.sequences,
        contracts=persistence.contracts,
        agents=persistence.agents,
        settings=settings.settlement,
    )
    app.state.recruitment_service = RecruitmentService(
        recruitments=persistence.recruitments,
        agents=persistence.agents,
        users=persistence.users,
        max_write_attempts=settings.settlement.max_write_attempts,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(end_of_work_documents.router, prefix="/api/end-of-work-documents")
    app.include_router(recruitment.router, prefix="/api/recruitment")
    return app
