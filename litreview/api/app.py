"""FastAPI application for the paper collection."""

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from litreview import __version__
from litreview.api.routers import papers, review
from litreview.api.state import AppState, build_state
from litreview.errors import (
    AuthenticationError,
    CollectionError,
    ConfigurationError,
    DuplicateConfirmationRequired,
    EmptyCorpusError,
    EmptyResponseError,
    ExtractionError,
    ExtractionParseError,
    IncompleteExtractionError,
    InvalidTransitionError,
    LitReviewError,
    PaperNotFoundError,
    ProviderError,
    RegistryError,
    ScreeningParseError,
)

logger = logging.getLogger(__name__)

# Most specific first
_STATUS_CODES: list[tuple[type, int]] = [
    (PaperNotFoundError, 404),
    (DuplicateConfirmationRequired, 409),
    (InvalidTransitionError, 409),
    (CollectionError, 400),
    (EmptyCorpusError, 400),
    (ExtractionError, 422),
    (AuthenticationError, 401),
    (ScreeningParseError, 502),
    (ExtractionParseError, 502),
    (IncompleteExtractionError, 502),
    (EmptyResponseError, 502),
    (ProviderError, 502),
    (RegistryError, 502),
    (ConfigurationError, 500),
]


def status_code_for(error: LitReviewError) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return 500


def _error_response(request: Request, exc: LitReviewError) -> JSONResponse:
    body = {"error": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, DuplicateConfirmationRequired):
        body["doi"] = exc.doi
        body["conflictingIds"] = exc.conflicting_ids
    code = status_code_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(body, status_code=code)


def create_app(state_factory: Callable[[], AppState] = build_state) -> FastAPI:
    """Build the application.

    Args:
        state_factory: Builds the services on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize services on startup, drain analyses on shutdown."""
        app.state.services = state_factory()
        yield
        app.state.services.pipeline.shutdown(wait=True)

    app = FastAPI(title="litreview", version=__version__, lifespan=lifespan)
    app.add_exception_handler(LitReviewError, _error_response)
    app.include_router(papers.router)
    app.include_router(review.router)
    return app


app = create_app()
