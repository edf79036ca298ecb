"""Tomato - FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tomato import __version__
from tomato.api import orchestrator_store
from tomato.api.routes import chat, projects, resolve, sessions
from tomato.api.schemas import HealthResponse
from tomato.config import API_PREFIX, HOST, PORT
from tomato.errors import (
    InvalidStateError,
    NotFoundError,
    StoreFailure,
    TomatoError,
    ValidationFailure,
)
from tomato.utils.logging import logger

ERROR_STATUS = {
    NotFoundError: 404,
    InvalidStateError: 409,
    ValidationFailure: 422,
    StoreFailure: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(f"Tomato v{__version__} starting...")
    logger.info(f"Server running at http://{HOST}:{PORT}")
    yield
    # Cleanup on shutdown
    await orchestrator_store.shutdown()
    logger.info("Tomato stopped")


app = FastAPI(
    title="Tomato",
    description="Conversational pomodoro timer and task tracker",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(chat.router, prefix=API_PREFIX)
app.include_router(projects.router, prefix=API_PREFIX)
app.include_router(resolve.router, prefix=API_PREFIX)
app.include_router(sessions.router, prefix=API_PREFIX)


@app.exception_handler(TomatoError)
async def tomato_error_handler(request: Request, exc: TomatoError) -> JSONResponse:
    """Map domain errors to HTTP status codes."""
    status_code = ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@app.get(f"{API_PREFIX}/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
