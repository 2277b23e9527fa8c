from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from codearena.config import settings
from codearena.database import engine
from codearena.logging_config import setup_logging
from codearena.middleware.logging import CORRELATION_HEADER, LoggingMiddleware
from codearena.routers import verification
from codearena.services.discord_service import send_error_alert

# Database tables are managed by Alembic migrations
# Run: alembic upgrade head

REQUIRED_TABLES = {"users"}

logger = structlog.get_logger()


def check_database_tables() -> None:
    """
    Make sure the user directory is reachable and migrated.

    Raises RuntimeError otherwise; the service cannot record verified
    handles without it.
    """
    try:
        existing = set(inspect(engine).get_table_names())
    except SQLAlchemyError as e:
        logger.critical("user_directory_unreachable", error=str(e))
        raise RuntimeError(f"User directory database is unreachable: {e}") from e

    missing = REQUIRED_TABLES - existing
    if missing:
        logger.critical("user_directory_tables_missing", missing=sorted(missing))
        raise RuntimeError(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            "Run `alembic upgrade head` before starting the server."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and refuse to start without the user directory."""
    setup_logging()
    check_database_tables()
    logger.info("application_started")
    yield


app = FastAPI(
    title="CodeArena",
    description="Codeforces handle verification",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None)
    logger.error(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    await send_error_alert(
        type(exc).__name__,
        str(exc),
        path=request.url.path,
        correlation_id=correlation_id,
    )
    headers = {CORRELATION_HEADER: correlation_id} if correlation_id else None
    return JSONResponse(
        status_code=500, content={"detail": "Internal Server Error"}, headers=headers
    )


app.add_middleware(LoggingMiddleware)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=settings.session_cookie,
    same_site="lax",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(verification.router, tags=["verification"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
