"""
SahemInvest Distribution API: application entry-point.

Initializes the FastAPI application, registers middleware, exception
handlers and routers, and creates the tables on startup.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.openapi.docs import get_redoc_html
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

from sahem_invest.api.v1.api import api_router
from sahem_invest.core.cache import cache
from sahem_invest.core.config import settings
from sahem_invest.core.exceptions import add_exception_handlers
from sahem_invest.core.logging import setup_logging
from sahem_invest.core.resilience import CircuitBreakerError, db_circuit_breaker
from sahem_invest.db.session import AsyncSessionLocal, engine
from sahem_invest.middleware import RequestIDMiddleware, RequestTimingMiddleware
from sahem_invest.models.distribution_request import ProfitDistributionRequest
from sahem_invest.repositories.distribution_request_repo import DistributionRequestRepository

setup_logging()
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: register every table model and create the tables, retrying
    with exponential back-off. If the database stays unreachable the app
    starts degraded and ``/health`` reports ``database: false``.

    Shutdown: dispose of the connection pool and drop cached reads.
    """
    # Table classes only reach SQLModel.metadata once their module is imported.
    import sahem_invest.db.base  # noqa: F401

    max_retries = 5
    retry_delay = 2

    for attempt in range(1, max_retries + 1):
        try:
            logger.info("Connecting to database (attempt %d/%d)", attempt, max_retries)
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("Database tables ready")
            break
        except (SQLAlchemyError, OSError) as exc:
            if attempt < max_retries:
                logger.warning(
                    "Database connection failed (attempt %d/%d): %s; retrying in %ds",
                    attempt,
                    max_retries,
                    exc,
                    retry_delay,
                )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.error(
                    "Could not connect to database after %d attempts. Starting in "
                    "DEGRADED mode; database-backed endpoints will fail until it is "
                    "reachable. Last error: %s",
                    max_retries,
                    exc,
                )

    yield

    logger.info("Shutting down, disposing connection pool")
    await engine.dispose()
    cache.clear()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=API_VERSION,
    description=(
        "Profit and loss distribution for crowd-funded deals: partners file "
        "distribution requests, admins preview, approve or reject them, and "
        "approved payouts are credited to investor wallets."
    ),
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    redoc_url=None,
    lifespan=lifespan,
)


# The default cdn.redoc.ly bundle is blocked by Chrome ORB; serve it from unpkg.
@app.get("/redoc", include_in_schema=False)
async def custom_redoc_html():
    return get_redoc_html(
        openapi_url=app.openapi_url or f"{settings.API_V1_STR}/openapi.json",
        title=f"{settings.PROJECT_NAME} - ReDoc",
        redoc_js_url="https://unpkg.com/redoc@latest/bundles/redoc.standalone.js",
    )


# Outermost middleware is added last.
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Counts distribution requests per status (which doubles as the database
    check) and reports the circuit breaker state and cache statistics. A
    non-zero ``PROCESSING`` count that does not drain means an approval died
    between claiming its request and releasing it; that deal accepts no
    further approvals until the request is put back to PENDING.
    """
    requests_by_status = None
    try:
        async with AsyncSessionLocal() as session:
            repo = DistributionRequestRepository(ProfitDistributionRequest, session)
            requests_by_status = await repo.count_by_status()
    except (SQLAlchemyError, OSError, CircuitBreakerError) as exc:
        logger.warning("Health check could not reach the database: %s", exc)

    db_healthy = requests_by_status is not None
    return {
        "status": "ok" if db_healthy else "degraded",
        "version": API_VERSION,
        "database": db_healthy,
        "distribution_requests": requests_by_status,
        "circuit_breaker": db_circuit_breaker.get_status(),
        "cache": cache.get_stats(),
    }
