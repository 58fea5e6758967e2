from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import settings
from app.api.v1.router import api_router
from app.database import init_db, async_session_factory
from app.jobs.scheduler import start_scheduler, shutdown_scheduler, get_job_status

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables, then run the score refresh scheduler while serving."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    shutdown_scheduler()
    logger.info(f"{settings.APP_NAME} stopped")


OPENAPI_TAGS = [
    {"name": "Couriers", "description": "Reliability scores, trust tiers and badges"},
    {"name": "Insurance", "description": "Package insurance plans, policies and claims"},
    {"name": "Tracking", "description": "Shareable public tracking links and position feed"},
    {"name": "Delivery Proofs", "description": "Proof-of-delivery capture and submission"},
    {"name": "Health", "description": "Liveness and database connectivity"},
]

API_DESCRIPTION = """
## Delivery Trust & Risk API

| Module | Description |
|--------|-------------|
| **Reliability** | Composite courier score (0-100), trust tier, badges |
| **Insurance** | Plan pricing, policies valid 7 days, claims |
| **Tracking** | 6-character public share codes with expiry and view counts |
| **Proof of Delivery** | Ordered upload of package photo, recipient photo and signature |

Write endpoints take a JWT bearer token whose subject is the courier id.
`GET /api/v1/tracking/public/{code}` needs no token.

| Code | Meaning |
|------|---------|
| 401 | Missing, invalid or expired token |
| 404 | Unknown courier, delivery, policy or tracking code (expired codes included) |
| 422 | Missing mandatory evidence or invalid input |
| 502 | Store or object storage failure |
"""

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """JSON body for unexpected errors, with CORS headers so browsers can read it."""
    logger.error(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}")

    body = {
        "error": str(exc),
        "type": type(exc).__name__,
        "path": request.url.path,
        "method": request.method,
    }
    if settings.DEBUG:
        body["traceback"] = traceback.format_exc()

    response = JSONResponse(status_code=500, content=body)

    origin = request.headers.get("origin", "")
    if origin and (origin in settings.cors_origins_list or "*" in settings.cors_origins_list):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"

    return response


@app.get("/health", tags=["Health"])
async def health_check():
    """Database connectivity and scheduled jobs. 503 when the database is unreachable."""
    database = "connected"
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check database error: {e}")
        database = f"error: {e}"

    healthy = database == "connected"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {"database": database},
        "jobs": get_job_status(),
    }
    if not healthy:
        return JSONResponse(status_code=503, content=body)
    return body


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
