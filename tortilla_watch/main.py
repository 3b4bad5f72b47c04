"""
Tortilla Watch API
Main FastAPI application entry point.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import time

from tortilla_watch import __version__
from tortilla_watch.config import settings
from tortilla_watch.database import init_db, close_db
from tortilla_watch.errors import APIError

# Import routers
from tortilla_watch.api.availability import router as availability_router
from tortilla_watch.api.outages import router as outages_router
from tortilla_watch.api.ratings import router as ratings_router
from tortilla_watch.api.today import router as today_router
from tortilla_watch.api.history import router as history_router
from tortilla_watch.api.batches import router as batches_router
from tortilla_watch.api.system import router as system_router

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting Tortilla Watch...")
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down Tortilla Watch...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title="Tortilla Watch",
    description="""
    ## Is there tortilla at the cafeteria?

    #### 🗳️ Availability
    - Crowd votes ("working" / "outage") over a 30 minute window
    - Anti-spam: per-client rate limit, no consecutive outage votes
    - "Finished" flow that resets the day

    #### ⭐ Ratings
    - One rating per client per day on four axes
    - Short comments with an optional photo
    - Likes and emoji reactions

    #### 📈 History
    - Today's status
    - Top comments of the week
    - Daily averages
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add request processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Render service errors as ``{"error": code}``."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies (bad JSON, wrong types) map to ``invalid_request``."""
    logger.debug(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "invalid_request"})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    content = {"error": "internal_server_error"}
    if settings.APP_DEBUG:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Include routers
app.include_router(availability_router, prefix=settings.API_PREFIX)
app.include_router(outages_router, prefix=settings.API_PREFIX)
app.include_router(ratings_router, prefix=settings.API_PREFIX)
app.include_router(today_router, prefix=settings.API_PREFIX)
app.include_router(history_router, prefix=settings.API_PREFIX)
app.include_router(batches_router, prefix=settings.API_PREFIX)
app.include_router(system_router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Tortilla Watch",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


# Ready endpoint for k8s probes
@app.get("/ready", tags=["Health"])
async def ready():
    """Readiness probe endpoint."""
    return {"status": "ready"}


# Live endpoint for k8s probes
@app.get("/live", tags=["Health"])
async def live():
    """Liveness probe endpoint."""
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tortilla_watch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.APP_DEBUG
    )
