from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import logging

from .core.config import settings
from .core.database import create_db_and_tables
from .core.cache import cache
from .api.deps import shutdown_session_manager
from .api.v1.api import api_router
from .middleware.timezone import TimezoneMiddleware
from .utils.openai_service import behavior_analysis_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ExamGuard API",
    description="Proctored online exams with AI behavior analysis",
    version="1.0.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(TimezoneMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    )


@app.on_event("startup")
async def startup_event():
    """Application startup tasks"""
    logger.info("Starting ExamGuard API...")

    create_db_and_tables()
    logger.info("Database initialized")

    if await cache.ahealth_check():
        logger.info("Cache connection established")
    else:
        logger.warning("Cache connection failed - running without live snapshots")

    if behavior_analysis_service.client is None:
        logger.warning("Azure OpenAI is not configured - behavior analysis will fail open")
    else:
        logger.info("Behavior analysis service initialized")

    logger.info("ExamGuard API startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown tasks"""
    logger.info("Shutting down ExamGuard API...")

    shutdown_session_manager()
    logger.info("Proctoring sessions closed")

    try:
        await cache.aclose()
        logger.info("Cache connections closed")
    except Exception as e:
        logger.error(f"Error closing cache connections: {e}")

    logger.info("ExamGuard API shutdown completed")


app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def read_root():
    return {
        "message": "Welcome to the ExamGuard API!",
        "version": "1.0.0",
    }
