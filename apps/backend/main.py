from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from contextlib import asynccontextmanager
import os
import logging
import traceback

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

import metrics
from app.config import Capabilities
from app.crawl import router as crawl_router
from app.deps import get_browser_manager
from app.listings import router as listings_router
from core.errors import (
    CompanyNotFoundError,
    CrawlInProgressError,
    InvalidStatusTransition,
    StoreError,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application lifecycle events."""
    browser = "enabled" if Capabilities.is_browser_enabled() else "disabled (use the local crawler)"
    logger.info(f"[jobradar] in-process browser crawling {browser}")

    yield

    # Shutdown: never leave a Chromium process behind
    await get_browser_manager().close()


app = FastAPI(title="JobRadar API", version="0.1.0", lifespan=lifespan)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(CompanyNotFoundError)
async def company_not_found_handler(request: Request, exc: CompanyNotFoundError):
    return _error(404, str(exc))


@app.exception_handler(CrawlInProgressError)
async def crawl_in_progress_handler(request: Request, exc: CrawlInProgressError):
    return _error(409, str(exc))


@app.exception_handler(InvalidStatusTransition)
async def invalid_transition_handler(request: Request, exc: InvalidStatusTransition):
    return _error(409, str(exc))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"[jobradar] Store error on {request.url.path}: {exc}")
    return _error(503, "Database unavailable. Please try again later.")


# Error masking middleware
@app.middleware("http")
async def error_masking_middleware(request: Request, call_next):
    """Mask detailed errors in production; show full errors in dev."""
    try:
        return await call_next(request)
    except Exception as e:
        is_dev = os.getenv("JOBRADAR_ENV", "").lower() == "dev"
        logger.error(f"Unhandled error: {str(e)}")
        if is_dev:
            logger.error(traceback.format_exc())
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": str(e), "traceback": traceback.format_exc()},
            )
        return _error(500, "An internal error occurred. Please try again later.")


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("JOBRADAR_CORS_ORIGINS", "http://localhost:5000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(crawl_router)
app.include_router(listings_router)


@app.get("/api/healthz")
async def healthz():
    return Capabilities.get_status()


@app.get("/metrics")
async def prometheus_metrics():
    return Response(content=metrics.render(), media_type="text/plain; version=0.0.4")
