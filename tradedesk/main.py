# File: tradedesk/main.py
"""
Main application file for TradeDesk.
"""

import json
import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradedesk.api.api import api_router
from tradedesk.api.deps import http_status_for
from tradedesk.core.config import settings
from tradedesk.core.events import LowStockAlert, global_event_bus
from tradedesk.core.exceptions import TradeDeskException

# --- Logging Configuration ---
LOG_LEVEL = getattr(logging, settings.LOG_LEVEL, logging.INFO)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("tradedesk")
logger.setLevel(LOG_LEVEL)
# --- END: Logging Configuration ---

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for the TradeDesk back-office: stock ledger and estimate-to-job conversion",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)

# Set up CORS
origins = [str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS if origin]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    logger.warning(f"No CORS origins configured in settings, using development fallbacks: {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error Handlers ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = jsonable_encoder(exc.errors())
    logger.error(f"Request validation failed: {request.method} {request.url}")
    try:
        body = await request.json()
        logger.error(f"Request Body: {json.dumps(body, indent=2)}")
    except json.JSONDecodeError:
        logger.error("Request Body: Could not parse as JSON (or empty body).")
    logger.error(f"Validation Errors:\n{json.dumps(error_details, indent=2)}")
    return JSONResponse(status_code=422, content={"detail": error_details})


@app.exception_handler(TradeDeskException)
async def tradedesk_exception_handler(request: Request, exc: TradeDeskException):
    """Last resort for domain exceptions that escaped an endpoint."""
    logger.error(f"Unhandled {exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=http_status_for(exc), content={"detail": exc.to_dict()})


# Log requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = datetime.now()
    logger.info(f"-> Request: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
    except Exception as e:
        process_time = (datetime.now() - start_time).total_seconds()
        logger.exception(
            f"!! Error during request processing for {request.method} {request.url.path} ({process_time:.4f}s): {e}"
        )
        raise
    process_time = (datetime.now() - start_time).total_seconds()
    logger.info(f"<- Response: {response.status_code} ({process_time:.4f}s)")
    return response


def log_low_stock(event: LowStockAlert) -> None:
    logging.getLogger("tradedesk.alerts").warning(
        f"Reorder {event.item_name}: {event.current_quantity} left (reorder point {event.reorder_point})"
    )


global_event_bus.subscribe(LowStockAlert, log_low_stock)

# Include the API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Root and Health Check Endpoints
@app.get("/", tags=["Root"], summary="API Root Endpoint")
def read_root():
    """Provides basic API information and links to documentation."""
    return {
        "message": "Welcome to TradeDesk API",
        "project_name": settings.PROJECT_NAME,
        "version": "0.1.0",
        "environment": settings.ENVIRONMENT,
        "docs_url": app.docs_url,
        "openapi_url": app.openapi_url,
    }


@app.get("/health", tags=["Health"], summary="API Health Check")
def health_check():
    """Returns the operational status of the API."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
