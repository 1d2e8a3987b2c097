"""
Order Ledger — FastAPI Application

Transactional order creation (inventory + order + payment in one unit of work),
idempotent cancellation, and order detail lookup.
"""
import logging
import os
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.responses import error_response
from routes import health, orders, products

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create DB tables. Shutdown: dispose the engine."""
    # Ensure data/ directory exists for SQLite
    if settings.database_url.startswith("sqlite"):
        os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import engine, init_db
    await init_db()
    logger.info("Database initialized")

    yield  # app runs here

    await engine.dispose()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Order Ledger API",
    description="Transactional order processing with inventory and payment consistency",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(products.router)
app.include_router(orders.router)


# ── Exception Handlers ──────────────────────────────────────────────

def _error_code(exc: Exception) -> str:
    """InsufficientStockError -> insufficient_stock"""
    name = exc.__class__.__name__.removesuffix("Error")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the full traceback is
    logged server-side.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Standardize HTTPException responses.

    Keeps the original HTTP status code, but wraps the payload.
    """
    # DomainError is a subclass of HTTPException carrying structured info
    if hasattr(exc, "message") and hasattr(exc, "details"):
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(_error_code(exc), exc.message, jsonable_encoder(exc.details)),
        )

    # Regular HTTPException
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            "http_error",
            message,
            detail if not isinstance(detail, str) else None,
        ),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Malformed requests are client errors (400), not 422."""
    return JSONResponse(
        status_code=400,
        content=error_response(
            "validation",
            "Invalid request. userId and a non-empty items array with quantity > 0 are required."
            if request.url.path.endswith("/orders") else "Invalid request",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("API_PORT", settings.api_port))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
