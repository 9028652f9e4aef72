"""
Unity ERP - FastAPI application

Component requirements and shortfalls, finished-goods reservations, stock
issuance and purchase order creation for customer orders.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from unity_erp.api.v1 import router as api_v1_router
from unity_erp.core.settings import settings
from unity_erp.exceptions import UnityException
from unity_erp.logging_config import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def init_database():
    """Create missing tables (idempotent)."""
    from unity_erp.db.session import engine
    from unity_erp.db.base import Base
    import unity_erp.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ready")
    except SQLAlchemyError:
        logger.error("Database initialization failed", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting Unity ERP API",
        extra={
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "fg_coverage_default": settings.FG_COVERAGE_DEFAULT,
            "negative_stock_issuance": settings.ALLOW_NEGATIVE_STOCK_ISSUANCE,
        }
    )
    init_database()
    yield
    logger.info("Shutting down Unity ERP API")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Component requirements, shortfall resolution and stock issuance",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin"],
)


# ===================
# Exception Handlers
# ===================

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": error, "message": message}
    if details:
        content["details"] = details
    content["timestamp"] = datetime.utcnow().isoformat() + "Z"
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(UnityException)
async def unity_exception_handler(request: Request, exc: UnityException):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.error_code}: {exc.message}",
        extra={"error_code": exc.error_code, "details": exc.details, "path": request.url.path}
    )
    return _error_response(exc.status_code, exc.error_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("Request validation failed", extra={"path": request.url.path, "errors": errors})
    return _error_response(422, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error", extra={"path": request.url.path}, exc_info=True)
    return _error_response(500, "DATABASE_ERROR", "A database error occurred. Please try again.")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", extra={"path": request.url.path}, exc_info=True)
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred. Please try again later.")


app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"name": settings.PROJECT_NAME, "version": settings.VERSION, "api": settings.API_V1_STR}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("unity_erp.main:app", host="0.0.0.0", port=8001, reload=settings.is_development)
