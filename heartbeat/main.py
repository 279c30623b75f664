"""Main FastAPI application for the ECG heartbeat backend."""

import time
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from heartbeat.api import lifespan, router
from heartbeat.config import API_VERSION, EXPOSE_ERROR_DETAILS, HOST, PORT
from heartbeat.errors import AppError, InternalError
from heartbeat.logging_config import configure_logging

configure_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="ECG Heartbeat Backend API",
    description="Users, profiles and heart rate readings for the ECG heartbeat mobile app",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def _error_body(message: str, debug: Optional[str] = None, **extra) -> dict:
    body = {"success": False, "message": message, **extra}
    if debug and EXPOSE_ERROR_DETAILS:
        body["debug"] = debug
    return body


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning(
        "request_error",
        error=type(exc).__name__,
        message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.debug, **exc.extra),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies are reported as 400 like any other validation failure."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Invalid request data", details),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "success": False,
                "message": "Endpoint not found",
                "path": request.url.path,
            },
        )
    return JSONResponse(
        status_code=exc.status_code, content=_error_body(str(exc.detail))
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
    error = InternalError(debug=str(exc))
    return JSONResponse(
        status_code=error.status_code,
        content=_error_body(error.message, error.debug),
    )


def run() -> None:
    """Serve the application with uvicorn."""
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    run()
