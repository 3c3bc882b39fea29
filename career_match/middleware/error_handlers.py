"""
Global Exception Handler Middleware for the Career Match API
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError

from career_match.utils.exceptions import CareerMatchBaseException, map_to_http_exception
from career_match.utils.logging_config import get_logger

logger = get_logger(__name__)


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


def _plain_errors(errors) -> list:
    # ctx may carry exception objects that are not JSON serializable
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


async def create_error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """Create standardized error response"""
    if isinstance(detail, str):
        detail = {"message": detail}
    elif not isinstance(detail, dict):
        detail = {"message": str(detail)}

    error_response = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail
    }

    return JSONResponse(
        status_code=status_code,
        content=error_response,
        headers={"X-Request-ID": request_id}
    )


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost handler: assigns request ids and turns escaped exceptions into JSON errors"""

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        except CareerMatchBaseException as exc:
            logger.error(
                f"{exc.__class__.__name__} in {request.method} {request.url.path}: {exc.message}",
                extra={**context, "error_code": exc.error_code, "details": exc.details}
            )
            http_exc = map_to_http_exception(exc)
            return await create_error_response(request_id, http_exc.status_code, http_exc.detail)

        except RequestValidationError as exc:
            logger.error(
                f"Validation error in {request.method} {request.url.path}: {exc}",
                extra={**context, "validation_errors": exc.errors()}
            )
            return await create_error_response(request_id, 422, {
                "error": "Validation failed",
                "message": "Request data validation failed",
                "validation_errors": _plain_errors(exc.errors()),
            })

        except ValidationError as exc:
            logger.error(
                f"Pydantic validation error in {request.method} {request.url.path}: {exc}",
                extra={**context, "validation_errors": exc.errors()}
            )
            return await create_error_response(request_id, 400, {
                "error": "Data validation failed",
                "message": "Invalid data format or values",
                "validation_errors": _plain_errors(exc.errors()),
            })

        except HTTPException as exc:
            logger.warning(
                f"HTTP exception in {request.method} {request.url.path}: {exc.detail}",
                extra={**context, "status_code": exc.status_code}
            )
            return await create_error_response(request_id, exc.status_code, exc.detail)

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
                extra={**context, "exception_type": exc.__class__.__name__, "traceback": traceback.format_exc()},
                exc_info=True
            )
            # Don't expose internal errors
            return await create_error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request/response logging; CV upload bodies are never logged, only their size"""

    async def dispatch(self, request: Request, call_next):
        if getattr(request.state, "skip_logging", False):
            return await call_next(request)

        start_time = time.time()
        request_id = _request_id(request)

        logger.debug(
            f"Request details: {request.method} {request.url}",
            extra={
                "request_id": request_id,
                "content_type": request.headers.get("content-type"),
                "content_length": request.headers.get("content-length"),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} after {processing_time:.3f}s",
                extra={"request_id": request_id, "processing_time": processing_time, "exception": str(exc)}
            )
            raise

        processing_time = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
            extra={"request_id": request_id, "status_code": response.status_code, "processing_time": processing_time}
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for performance monitoring"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold,
                }
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response


class HealthCheckMiddleware(BaseHTTPMiddleware):
    """Marks health probes so request logging skips them"""

    HEALTH_PATHS = ["/health", "/healthz", "/ping"]

    async def dispatch(self, request: Request, call_next):
        request.state.skip_logging = request.url.path in self.HEALTH_PATHS
        return await call_next(request)
