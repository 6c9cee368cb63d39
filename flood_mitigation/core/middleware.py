import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from flood_mitigation.core.exceptions import AppException, create_http_exception

logger = logging.getLogger(__name__)

# Context Variable for Request ID (accessed by logging filter)
request_id_context = ContextVar("request_id", default=None)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle request logging and context management.
    Should run BEFORE ErrorHandlingMiddleware to ensure context is set.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_context.set(request_id)

        if request.url.path != "/health":
            logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        if request.url.path != "/health":
            logger.info(f"Response: {response.status_code} - {process_time:.3f}s")

        response.headers["X-Request-ID"] = request_id
        return response


def _error_response(
    status_code: int, code: str, message, details, request_id: str, headers=None
) -> JSONResponse:
    error_content = {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
            "status_code": status_code,
        }
    }
    return JSONResponse(
        status_code=status_code,
        content=error_content,
        headers={"X-Request-ID": request_id, **(headers or {})},
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle exceptions globally and provide structured error responses.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request_id_context.get() or str(uuid.uuid4())

        try:
            return await call_next(request)

        except AppException as exc:
            http_exc = create_http_exception(exc)
            logger.warning(
                f"Application Error: {exc.message} ({exc.__class__.__name__})"
            )
            return _error_response(
                http_exc.status_code,
                exc.__class__.__name__,
                http_exc.detail,
                exc.details,
                request_id,
                http_exc.headers,
            )

        except StarletteHTTPException as exc:
            return _error_response(
                exc.status_code, "HTTPException", exc.detail, None, request_id
            )

        except RequestValidationError as exc:
            return _error_response(
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "ValidationError",
                "Data validation failed",
                exc.errors(),
                request_id,
            )

        except Exception as exc:
            logger.error(f"Unhandled exception: {exc}", exc_info=True)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "InternalServerException",
                "An unexpected error occurred.",
                (
                    str(exc)
                    if logging.getLogger().isEnabledFor(logging.DEBUG)
                    else None
                ),
                request_id,
            )


def register_exception_handlers(app) -> None:
    """Render AppException raised inside endpoints with the same error envelope."""

    async def _handle_app_exception(request: Request, exc: AppException):
        http_exc = create_http_exception(exc)
        logger.warning(f"Application Error: {exc.message} ({exc.__class__.__name__})")
        return _error_response(
            http_exc.status_code,
            exc.__class__.__name__,
            http_exc.detail,
            exc.details,
            request_id_context.get() or str(uuid.uuid4()),
            http_exc.headers,
        )

    app.add_exception_handler(AppException, _handle_app_exception)
