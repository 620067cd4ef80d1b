import datetime
import traceback
from typing import Any, Dict, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from rego_registry.core.exceptions import RegoRegistryError, ResourceExhausted
from rego_registry.logging_config import logger
from rego_registry.settings import settings

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."
RETRY_AFTER_SECONDS = 5


class ErrorResponse(Exception):
    """Standardised error response format."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        request: Request | None = None,
        details: dict[str, Any] | None = None,
        error_type: str = "error",
        exc: Exception | None = None,
        include_stack: bool = False,
    ) -> None:
        self.timestamp = datetime.datetime.now()
        self.status_code = status_code
        self.message = message
        self.error_type = error_type
        self.details = dict(details or {})

        # Light-weight request context
        if request:
            self.details.update(
                {
                    "method": request.method,
                    "path": request.url.path,
                }
            )

        # Stack trace only when explicitly requested and a traceback exists
        if include_stack and exc and exc.__traceback__:
            tb_exc = traceback.TracebackException.from_exception(exc)
            stack_frames = tb_exc.stack

            if stack_frames:
                last = stack_frames[-1]
                self.details["source_location"] = {
                    "file": last.filename,
                    "line": last.lineno,
                    "function": last.name,
                }

            self.details["stack"] = list(tb_exc.format())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "status_code": self.status_code,
            "error_type": self.error_type,
            "details": self.details,
        }


def _extract_value(body: Any, path: tuple[Any, ...]) -> Any:
    """
    Walk the request body using the error location to fetch the offending value
    ('body', 'foo', 0, 'bar') → body['foo'][0]['bar']
    """
    cur = body
    for part in path[1:]:
        if isinstance(cur, dict):
            cur = cur.get(part)
        elif isinstance(cur, list) and isinstance(part, int) and part < len(cur):
            cur = cur[part]
        else:
            return None
    return cur


def format_validation_error(
    exc: RequestValidationError,
    request: Request,
) -> ErrorResponse:
    body = exc.body
    enriched: list[dict[str, Any]] = []

    for err in exc.errors():
        loc_tuple: tuple[Any, ...] = tuple(err["loc"])
        # ctx may hold raw exception objects which are not JSON-serializable
        ctx = err.get("ctx", {})
        if ctx and isinstance(ctx, dict):
            ctx = {
                k: (str(v) if isinstance(v, BaseException) else v)
                for k, v in ctx.items()
            }
        invalid_value = _extract_value(body, loc_tuple)
        enriched.append(
            {
                "location": " -> ".join(str(x) for x in loc_tuple),
                "field": loc_tuple[-1] if len(loc_tuple) > 1 else None,
                "invalid_value": invalid_value
                if isinstance(invalid_value, (str, int, float, bool, type(None)))
                else str(invalid_value),
                "message": err["msg"],
                "type": err["type"],
                "ctx": ctx,
            }
        )

    return ErrorResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        request=request,
        details={"errors": enriched},
        error_type="validation_error",
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error_response = format_validation_error(exc, request)
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )


async def rego_registry_exception_handler(
    request: Request, exc: RegoRegistryError
) -> JSONResponse:
    """Render a domain rule violation with its own status and message."""
    error_response = ErrorResponse(
        status_code=exc.status_code,
        message=exc.message,
        request=request,
        details=exc.details,
        error_type=exc.error_type,
    )
    logger.warning(f"{exc.error_type}: {exc.message}")

    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
        headers=headers,
    )


async def pool_timeout_exception_handler(
    request: Request, exc: PoolTimeoutError
) -> JSONResponse:
    """Connection pool saturation on a read path."""
    logger.error(f"Database connection pool exhausted: {exc}")
    return await rego_registry_exception_handler(
        request,
        ResourceExhausted("The service is busy. Please retry the request shortly."),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Union[Response, JSONResponse]:
    """Handle HTTP exceptions."""
    error_response = ErrorResponse(
        status_code=exc.status_code, message=str(exc.detail), error_type="http_error"
    )
    logger.warning(f"HTTP error: {error_response.to_dict()}")
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Only expose the stack trace outside PROD
    show_stack = settings.ENVIRONMENT != "PROD"
    error_response = ErrorResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=GENERIC_ERROR_MESSAGE,
        request=request,
        details={"exception_type": type(exc).__name__} if show_stack else None,
        error_type="server_error",
        exc=exc,
        include_stack=show_stack,
    )
    logger.exception(f"Unhandled error for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )
