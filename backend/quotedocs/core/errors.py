"""Domain exceptions and structured error responses (consistent JSON format)."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class QuoteNotFoundError(LookupError):
    """The requested quote does not exist."""

    def __init__(self, quote_id: str):
        super().__init__(f"Quote with ID {quote_id} not found")
        self.quote_id = quote_id


class ItemNotFoundError(LookupError):
    def __init__(self, quote_id: str, item_id: str):
        super().__init__(f"Item {item_id} not found on quote {quote_id}")
        self.quote_id = quote_id
        self.item_id = item_id


class ShortLinkNotFoundError(LookupError):
    """No link registry entry exists for the slug."""

    def __init__(self, slug: str):
        super().__init__(f"Short link {slug} not found")
        self.slug = slug


class StorageError(Exception):
    """An object store call failed."""


class StorageWriteError(StorageError):
    """An object could not be durably stored. Fatal for the current request."""

    def __init__(self, key: str, reason: str = ""):
        message = f"Failed to store object {key}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.key = key


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "detail": "Validation error",
                "errors": jsonable_errors(exc),
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "status_code": 500,
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors with non-serializable context (e.g. exceptions) stringified."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors
