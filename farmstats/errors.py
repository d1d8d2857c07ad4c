# farmstats/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

log = logging.getLogger("farmstats.api")


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Missing required fields or an empty update."""
    status_code = 400


class NotFoundError(ApiError):
    """Update/delete matched zero rows."""
    status_code = 404


class StorageError(ApiError):
    """Anything the store reported. The driver message is passed through as-is."""
    status_code = 500

    @classmethod
    def from_exc(cls, exc: SQLAlchemyError) -> "StorageError":
        orig = getattr(exc, "orig", None)
        return cls(str(orig) if orig is not None else str(exc))


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe(exc: RequestValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request"
    first = errs[0]
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"{where}: {first.get('msg')}" if where else str(first.get("msg"))


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error(request: Request, exc: SQLAlchemyError):
        err = StorageError.from_exc(exc)
        log.error("%s %s failed in storage: %s", request.method, request.url.path, err.message)
        return _error(err.status_code, err.message)

    # Only three error kinds leave the API, so malformed bodies are a 400 too
    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        return _error(ValidationError.status_code, _describe(exc))
