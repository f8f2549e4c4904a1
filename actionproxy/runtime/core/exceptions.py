"""
Custom exception classes.

Represent errors related to action deployment and invocation, plus the
FastAPI handlers that keep every failure on the wire in `{"error": ...}` form.
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def summarize_cause(cause: BaseException) -> str:
    """One-line `Type: message` rendering of an exception for wire bodies."""
    text = str(cause).strip()
    if text:
        text = text.splitlines()[0]
        return f"{type(cause).__name__}: {text}"
    return type(cause).__name__


class ActionProxyError(Exception):
    """Base exception class for the action runtime."""

    pass


class AlreadyInitializedError(ActionProxyError):
    """Raised when init is attempted after the one-shot was consumed."""

    def __init__(self):
        super().__init__("Cannot initialize the action more than once.")


class MissingCodePayloadError(ActionProxyError):
    """Raised when an init request carries no usable code payload."""

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__("Missing main/no code to execute.")


class ArtifactPersistError(ActionProxyError):
    """Raised when the code artifact cannot be written to disk."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Failed to persist the action code: {summarize_cause(cause)}")


class ActionLoadError(ActionProxyError):
    """Base class for failures turning a persisted artifact into a handler."""

    pass


class EmptyEntryPointError(ActionLoadError):
    """Raised when no entry point was given."""

    def __init__(self):
        super().__init__("Missing main/no entry point to execute.")


class ArtifactMissingError(ActionLoadError):
    """Raised when persistence did not produce a readable artifact."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"{path} file does not exist")


class InstantiationError(ActionLoadError):
    """Raised when resolving or instantiating the entry point fails."""

    def __init__(self, entry_point: str, cause: BaseException):
        self.entry_point = entry_point
        self.cause = cause
        super().__init__(
            "An error has occurred (see logs for details): " + summarize_cause(cause)
        )


class UninitializedInvocationError(ActionProxyError):
    """Raised when /run arrives before an action is Ready."""

    def __init__(self):
        super().__init__("Cannot invoke an uninitialized action.")


class MalformedRequestError(ActionProxyError):
    """Raised when a /run body cannot be interpreted."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed run request: {detail}")


class HandlerAbortedError(ActionProxyError):
    """Raised in place of a non-Exception the handler let escape (SystemExit, StopIteration)."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"The action aborted with {summarize_cause(cause)}")


class ResultNotSerializableError(ActionProxyError):
    """Raised when a handler result cannot be rendered as JSON."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"The action returned a value that is not JSON serializable: {cause}")


class SandboxViolation(PermissionError):
    """Raised inside a handler that attempts an operation refused by the sandbox."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(f"Operation not permitted inside the action sandbox: {event}")


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "An error has occurred (see logs for details): " + summarize_cause(exc)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for validation errors.
    """
    logger.warning(f"Request validation failed: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": f"Malformed request: {exc.errors()}"},
    )
