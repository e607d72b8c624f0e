"""Map domain errors to HTTP responses."""

from fastapi import HTTPException, status

from vibe.generation.errors import (
    GenerationError,
    InvalidPromptError,
    NoProviderAvailableError,
    NotFoundError,
    PersistenceError,
)
from vibe.llm import ProviderError

STATUS_BY_ERROR: dict[type[Exception], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidPromptError: 422,
    NoProviderAvailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ProviderError: status.HTTP_502_BAD_GATEWAY,
}


def to_http_exception(error: GenerationError | ProviderError) -> HTTPException:
    """Build the HTTPException reported for a domain error.

    The detail carries the error's stable code and message; prompt validation
    failures also carry their issues.
    """
    status_code = next(
        (code for cls, code in STATUS_BY_ERROR.items() if isinstance(error, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    detail: dict[str, object] = {"code": error.code, "message": str(error)}
    if isinstance(error, InvalidPromptError):
        detail["issues"] = error.validation.issues
    return HTTPException(status_code=status_code, detail=detail)
