"""Error type shared by routers and services, and its JSON rendering."""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from telex_sentiment.api.schemas.moderation import ErrorCode, ModerationError

logger = logging.getLogger(__name__)

# Request fields whose type/shape errors map to a dedicated code
_FIELD_CODES = {
    "message": ErrorCode.INVALID_MESSAGE,
    "channel_id": ErrorCode.INVALID_CHANNEL,
    "target_url": ErrorCode.INVALID_TARGET_URL,
}


class ModerationFailure(Exception):
    """A request that ends in a ModerationError body."""

    def __init__(
        self,
        code: ErrorCode,
        error: str,
        details: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(error)
        self.code = code
        self.error = error
        self.details = details
        self.status_code = status_code

    def to_error(self) -> ModerationError:
        return ModerationError(error=self.error, code=self.code, details=self.details)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_error().model_dump(mode="json"))


async def moderation_failure_handler(request: Request, exc: ModerationFailure) -> JSONResponse:
    return exc.to_response()


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors (400), not 422."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ())]
    field = next((part for part in loc if part in _FIELD_CODES), None)
    code = _FIELD_CODES.get(field, ErrorCode.INVALID_MESSAGE)
    failure = ModerationFailure(
        code,
        f"Invalid request: {field or 'body'} is invalid",
        details=first.get("msg"),
    )
    logger.info("Rejected request to %s: %s", request.url.path, failure.details)
    return failure.to_response()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return ModerationFailure(
        ErrorCode.PROCESSING_ERROR,
        "Processing failed",
        details=str(exc),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    ).to_response()


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ModerationFailure, moderation_failure_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
