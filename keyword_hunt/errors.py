"""
Error taxonomy for keyword hunting.

Every error the pipelines raise on purpose is an ``AppError`` carrying a
machine-readable ``code``.  Views turn them into JSON responses through
``error_response``; streaming pipelines emit them as ``error`` progress
events before re-raising.
"""

import enum
import functools
import logging

from django.http import JsonResponse

logger = logging.getLogger(__name__)


class AppErrorType(str, enum.Enum):
    INVALID_PARAMS = "INVALID_PARAMS"
    APP_NOT_FOUND = "APP_NOT_FOUND"
    COMPETITOR_NOT_FOUND = "COMPETITOR_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_PERMITTED = "NOT_PERMITTED"
    CONFLICT = "CONFLICT"
    UPSTREAM = "UPSTREAM"
    UNSUPPORTED_LOCALE = "UNSUPPORTED_LOCALE"
    ASO_TITLE = "ASO_TITLE"
    ASO_SUBTITLE = "ASO_SUBTITLE"
    ASO_DESCRIPTION = "ASO_DESCRIPTION"
    SHORT_DESCRIPTION = "SHORT_DESCRIPTION"
    LLM_REFUSAL = "LLM_REFUSAL"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    def __str__(self):
        return self.value


HTTP_STATUS = {
    AppErrorType.INVALID_PARAMS: 400,
    AppErrorType.UNAUTHORIZED: 401,
    AppErrorType.NOT_PERMITTED: 403,
    AppErrorType.APP_NOT_FOUND: 404,
    AppErrorType.COMPETITOR_NOT_FOUND: 404,
    AppErrorType.CONFLICT: 409,
    AppErrorType.CANCELLED: 499,
    AppErrorType.UPSTREAM: 502,
}


class AppError(Exception):
    code = AppErrorType.UNKNOWN

    def __init__(self, message: str, code: AppErrorType | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def status(self) -> int:
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code.value}


class InvalidParamsError(AppError):
    code = AppErrorType.INVALID_PARAMS


class AppNotFoundError(AppError):
    code = AppErrorType.APP_NOT_FOUND


class CompetitorNotFoundError(AppError):
    code = AppErrorType.COMPETITOR_NOT_FOUND


class UpstreamError(AppError):
    code = AppErrorType.UPSTREAM


class UnsupportedLocaleError(AppError):
    code = AppErrorType.UNSUPPORTED_LOCALE


class KeywordSetBusyError(AppError):
    code = AppErrorType.CONFLICT


class LlmRefusalError(AppError):
    code = AppErrorType.LLM_REFUSAL

    def __init__(self, message: str = "The language model refused to answer"):
        super().__init__(message)


class AsoTitleError(AppError):
    code = AppErrorType.ASO_TITLE


class AsoSubtitleError(AppError):
    code = AppErrorType.ASO_SUBTITLE


class AsoDescriptionError(AppError):
    code = AppErrorType.ASO_DESCRIPTION


class ShortDescriptionError(AppError):
    code = AppErrorType.SHORT_DESCRIPTION


class PipelineCancelledError(AppError):
    code = AppErrorType.CANCELLED

    def __init__(self, message: str = "Client disconnected"):
        super().__init__(message)


class UnknownError(AppError):
    code = AppErrorType.UNKNOWN


def wrap_error(error: Exception) -> AppError:
    """Return ``error`` itself if it is an AppError, else an UnknownError keeping its message."""
    if isinstance(error, AppError):
        return error
    return UnknownError(str(error) or error.__class__.__name__)


def error_response(error: Exception) -> JsonResponse:
    app_error = wrap_error(error)
    return JsonResponse({"error": app_error.to_dict()}, status=app_error.status)


def handles_app_errors(view):
    """Render AppErrors raised by a JSON view as ``{"error": {...}}`` responses."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except AppError as e:
            if e.status >= 500:
                logger.error(f"{view.__name__} failed: {e.code.value} {e.message}")
            return error_response(e)

    return wrapper
