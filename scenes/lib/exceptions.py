import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from scenes.config import get_settings
from scenes.lib.errors import NotFoundError, ScenesError, ValidationError

logger = logging.getLogger(__name__)


def _json_error(status_code: int, detail: str) -> Response:
    return Response(
        content={"status_code": status_code, "detail": detail},
        status_code=status_code,
        media_type="application/json",
    )


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render Litestar HTTP exceptions as JSON."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _json_error(exc.status_code, detail)


def scenes_error_handler(request: Request, exc: ScenesError) -> Response:
    """Map domain errors onto HTTP status codes."""
    if isinstance(exc, NotFoundError):
        return _json_error(HTTP_404_NOT_FOUND, str(exc))
    if isinstance(exc, ValidationError):
        return _json_error(HTTP_400_BAD_REQUEST, str(exc))
    return internal_server_error_handler(request, exc)


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions. Details are only shown in debug mode."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    detail = str(exc) if get_settings().debug else "Internal Server Error"
    return _json_error(HTTP_500_INTERNAL_SERVER_ERROR, detail)
