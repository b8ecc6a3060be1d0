"""Mapping of domain errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from remote_config.core.errors import (
    ConfigNotFoundError,
    DuplicateConfigKeyError,
    DuplicatePriorityError,
    RemoteConfigError,
    RuleNotFoundError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    DuplicatePriorityError: status.HTTP_409_CONFLICT,
    DuplicateConfigKeyError: status.HTTP_409_CONFLICT,
    RuleNotFoundError: status.HTTP_404_NOT_FOUND,
    ConfigNotFoundError: status.HTTP_404_NOT_FOUND,
}


def status_for(error: RemoteConfigError) -> int:
    """HTTP status for a domain error. Anything unlisted is a 400."""
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def remote_config_error_handler(request: Request, exc: RemoteConfigError) -> JSONResponse:
    """Render a rejected operation as ``{"detail", "code"}``."""
    status_code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )
