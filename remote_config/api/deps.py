"""FastAPI dependencies."""

from __future__ import annotations

from typing import Generator, Optional

from fastapi import Header, HTTPException, status
from sqlalchemy.orm import Session

from remote_config.db.database import get_db as db_context
from remote_config.config import get_settings

settings = get_settings()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session."""
    with db_context() as db:
        yield db


def require_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Validate the admin API key.

    When no key is configured the admin API is open (dev mode).
    """
    if not settings.api_key:
        return

    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
