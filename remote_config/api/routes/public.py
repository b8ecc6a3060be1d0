"""Client-facing config fetch routes."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from remote_config.api.deps import get_db
from remote_config.api.limits import limiter
from remote_config.config import get_settings
from remote_config.core.clock import utcnow
from remote_config.core.configs.models import ConfigStats, Environment, FetchContext, FetchResult
from remote_config.core.configs.service import ConfigFetchService
from remote_config.core.rules.models import EvaluationContext

router = APIRouter()

settings = get_settings()


def _evaluation_instant(evaluation_time: Optional[datetime]) -> datetime:
    """Current time, or the caller's instant when overrides are allowed."""
    if evaluation_time is None:
        return utcnow()
    if not settings.evaluation_time_override_enabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="evaluation_time override is disabled on this server",
        )
    return evaluation_time


@router.get("/{game_id}")
@limiter.limit(settings.fetch_rate_limit)
def fetch_configs(
    request: Request,
    game_id: str,
    environment: Environment = "production",
    platform: Optional[str] = None,
    version: Optional[str] = None,
    country: Optional[str] = None,
    segment: Optional[str] = None,
    debug: bool = False,
    evaluation_time: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """Resolve every enabled config of a game for the calling client."""
    context = EvaluationContext(
        platform=platform,
        version=version,
        country=country,
        segment=segment,
        evaluation_instant=_evaluation_instant(evaluation_time),
    )
    result = ConfigFetchService(db).fetch(game_id, context, environment=environment)

    if debug:
        return result.model_dump()
    return result.model_dump(exclude={"evaluations"})


@router.get("/{game_id}/stats", response_model=ConfigStats)
def config_stats(
    game_id: str,
    environment: Environment = "production",
    db: Session = Depends(get_db),
):
    """Config and rule counts for a game."""
    return ConfigFetchService(db).stats(game_id, environment=environment)


@router.post("/{game_id}/validate", response_model=FetchResult)
def validate_configs(
    game_id: str,
    payload: FetchContext,
    db: Session = Depends(get_db),
):
    """Dry-run a fetch for the given attributes and show which rules matched."""
    context = EvaluationContext(
        platform=payload.platform,
        version=payload.version,
        country=payload.country,
        segment=payload.segment,
        evaluation_instant=_evaluation_instant(payload.evaluation_time),
    )
    return ConfigFetchService(db).fetch(game_id, context, environment=payload.environment)
