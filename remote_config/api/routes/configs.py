"""Admin routes for configurations."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from remote_config.api.deps import get_db, require_api_key
from remote_config.core.configs.models import (
    ConfigCreate,
    ConfigHistoryResponse,
    ConfigResponse,
    ConfigUpdate,
    Environment,
)
from remote_config.core.configs.repository import ConfigRepository

router = APIRouter(dependencies=[Depends(require_api_key)])

CHANGED_BY = "admin"


@router.get("/", response_model=List[ConfigResponse])
def list_configs(
    game_id: Optional[str] = None,
    environment: Optional[Environment] = None,
    db: Session = Depends(get_db),
):
    """List configs, optionally filtered by game and environment."""
    return ConfigRepository(db).get_all(game_id=game_id, environment=environment)


@router.post("/", response_model=ConfigResponse, status_code=status.HTTP_201_CREATED)
def add_config(payload: ConfigCreate, db: Session = Depends(get_db)):
    """Create a new config."""
    return ConfigRepository(db).create(payload, changed_by=CHANGED_BY)


@router.get("/{config_id}", response_model=ConfigResponse)
def get_config(config_id: str, db: Session = Depends(get_db)):
    """Get a specific config by ID."""
    return ConfigRepository(db).require(config_id)


@router.patch("/{config_id}", response_model=ConfigResponse)
def update_config(config_id: str, payload: ConfigUpdate, db: Session = Depends(get_db)):
    """Update a config's value, enabled flag or description."""
    return ConfigRepository(db).update(config_id, payload, changed_by=CHANGED_BY)


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_config(config_id: str, db: Session = Depends(get_db)):
    """Delete a config with all of its rules."""
    ConfigRepository(db).delete(config_id, changed_by=CHANGED_BY)


@router.get("/{config_id}/history", response_model=List[ConfigHistoryResponse])
def config_history(config_id: str, limit: int = 50, db: Session = Depends(get_db)):
    """Recent changes to a config."""
    return ConfigRepository(db).history(config_id, limit=limit)
