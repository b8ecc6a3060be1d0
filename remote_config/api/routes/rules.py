"""Admin routes for a config's override rules."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from remote_config.api.deps import get_db, require_api_key
from remote_config.core.errors import RuleNotFoundError
from remote_config.core.rules.models import ReorderRequest, RuleCreate, RuleResponse, RuleUpdate
from remote_config.core.rules.repository import RuleRepository

router = APIRouter(dependencies=[Depends(require_api_key)])

CHANGED_BY = "admin"


@router.get("/", response_model=List[RuleResponse])
def list_rules(config_id: str, db: Session = Depends(get_db)):
    """List a config's rules in priority order."""
    return RuleRepository(db).get_for_config(config_id)


@router.post("/", response_model=RuleResponse, status_code=status.HTTP_201_CREATED)
def add_rule(config_id: str, payload: RuleCreate, db: Session = Depends(get_db)):
    """Create a new rule."""
    return RuleRepository(db).create(config_id, payload, changed_by=CHANGED_BY)


@router.post("/reorder", response_model=List[RuleResponse])
def reorder_rules(config_id: str, payload: ReorderRequest, db: Session = Depends(get_db)):
    """Reassign priorities of several rules in one step."""
    ordering = [(item.rule_id, item.new_priority) for item in payload.rule_order]
    return RuleRepository(db).reorder(config_id, ordering, changed_by=CHANGED_BY)


@router.get("/{rule_id}", response_model=RuleResponse)
def get_rule(config_id: str, rule_id: str, db: Session = Depends(get_db)):
    """Get a specific rule by ID."""
    repo = RuleRepository(db)
    rule = repo.get_by_id(rule_id, config_id=config_id)
    if not rule:
        raise RuleNotFoundError(rule_id)
    return rule


@router.patch("/{rule_id}", response_model=RuleResponse)
def update_rule(config_id: str, rule_id: str, payload: RuleUpdate, db: Session = Depends(get_db)):
    """Update a rule."""
    return RuleRepository(db).update(config_id, rule_id, payload, changed_by=CHANGED_BY)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(config_id: str, rule_id: str, db: Session = Depends(get_db)):
    """Delete a rule by ID."""
    RuleRepository(db).delete(config_id, rule_id, changed_by=CHANGED_BY)


@router.post("/{rule_id}/toggle", response_model=RuleResponse)
def toggle_rule(config_id: str, rule_id: str, db: Session = Depends(get_db)):
    """Flip a rule between enabled and disabled."""
    return RuleRepository(db).set_enabled(config_id, rule_id, changed_by=CHANGED_BY)
