from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from typing import Optional, Dict, Any
from datetime import datetime
from .helper import utcnow


class HistoryEntry(SQLModel, table=True):
    """Immutable audit record of a committed change."""
    __tablename__ = "kanban_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    kanban_board: int = Field(index=True)
    entity_kind: str = Field(index=True)
    entity_id: int = Field(index=True)
    action: str
    actor_id: int = Field(index=True)
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    before: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    after: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
