"""
Best-effort audit trail of committed kanban mutations.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.history import HistoryEntry
from settings import logger, settings
from .types import EntityKind, HistoryAction


class HistoryRecorder:
    """Appends immutable history entries outside the structural transaction."""

    def __init__(self, session: Session, enabled: Optional[bool] = None):
        self.session = session
        self.enabled = settings.HISTORY_ENABLED if enabled is None else enabled

    def record(
        self,
        entity_kind: EntityKind,
        entity_id: int,
        action: HistoryAction,
        actor_id: int,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        *,
        board_id: int,
    ) -> Optional[HistoryEntry]:
        """Write one entry. Failures are logged and never raised."""
        if not self.enabled:
            return None

        entry = HistoryEntry(
            kanban_board=board_id,
            entity_kind=entity_kind.value,
            entity_id=entity_id,
            action=action.value,
            actor_id=actor_id,
            before=before,
            after=after,
        )
        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning("Failed to record history entry", extra={
                "entity_kind": entity_kind.value,
                "entity_id": entity_id,
                "history_action": action.value,
                "error": str(e)
            })
            return None
        return entry

    def for_entity(self, entity_kind: EntityKind, entity_id: int) -> List[HistoryEntry]:
        statement = (
            select(HistoryEntry)
            .where(HistoryEntry.entity_kind == entity_kind.value)
            .where(HistoryEntry.entity_id == entity_id)
            .order_by(HistoryEntry.timestamp, HistoryEntry.id)
        )
        return list(self.session.exec(statement).all())

    def for_board(self, board_id: int) -> List[HistoryEntry]:
        statement = (
            select(HistoryEntry)
            .where(HistoryEntry.kanban_board == board_id)
            .order_by(HistoryEntry.timestamp, HistoryEntry.id)
        )
        return list(self.session.exec(statement).all())
