"""
Entity store: CRUD access to kanban rows keyed by kind and numeric id.

The store wraps a SQLModel ``Session``. Mutations are flushed immediately so
new ids are visible inside the current transaction, but nothing is committed
until the surrounding ``transaction()`` block exits cleanly.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from models.boards import Board, KanbanColumn, Card, CardAssignee
from models.discussions import DiscussionComment
from models.history import HistoryEntry
from settings import logger
from .errors import NotFound, PersistenceFailure
from .types import EntityKind

MODELS: Dict[EntityKind, Type[SQLModel]] = {
    EntityKind.BOARD: Board,
    EntityKind.COLUMN: KanbanColumn,
    EntityKind.CARD: Card,
    EntityKind.ASSIGNEE: CardAssignee,
    EntityKind.DISCUSSION: DiscussionComment,
    EntityKind.HISTORY: HistoryEntry,
}

# Field on each kind that references its owner
PARENT_FIELDS: Dict[EntityKind, str] = {
    EntityKind.BOARD: "kanban_instance",
    EntityKind.COLUMN: "kanban_board",
    EntityKind.CARD: "kanban_column",
    EntityKind.ASSIGNEE: "kanban_card",
    EntityKind.DISCUSSION: "kanban_card",
    EntityKind.HISTORY: "kanban_board",
}


class EntityStore:
    """Row access for boards, columns, cards and their auxiliary records."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self):
        """Commit everything done inside the block, or nothing at all."""
        try:
            yield self
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Transaction rolled back", extra={"error": str(e)})
            raise PersistenceFailure(f"Could not commit changes: {e}") from e
        except Exception:
            self.session.rollback()
            raise

    def get(self, kind: EntityKind, entity_id: int) -> Any:
        entity = self.session.get(MODELS[kind], entity_id)
        if entity is None:
            raise NotFound(kind.value, entity_id)
        return entity

    def lock(self, kind: EntityKind, entity_id: int) -> Any:
        """Read a row for update, bypassing any stale copy held by the session."""
        model = MODELS[kind]
        statement = (
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        entity = self.session.exec(statement).first()
        if entity is None:
            raise NotFound(kind.value, entity_id)
        return entity

    def create(self, kind: EntityKind, fields: Dict[str, Any]) -> Any:
        entity = MODELS[kind](**fields)
        self.session.add(entity)
        self.session.flush()
        return entity

    def update(self, kind: EntityKind, entity_id: int, fields: Dict[str, Any]) -> Any:
        entity = self.get(kind, entity_id)
        for field, value in fields.items():
            setattr(entity, field, value)
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, kind: EntityKind, entity_id: int) -> None:
        entity = self.get(kind, entity_id)
        self.session.delete(entity)
        self.session.flush()

    def find(self, kind: EntityKind, **criteria: Any) -> List[Any]:
        model = MODELS[kind]
        statement = select(model)
        for field, value in criteria.items():
            statement = statement.where(getattr(model, field) == value)
        statement = statement.order_by(model.id)
        return list(self.session.exec(statement).all())

    def find_children(self, kind: EntityKind, parent_id: int) -> List[Any]:
        return self.find(kind, **{PARENT_FIELDS[kind]: parent_id})
