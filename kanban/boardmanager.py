"""
Board manager: structural and field-level operations on kanban boards.

Every mutating operation runs as one unit of work:

    validate -> lock affected rows -> compute new sequences and field deltas
    -> commit -> record history -> return

Rows are locked in a fixed order (board, then columns by ascending id) so
concurrent operations on the same board cannot deadlock each other. Change
events collected during an operation are published only once its
transaction has committed; read them with ``pop_changes()``.
"""

import calendar
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlmodel import Session, select

from models.boards import Board, Card, CardAssignee
from models.discussions import DiscussionComment
from models.helper import as_utc, utcnow
from models.history import HistoryEntry
from settings import logger, settings
from . import sequence
from .errors import ColumnFull, InvalidReference, KanbanError
from .history import HistoryRecorder
from .store import EntityStore
from .types import (
    BoardInfo, BoardSnapshot, CardSnapshot, ChangeAction, ChangeEvent, ColumnSnapshot,
    EntityKind, HistoryAction, RepeatIntervalType,
)

COLUMN_FIELDS = {"title", "options", "wip_limit"}

CARD_FIELDS = {
    "title", "description", "duedate", "reminderdate", "color", "completed", "attachments",
    "repeat_enable", "repeat_interval", "repeat_interval_type", "repeat_newduedate",
}

# Completion has its own operations so repeating cards are handled
UPDATABLE_CARD_FIELDS = CARD_FIELDS - {"completed"}

# Values carried over when a card is cloned into a new row
CARD_COPY_FIELDS = CARD_FIELDS - {"attachments"}

DATE_FIELDS = ("duedate", "reminderdate")


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_duedate(duedate: Optional[datetime], interval: int, interval_type: int) -> datetime:
    """Due date of the next occurrence of a repeating card."""
    base = duedate or utcnow()
    interval = max(1, interval)
    if interval_type == RepeatIntervalType.WEEK:
        return base + timedelta(weeks=interval)
    if interval_type == RepeatIntervalType.MONTH:
        return add_months(base, interval)
    if interval_type == RepeatIntervalType.YEAR:
        return add_months(base, 12 * interval)
    return base + timedelta(days=interval)


class BoardManager:
    """Orchestrates board, column and card changes on top of the entity store."""

    def __init__(
        self,
        session: Session,
        history: Optional[HistoryRecorder] = None,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.session = session
        self.store = EntityStore(session)
        self.history = history if history is not None else HistoryRecorder(session)
        self.on_warning = on_warning
        self.changes: List[ChangeEvent] = []
        self.warnings: List[str] = []
        self._pending_changes: List[ChangeEvent] = []
        self._pending_history: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self):
        self._pending_changes = []
        self._pending_history = []
        try:
            with self.store.transaction():
                yield
        except KanbanError:
            self._pending_changes = []
            self._pending_history = []
            raise

        self.changes.extend(self._pending_changes)
        history, self._pending_history = self._pending_history, []
        self._pending_changes = []
        for entry in history:
            if self.history.record(**entry) is None and self.history.enabled:
                self._warn(
                    f"History of {entry['entity_kind'].value} {entry['entity_id']} "
                    f"was not recorded for {entry['action'].value}"
                )

    def pop_changes(self) -> List[ChangeEvent]:
        """Return the change events of all committed operations since the last call."""
        changes, self.changes = self.changes, []
        return changes

    def pop_warnings(self) -> List[str]:
        """Return the non-fatal problems of committed operations since the last call."""
        warnings, self.warnings = self.warnings, []
        return warnings

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        if self.on_warning is not None:
            self.on_warning(message)

    def _emit(self, kind: EntityKind, entity_id: int, action: ChangeAction, board_id: int, **fields: Any):
        self._pending_changes.append(
            ChangeEvent(kind=kind, id=entity_id, action=action, board_id=board_id, fields=fields)
        )

    def _record(
        self,
        kind: EntityKind,
        entity_id: int,
        action: HistoryAction,
        actor_id: int,
        board_id: int,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._pending_history.append({
            "entity_kind": kind,
            "entity_id": entity_id,
            "action": action,
            "actor_id": actor_id,
            "before": before,
            "after": after,
            "board_id": board_id,
        })

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_fields(fields: Dict[str, Any], allowed: set, kind: str) -> Dict[str, Any]:
        unknown = set(fields) - allowed
        if unknown:
            raise InvalidReference(f"Cannot set {', '.join(sorted(unknown))} on a {kind}")
        return dict(fields)

    @classmethod
    def _card_fields(cls, fields: Dict[str, Any], allowed: set) -> Dict[str, Any]:
        data = cls._check_fields(fields, allowed, "card")
        for field in DATE_FIELDS:
            if field in data:
                data[field] = as_utc(data[field])
        return data

    @staticmethod
    def _check_reference(ids: List[int], after_id: int, kind: str) -> None:
        if after_id != sequence.HEAD and after_id not in ids:
            raise InvalidReference(f"{kind} {after_id} is not part of the addressed parent")

    @staticmethod
    def _check_capacity(column, ids: List[int]) -> None:
        if column.wip_limit and len(ids) >= column.wip_limit:
            raise ColumnFull(f"Column {column.id} already holds {len(ids)} of {column.wip_limit} cards")

    @staticmethod
    def _autoclose(column) -> bool:
        return bool((column.options or {}).get("autoclose"))

    @staticmethod
    def _dump(entity, include: Optional[set] = None) -> Dict[str, Any]:
        return entity.model_dump(mode="json", include=include, exclude={"version"})

    def _set_sequence(self, kind: EntityKind, entity, ids: List[int]) -> None:
        self.store.update(kind, entity.id, {
            "sequence": sequence.to_persisted(ids),
            "timemodified": utcnow(),
        })
        self._emit(kind, entity.id, ChangeAction.UPDATED,
                   entity.id if kind == EntityKind.BOARD else entity.kanban_board, sequence=list(ids))

    def _create_card(self, column, fields: Dict[str, Any], actor_id: int, **extra: Any) -> Card:
        data = dict(fields)
        if self._autoclose(column):
            data["completed"] = True
        card = self.store.create(EntityKind.CARD, {
            **data,
            **extra,
            "kanban_board": column.kanban_board,
            "kanban_column": column.id,
            "createdby": actor_id,
        })
        self._emit(EntityKind.CARD, card.id, ChangeAction.CREATED, column.kanban_board, **self._dump(card))
        return card

    def _copy_fields(self, card: Card) -> Dict[str, Any]:
        fields = {field: getattr(card, field) for field in CARD_COPY_FIELDS}
        for field in DATE_FIELDS:
            fields[field] = as_utc(fields[field])
        return fields

    def _delete_card_rows(self, card: Card) -> None:
        """Delete a card with its assignees, discussion and history. Sequences are left to the caller."""
        for assignee in self.store.find_children(EntityKind.ASSIGNEE, card.id):
            self.store.delete(EntityKind.ASSIGNEE, assignee.id)
        for message in self.store.find_children(EntityKind.DISCUSSION, card.id):
            self.store.delete(EntityKind.DISCUSSION, message.id)
        self._delete_history(EntityKind.CARD, card.id)
        card_id, board_id = card.id, card.kanban_board
        self.store.delete(EntityKind.CARD, card_id)
        self._emit(EntityKind.CARD, card_id, ChangeAction.DELETED, board_id)

    def _delete_history(self, kind: EntityKind, entity_id: int) -> None:
        for entry in self.store.find(EntityKind.HISTORY, entity_kind=kind.value, entity_id=entity_id):
            self.store.delete(EntityKind.HISTORY, entry.id)

    def _assignees(self, card_id: int) -> List[int]:
        return [assignee.user_id for assignee in self.store.find_children(EntityKind.ASSIGNEE, card_id)]

    def _card_snapshot(self, card: Card) -> CardSnapshot:
        return CardSnapshot(**{**card.model_dump(), "assignees": self._assignees(card.id)})

    @staticmethod
    def _column_snapshot(column) -> ColumnSnapshot:
        return ColumnSnapshot(**{
            **column.model_dump(),
            "options": column.options or {},
            "sequence": sequence.from_persisted(column.sequence),
        })

    @staticmethod
    def _board_info(board: Board) -> BoardInfo:
        return BoardInfo(**{
            **board.model_dump(),
            "options": board.options or {},
            "sequence": sequence.from_persisted(board.sequence),
        })

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def load_board(self, board_id: int) -> BoardSnapshot:
        """Read the board with its columns and cards in display order."""
        self.session.expire_all()
        board = self.store.get(EntityKind.BOARD, board_id)
        snapshot = BoardSnapshot(board=self._board_info(board))
        for column_id in sequence.from_persisted(board.sequence):
            column = self.store.get(EntityKind.COLUMN, column_id)
            snapshot.columns.append(self._column_snapshot(column))
            snapshot.cards[column_id] = [
                self._card_snapshot(self.store.get(EntityKind.CARD, card_id))
                for card_id in sequence.from_persisted(column.sequence)
            ]
        return snapshot

    def get_board(self, board_id: int) -> BoardInfo:
        self.session.expire_all()
        return self._board_info(self.store.get(EntityKind.BOARD, board_id))

    def get_column(self, column_id: int) -> ColumnSnapshot:
        self.session.expire_all()
        return self._column_snapshot(self.store.get(EntityKind.COLUMN, column_id))

    def get_card(self, card_id: int) -> CardSnapshot:
        self.session.expire_all()
        return self._card_snapshot(self.store.get(EntityKind.CARD, card_id))

    def get_boards(self, instance_id: int) -> List[BoardInfo]:
        self.session.expire_all()
        return [self._board_info(board) for board in self.store.find_children(EntityKind.BOARD, instance_id)]

    def get_discussion(self, card_id: int) -> List[DiscussionComment]:
        self.store.get(EntityKind.CARD, card_id)
        return self.store.find_children(EntityKind.DISCUSSION, card_id)

    def get_history(self, card_id: int) -> List[HistoryEntry]:
        self.store.get(EntityKind.CARD, card_id)
        return self.history.for_entity(EntityKind.CARD, card_id)

    def get_board_history(self, board_id: int) -> List[HistoryEntry]:
        self.store.get(EntityKind.BOARD, board_id)
        return self.history.for_board(board_id)

    def get_uncompleted_assigned_cards(self, instance_id: int, user_id: int) -> List[CardSnapshot]:
        """Uncompleted cards assigned to a user on the non-template boards of an instance."""
        statement = (
            select(Card)
            .join(CardAssignee, CardAssignee.kanban_card == Card.id)
            .join(Board, Board.id == Card.kanban_board)
            .where(Board.kanban_instance == instance_id)
            .where(Board.template == False)  # noqa: E712
            .where(CardAssignee.user_id == user_id)
            .where(Card.completed == False)  # noqa: E712
            .order_by(Card.id)
        )
        return [self._card_snapshot(card) for card in self.session.exec(statement).all()]

    def get_column_titles(self, board_id: int) -> List[str]:
        return [column.title for column in self.load_board(board_id).columns]

    def get_card_titles(self, board_id: int) -> List[List[str]]:
        """Export grid: row i holds the i-th card title of every column."""
        snapshot = self.load_board(board_id)
        columns = [snapshot.cards_in(column.id) for column in snapshot.columns]
        depth = max((len(cards) for cards in columns), default=0)
        return [
            [cards[row].title if row < len(cards) else "" for cards in columns]
            for row in range(depth)
        ]

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def create_board(
        self,
        instance_id: int,
        template_id: Optional[int] = None,
        *,
        actor_id: int,
        user_id: int = 0,
        group_id: int = 0,
    ) -> int:
        """Create a board with default columns, or as a clone of a template board."""
        with self._operation():
            board = self.store.create(EntityKind.BOARD, {
                "kanban_instance": instance_id,
                "user_id": user_id,
                "group_id": group_id,
            })
            board_id = board.id
            column_ids = []

            if template_id:
                template = self.store.get(EntityKind.BOARD, template_id)
                for template_column_id in sequence.from_persisted(template.sequence):
                    template_column = self.store.get(EntityKind.COLUMN, template_column_id)
                    column = self.store.create(EntityKind.COLUMN, {
                        "kanban_board": board_id,
                        "title": template_column.title,
                        "options": dict(template_column.options or {}),
                        "wip_limit": template_column.wip_limit,
                    })
                    card_ids = []
                    for template_card_id in sequence.from_persisted(template_column.sequence):
                        template_card = self.store.get(EntityKind.CARD, template_card_id)
                        card = self.store.create(EntityKind.CARD, {
                            **self._copy_fields(template_card),
                            "kanban_board": board_id,
                            "kanban_column": column.id,
                            "createdby": actor_id,
                        })
                        card_ids.append(card.id)
                    self.store.update(EntityKind.COLUMN, column.id, {"sequence": sequence.to_persisted(card_ids)})
                    column_ids.append(column.id)
                self.store.update(EntityKind.BOARD, board_id, {"options": dict(template.options or {})})
            else:
                for title in settings.default_columns_list:
                    column = self.store.create(EntityKind.COLUMN, {"kanban_board": board_id, "title": title})
                    column_ids.append(column.id)

            self.store.update(EntityKind.BOARD, board_id, {"sequence": sequence.to_persisted(column_ids)})
            self._emit(EntityKind.BOARD, board_id, ChangeAction.CREATED, board_id,
                       kanban_instance=instance_id, sequence=column_ids)
            self._record(EntityKind.BOARD, board_id, HistoryAction.CREATE_BOARD, actor_id, board_id,
                         after={"template": template_id, "columns": column_ids})

        logger.info("Board created", extra={
            "board_id": board_id,
            "kanban_instance": instance_id,
            "template_id": template_id
        })
        return board_id

    def delete_board(self, board_id: int, *, actor_id: int) -> None:
        """Delete a board with all of its columns, cards and records."""
        with self._operation():
            board = self.store.lock(EntityKind.BOARD, board_id)
            for column in self.store.find_children(EntityKind.COLUMN, board_id):
                for card in self.store.find(EntityKind.CARD, kanban_column=column.id):
                    self._delete_card_rows(card)
                column_id = column.id
                self.store.delete(EntityKind.COLUMN, column_id)
                self._emit(EntityKind.COLUMN, column_id, ChangeAction.DELETED, board_id)
            for entry in self.store.find_children(EntityKind.HISTORY, board_id):
                self.store.delete(EntityKind.HISTORY, entry.id)
            self.store.delete(EntityKind.BOARD, board.id)
            self._emit(EntityKind.BOARD, board_id, ChangeAction.DELETED, board_id)

        logger.info("Board deleted", extra={"board_id": board_id, "actor_id": actor_id})

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def add_column(self, board_id: int, after_column_id: int, fields: Dict[str, Any], *, actor_id: int) -> int:
        data = self._check_fields(fields, COLUMN_FIELDS, "column")
        with self._operation():
            board = self.store.lock(EntityKind.BOARD, board_id)
            ids = sequence.from_persisted(board.sequence)
            self._check_reference(ids, after_column_id, "column")
            column = self.store.create(EntityKind.COLUMN, {**data, "kanban_board": board_id})
            column_id = column.id
            self._set_sequence(EntityKind.BOARD, board, sequence.insert_after(ids, column_id, after_column_id))
            self._emit(EntityKind.COLUMN, column_id, ChangeAction.CREATED, board_id,
                       **{**self._dump(column), "sequence": []})
            self._record(EntityKind.COLUMN, column_id, HistoryAction.ADD_COLUMN, actor_id, board_id,
                         after=self._dump(column, COLUMN_FIELDS))
        return column_id

    def update_column(self, column_id: int, fields: Dict[str, Any], *, actor_id: int) -> None:
        data = self._check_fields(fields, COLUMN_FIELDS, "column")
        with self._operation():
            column = self.store.lock(EntityKind.COLUMN, column_id)
            before = self._dump(column, set(data))
            if "options" in data:
                data["options"] = {**(column.options or {}), **(data["options"] or {})}
            if "wip_limit" in data:
                data["wip_limit"] = max(0, int(data["wip_limit"] or 0))
            data["timemodified"] = utcnow()
            column = self.store.update(EntityKind.COLUMN, column_id, data)
            after = self._dump(column, set(before))
            self._emit(EntityKind.COLUMN, column_id, ChangeAction.UPDATED, column.kanban_board, **after)
            self._record(EntityKind.COLUMN, column_id, HistoryAction.UPDATE_COLUMN, actor_id,
                         column.kanban_board, before=before, after=after)

    def move_column(self, column_id: int, after_column_id: int, *, actor_id: int) -> None:
        with self._operation():
            column = self.store.get(EntityKind.COLUMN, column_id)
            board = self.store.lock(EntityKind.BOARD, column.kanban_board)
            ids = sequence.from_persisted(board.sequence)
            self._check_reference(ids, after_column_id, "column")
            moved = sequence.move_after(ids, column_id, after_column_id)
            if moved != ids:
                self._set_sequence(EntityKind.BOARD, board, moved)
            self._record(EntityKind.COLUMN, column_id, HistoryAction.MOVE_COLUMN, actor_id, board.id,
                         before={"sequence": ids}, after={"sequence": moved})

    def delete_column(self, column_id: int, *, actor_id: int) -> None:
        with self._operation():
            column = self.store.get(EntityKind.COLUMN, column_id)
            board = self.store.lock(EntityKind.BOARD, column.kanban_board)
            column = self.store.lock(EntityKind.COLUMN, column_id)
            board_id = board.id
            card_ids = sequence.from_persisted(column.sequence)
            before = {**self._dump(column, COLUMN_FIELDS), "cards": card_ids}

            for card in self.store.find(EntityKind.CARD, kanban_column=column_id):
                self._delete_card_rows(card)
            self._delete_history(EntityKind.COLUMN, column_id)
            self.store.delete(EntityKind.COLUMN, column_id)
            self._set_sequence(EntityKind.BOARD, board,
                               sequence.remove(sequence.from_persisted(board.sequence), column_id))
            self._emit(EntityKind.COLUMN, column_id, ChangeAction.DELETED, board_id)
            self._record(EntityKind.COLUMN, column_id, HistoryAction.DELETE_COLUMN, actor_id, board_id,
                         before=before)

        logger.info("Column deleted", extra={
            "column_id": column_id,
            "board_id": board_id,
            "deleted_cards": len(card_ids)
        })

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def add_card(self, column_id: int, after_card_id: int, fields: Dict[str, Any], *, actor_id: int) -> int:
        data = self._card_fields(fields, CARD_FIELDS)
        with self._operation():
            column = self.store.lock(EntityKind.COLUMN, column_id)
            ids = sequence.from_persisted(column.sequence)
            self._check_reference(ids, after_card_id, "card")
            self._check_capacity(column, ids)
            card = self._create_card(column, data, actor_id)
            card_id = card.id
            self._set_sequence(EntityKind.COLUMN, column, sequence.insert_after(ids, card_id, after_card_id))
            self._record(EntityKind.CARD, card_id, HistoryAction.ADD_CARD, actor_id, column.kanban_board,
                         after=self._dump(card, CARD_FIELDS | {"kanban_column"}))
        return card_id

    def update_card(self, card_id: int, fields: Dict[str, Any], *, actor_id: int) -> None:
        data = self._card_fields(fields, UPDATABLE_CARD_FIELDS)
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            before = self._dump(card, set(data))
            data["timemodified"] = utcnow()
            card = self.store.update(EntityKind.CARD, card_id, data)
            after = self._dump(card, set(before))
            self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board, **after)
            self._record(EntityKind.CARD, card_id, HistoryAction.UPDATE_CARD, actor_id, card.kanban_board,
                         before=before, after=after)

    def move_card(
        self,
        card_id: int,
        after_card_id: int,
        target_column_id: Optional[int] = None,
        *,
        actor_id: int,
    ) -> None:
        """Move a card after another card, optionally into a different column of the same board."""
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            source_id = card.kanban_column

            if not target_column_id or target_column_id == source_id:
                column = self.store.lock(EntityKind.COLUMN, source_id)
                ids = sequence.from_persisted(column.sequence)
                self._check_reference(ids, after_card_id, "card")
                moved = sequence.move_after(ids, card_id, after_card_id)
                if moved != ids:
                    self._set_sequence(EntityKind.COLUMN, column, moved)
                self._record(EntityKind.CARD, card_id, HistoryAction.MOVE_CARD, actor_id, card.kanban_board,
                             before={"kanban_column": source_id, "sequence": ids},
                             after={"kanban_column": source_id, "sequence": moved})
                return

            locked = {
                column_id: self.store.lock(EntityKind.COLUMN, column_id)
                for column_id in sorted((source_id, target_column_id))
            }
            source, target = locked[source_id], locked[target_column_id]
            if target.kanban_board != card.kanban_board:
                raise InvalidReference(f"Column {target_column_id} belongs to another board")
            if after_card_id == card_id:
                raise InvalidReference(f"Card {card_id} cannot be moved relative to itself")

            source_ids = sequence.from_persisted(source.sequence)
            target_ids = sequence.from_persisted(target.sequence)
            if card_id not in source_ids:
                raise InvalidReference(f"Card {card_id} is not part of column {source_id}")
            self._check_reference(target_ids, after_card_id, "card")
            self._check_capacity(target, target_ids)

            self._set_sequence(EntityKind.COLUMN, source, sequence.remove(source_ids, card_id))
            self._set_sequence(EntityKind.COLUMN, target, sequence.insert_after(target_ids, card_id, after_card_id))

            changed = {"kanban_column": target_column_id, "timemodified": utcnow()}
            if self._autoclose(target) and not card.completed:
                changed["completed"] = True
            self.store.update(EntityKind.CARD, card_id, changed)
            self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board,
                       **{key: value for key, value in changed.items() if key != "timemodified"})
            self._record(EntityKind.CARD, card_id, HistoryAction.MOVE_CARD, actor_id, card.kanban_board,
                         before={"kanban_column": source_id},
                         after={"kanban_column": target_column_id, "after": after_card_id})

        logger.debug("Card moved to another column", extra={
            "card_id": card_id,
            "source_column": source_id,
            "target_column": target_column_id
        })

    def delete_card(self, card_id: int, *, actor_id: int) -> None:
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            column = self.store.lock(EntityKind.COLUMN, card.kanban_column)
            board_id = card.kanban_board
            before = self._dump(card, CARD_FIELDS | {"kanban_column"})
            self._delete_card_rows(card)
            self._set_sequence(EntityKind.COLUMN, column,
                               sequence.remove(sequence.from_persisted(column.sequence), card_id))
            self._record(EntityKind.CARD, card_id, HistoryAction.DELETE_CARD, actor_id, board_id, before=before)

    def duplicate_card(self, card_id: int, after_card_id: Optional[int] = None, *, actor_id: int) -> int:
        """Clone a card into the same column, right after the source unless told otherwise."""
        with self._operation():
            source = self.store.get(EntityKind.CARD, card_id)
            column = self.store.lock(EntityKind.COLUMN, source.kanban_column)
            ids = sequence.from_persisted(column.sequence)
            after = card_id if after_card_id is None else after_card_id
            self._check_reference(ids, after, "card")
            self._check_capacity(column, ids)

            card = self._create_card(column, self._copy_fields(source), actor_id)
            new_id = card.id
            for user_id in self._assignees(card_id):
                self.store.create(EntityKind.ASSIGNEE, {"kanban_card": new_id, "user_id": user_id})
            self._set_sequence(EntityKind.COLUMN, column, sequence.insert_after(ids, new_id, after))
            self._record(EntityKind.CARD, new_id, HistoryAction.DUPLICATE_CARD, actor_id, column.kanban_board,
                         after={"source": card_id, "kanban_column": column.id})
        return new_id

    def push_card(self, card_id: int, *, actor_id: int) -> List[int]:
        """Copy a card to the tail of the matching column on every other board of the instance."""
        created = []
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            board = self.store.get(EntityKind.BOARD, card.kanban_board)
            title = self.store.get(EntityKind.COLUMN, card.kanban_column).title

            for target_board in self.store.find_children(EntityKind.BOARD, board.kanban_instance):
                if target_board.id == board.id or target_board.template:
                    continue
                column_ids = sequence.from_persisted(target_board.sequence)
                if not column_ids:
                    logger.warning("Skipping board without columns", extra={"board_id": target_board.id})
                    continue
                columns = [self.store.lock(EntityKind.COLUMN, column_id) for column_id in sorted(column_ids)]
                by_id = {column.id: column for column in columns}
                matching = [by_id[column_id] for column_id in column_ids if by_id[column_id].title == title]
                column = matching[0] if matching else by_id[column_ids[0]]

                ids = sequence.from_persisted(column.sequence)
                copy = self._create_card(column, self._copy_fields(card), actor_id, originalid=card_id)
                self._set_sequence(EntityKind.COLUMN, column, sequence.insert_after(ids, copy.id, sequence.last(ids)))
                created.append(copy.id)

            self._record(EntityKind.CARD, card_id, HistoryAction.PUSH_CARD, actor_id, board.id,
                         after={"copies": list(created)})
        return created

    # ------------------------------------------------------------------
    # Card fields
    # ------------------------------------------------------------------

    def assign_user(self, card_id: int, user_id: int, *, actor_id: int) -> None:
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            assignees = self._assignees(card_id)
            if user_id in assignees:
                return
            self.store.create(EntityKind.ASSIGNEE, {"kanban_card": card_id, "user_id": user_id})
            self.store.update(EntityKind.CARD, card_id, {"timemodified": utcnow()})
            self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board,
                       assignees=assignees + [user_id])
            self._record(EntityKind.CARD, card_id, HistoryAction.ASSIGN_USER, actor_id, card.kanban_board,
                         after={"user_id": user_id})

    def unassign_user(self, card_id: int, user_id: int, *, actor_id: int) -> None:
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            rows = self.store.find(EntityKind.ASSIGNEE, kanban_card=card_id, user_id=user_id)
            if not rows:
                return
            for row in rows:
                self.store.delete(EntityKind.ASSIGNEE, row.id)
            self.store.update(EntityKind.CARD, card_id, {"timemodified": utcnow()})
            self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board,
                       assignees=self._assignees(card_id))
            self._record(EntityKind.CARD, card_id, HistoryAction.UNASSIGN_USER, actor_id, card.kanban_board,
                         before={"user_id": user_id})

    def complete_card(self, card_id: int, *, actor_id: int) -> Optional[int]:
        """Mark a card completed. Returns the id of the follow-up card for repeating cards."""
        repeated_id = None
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            if card.completed:
                return None
            changed = {"completed": True, "timemodified": utcnow()}
            if card.repeat_enable:
                changed["repeat_enable"] = False
                repeated_id = self._repeat_card(card, actor_id)
            self.store.update(EntityKind.CARD, card_id, changed)
            self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board, completed=True)
            self._record(EntityKind.CARD, card_id, HistoryAction.COMPLETE_CARD, actor_id, card.kanban_board,
                         before={"completed": False}, after={"completed": True})
        return repeated_id

    def _repeat_card(self, card: Card, actor_id: int) -> int:
        column = self.store.lock(EntityKind.COLUMN, card.kanban_column)
        ids = sequence.from_persisted(column.sequence)
        fields = self._copy_fields(card)
        fields["completed"] = False
        if card.repeat_newduedate:
            fields["duedate"] = next_duedate(as_utc(card.duedate), card.repeat_interval, card.repeat_interval_type)
        follow_up = self.store.create(EntityKind.CARD, {
            **fields,
            "kanban_board": card.kanban_board,
            "kanban_column": column.id,
            "createdby": actor_id,
        })
        follow_up_id = follow_up.id
        for user_id in self._assignees(card.id):
            self.store.create(EntityKind.ASSIGNEE, {"kanban_card": follow_up_id, "user_id": user_id})
        self._set_sequence(EntityKind.COLUMN, column, sequence.insert_after(ids, follow_up_id, card.id))
        self._emit(EntityKind.CARD, follow_up_id, ChangeAction.CREATED, card.kanban_board,
                   **self._dump(follow_up))
        self._record(EntityKind.CARD, follow_up_id, HistoryAction.ADD_CARD, actor_id, card.kanban_board,
                     after={"repeated_from": card.id, "duedate": self._dump(follow_up, {"duedate"})["duedate"]})
        return follow_up_id

    def uncomplete_card(self, card_id: int, *, actor_id: int) -> None:
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            if not card.completed:
                return
            self.store.update(EntityKind.CARD, card_id, {"completed": False, "timemodified": utcnow()})
            self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board, completed=False)
            self._record(EntityKind.CARD, card_id, HistoryAction.UNCOMPLETE_CARD, actor_id, card.kanban_board,
                         before={"completed": True}, after={"completed": False})

    # ------------------------------------------------------------------
    # Discussion
    # ------------------------------------------------------------------

    def add_discussion_message(self, card_id: int, content: str, *, actor_id: int) -> int:
        content = (content or "").strip()
        if not content:
            raise KanbanError("Discussion messages must not be empty", "emptymessage")
        with self._operation():
            card = self.store.get(EntityKind.CARD, card_id)
            message = self.store.create(EntityKind.DISCUSSION, {
                "kanban_card": card_id,
                "user_id": actor_id,
                "content": content,
            })
            message_id = message.id
            if not card.discussion:
                self.store.update(EntityKind.CARD, card_id, {"discussion": True})
                self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board, discussion=True)
            self._emit(EntityKind.DISCUSSION, message_id, ChangeAction.CREATED, card.kanban_board,
                       **self._dump(message))
            self._record(EntityKind.CARD, card_id, HistoryAction.ADD_DISCUSSION_MESSAGE, actor_id,
                         card.kanban_board, after={"message_id": message_id})
        return message_id

    def delete_discussion_message(self, message_id: int, *, actor_id: int) -> None:
        with self._operation():
            message = self.store.get(EntityKind.DISCUSSION, message_id)
            card = self.store.get(EntityKind.CARD, message.kanban_card)
            card_id = card.id
            self.store.delete(EntityKind.DISCUSSION, message_id)
            self._emit(EntityKind.DISCUSSION, message_id, ChangeAction.DELETED, card.kanban_board)
            if not self.store.find_children(EntityKind.DISCUSSION, card_id):
                self.store.update(EntityKind.CARD, card_id, {"discussion": False})
                self._emit(EntityKind.CARD, card_id, ChangeAction.UPDATED, card.kanban_board, discussion=False)
            self._record(EntityKind.CARD, card_id, HistoryAction.DELETE_DISCUSSION_MESSAGE, actor_id,
                         card.kanban_board, before={"message_id": message_id})
