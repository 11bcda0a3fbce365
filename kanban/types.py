from pydantic import BaseModel, Field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional
from datetime import datetime


class EntityKind(str, Enum):
    """Kinds of rows handled by the entity store."""
    BOARD = "board"
    COLUMN = "column"
    CARD = "card"
    ASSIGNEE = "assignee"
    DISCUSSION = "discussion"
    HISTORY = "history"


class ChangeAction(str, Enum):
    """What happened to an entity, as seen by a client state layer."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class HistoryAction(str, Enum):
    """Actions written to the audit history."""
    CREATE_BOARD = "create_board"
    DELETE_BOARD = "delete_board"
    ADD_COLUMN = "add_column"
    UPDATE_COLUMN = "update_column"
    MOVE_COLUMN = "move_column"
    DELETE_COLUMN = "delete_column"
    ADD_CARD = "add_card"
    UPDATE_CARD = "update_card"
    MOVE_CARD = "move_card"
    DELETE_CARD = "delete_card"
    DUPLICATE_CARD = "duplicate_card"
    PUSH_CARD = "push_card"
    ASSIGN_USER = "assign_user"
    UNASSIGN_USER = "unassign_user"
    COMPLETE_CARD = "complete_card"
    UNCOMPLETE_CARD = "uncomplete_card"
    ADD_DISCUSSION_MESSAGE = "add_discussion_message"
    DELETE_DISCUSSION_MESSAGE = "delete_discussion_message"


class RepeatIntervalType(IntEnum):
    """Unit of ``repeat_interval`` on repeating cards."""
    DAY = 0
    WEEK = 1
    MONTH = 2
    YEAR = 3


class ChangeEvent(BaseModel):
    """A committed change, ready to forward to a client state-diffing layer."""
    kind: EntityKind
    id: int
    action: ChangeAction
    board_id: int
    fields: Dict[str, Any] = Field(default_factory=dict)


class CardSnapshot(BaseModel):
    id: int
    kanban_board: int
    kanban_column: int
    title: str
    description: str
    duedate: Optional[datetime] = None
    reminderdate: Optional[datetime] = None
    color: str = ""
    completed: bool = False
    discussion: bool = False
    attachments: bool = False
    createdby: int = 0
    originalid: Optional[int] = None
    repeat_enable: bool = False
    repeat_interval: int = 1
    repeat_interval_type: int = RepeatIntervalType.DAY
    repeat_newduedate: bool = False
    assignees: List[int] = Field(default_factory=list)
    timecreated: Optional[datetime] = None
    timemodified: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ColumnSnapshot(BaseModel):
    id: int
    kanban_board: int
    title: str
    sequence: List[int] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)
    wip_limit: int = 0

    model_config = {"from_attributes": True}


class BoardInfo(BaseModel):
    id: int
    kanban_instance: int
    sequence: List[int] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)
    template: bool = False
    user_id: int = 0
    group_id: int = 0
    locked: bool = False

    model_config = {"from_attributes": True}


class BoardSnapshot(BaseModel):
    """Full structure of a board: columns and cards in display order."""
    board: BoardInfo
    columns: List[ColumnSnapshot] = Field(default_factory=list)
    cards: Dict[int, List[CardSnapshot]] = Field(default_factory=dict)

    def cards_in(self, column_id: int) -> List[CardSnapshot]:
        return self.cards.get(column_id, [])
