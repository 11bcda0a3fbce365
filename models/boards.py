from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, Integer, UniqueConstraint
from typing import Optional, Dict, Any
from datetime import datetime
from .helper import utcnow

# Version counters used by the mapper for optimistic concurrency control
_board_version = Column("version", Integer, nullable=False)
_column_version = Column("version", Integer, nullable=False)
_card_version = Column("version", Integer, nullable=False)


class Board(SQLModel, table=True):
    """Kanban board holding an ordered list of columns."""
    __tablename__ = "kanban_board"
    __mapper_args__ = {"version_id_col": _board_version}

    id: Optional[int] = Field(default=None, primary_key=True)
    kanban_instance: int = Field(index=True)
    sequence: str = Field(default="")
    options: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    template: bool = Field(default=False)
    user_id: int = Field(default=0, index=True)
    group_id: int = Field(default=0, index=True)
    locked: bool = Field(default=False)
    timecreated: datetime = Field(default_factory=utcnow)
    timemodified: datetime = Field(default_factory=utcnow)
    version: Optional[int] = Field(default=None, sa_column=_board_version)


class KanbanColumn(SQLModel, table=True):
    """Lane of a board holding an ordered list of cards."""
    __tablename__ = "kanban_column"
    __mapper_args__ = {"version_id_col": _column_version}

    id: Optional[int] = Field(default=None, primary_key=True)
    kanban_board: int = Field(foreign_key="kanban_board.id", index=True)
    title: str = Field(default="")
    sequence: str = Field(default="")
    options: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    wip_limit: int = Field(default=0)
    timecreated: datetime = Field(default_factory=utcnow)
    timemodified: datetime = Field(default_factory=utcnow)
    version: Optional[int] = Field(default=None, sa_column=_column_version)


class Card(SQLModel, table=True):
    """Work item placed in exactly one column."""
    __tablename__ = "kanban_card"
    __mapper_args__ = {"version_id_col": _card_version}

    id: Optional[int] = Field(default=None, primary_key=True)
    kanban_board: int = Field(foreign_key="kanban_board.id", index=True)
    kanban_column: int = Field(foreign_key="kanban_column.id", index=True)
    title: str = Field(default="")
    description: str = Field(default="")
    duedate: Optional[datetime] = Field(default=None)
    reminderdate: Optional[datetime] = Field(default=None)
    color: str = Field(default="")
    completed: bool = Field(default=False, index=True)
    discussion: bool = Field(default=False)
    attachments: bool = Field(default=False)
    createdby: int = Field(default=0)
    originalid: Optional[int] = Field(default=None, index=True)
    repeat_enable: bool = Field(default=False)
    repeat_interval: int = Field(default=1)
    repeat_interval_type: int = Field(default=0)
    repeat_newduedate: bool = Field(default=False)
    timecreated: datetime = Field(default_factory=utcnow)
    timemodified: datetime = Field(default_factory=utcnow)
    version: Optional[int] = Field(default=None, sa_column=_card_version)


class CardAssignee(SQLModel, table=True):
    """Links a user to a card they are assigned to."""
    __tablename__ = "kanban_assignee"
    __table_args__ = (UniqueConstraint("kanban_card", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    kanban_card: int = Field(foreign_key="kanban_card.id", index=True)
    user_id: int = Field(index=True)
