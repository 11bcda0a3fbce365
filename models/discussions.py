from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from .helper import utcnow


class DiscussionComment(SQLModel, table=True):
    """Message posted in the discussion of a card."""
    __tablename__ = "kanban_discussion_comment"

    id: Optional[int] = Field(default=None, primary_key=True)
    kanban_card: int = Field(foreign_key="kanban_card.id", index=True)
    user_id: int = Field(index=True)
    content: str
    timecreated: datetime = Field(default_factory=utcnow, index=True)
