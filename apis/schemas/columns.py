from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class UpdateColumnRequest(BaseModel):
    """Schema for updating a column."""
    title: Optional[str] = Field(default=None, description="New column title")
    options: Optional[Dict[str, Any]] = Field(default=None, description="Options to merge into the current ones")
    wip_limit: Optional[int] = Field(default=None, ge=0, description="New card limit, 0 for no limit")


class MoveColumnRequest(BaseModel):
    """Schema for moving a column within its board."""
    after_column_id: int = Field(default=0, description="Column to place it after, 0 for the first position")


class AddCardRequest(BaseModel):
    """Schema for adding a card to a column."""
    after_card_id: int = Field(default=0, description="Card to insert after, 0 for the first position")
    title: str = Field(..., description="Card title")
    description: str = Field(default="", description="Card description")
    duedate: Optional[datetime] = Field(default=None, description="Due date")
    reminderdate: Optional[datetime] = Field(default=None, description="Reminder date")
    color: str = Field(default="", description="Card color")
