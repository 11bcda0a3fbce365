from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class UpdateCardRequest(BaseModel):
    """Schema for updating card details. Only provided fields change."""
    title: Optional[str] = Field(default=None, description="New card title")
    description: Optional[str] = Field(default=None, description="New description")
    duedate: Optional[datetime] = Field(default=None, description="New due date")
    reminderdate: Optional[datetime] = Field(default=None, description="New reminder date")
    color: Optional[str] = Field(default=None, description="New color")
    attachments: Optional[bool] = Field(default=None, description="Whether the card has attachments")
    repeat_enable: Optional[bool] = Field(default=None, description="Create a follow-up card on completion")
    repeat_interval: Optional[int] = Field(default=None, ge=1, description="Number of interval units")
    repeat_interval_type: Optional[int] = Field(default=None, ge=0, le=3, description="0 day, 1 week, 2 month, 3 year")
    repeat_newduedate: Optional[bool] = Field(default=None, description="Advance the due date of the follow-up card")


class MoveCardRequest(BaseModel):
    """Schema for moving a card."""
    after_card_id: int = Field(default=0, description="Card to place it after, 0 for the first position")
    column_id: Optional[int] = Field(default=None, description="Target column, omitted to stay in the current one")


class DuplicateCardRequest(BaseModel):
    """Schema for duplicating a card."""
    after_card_id: Optional[int] = Field(default=None, description="Card to place the copy after, defaults to the source")


class AssignUserRequest(BaseModel):
    """Schema for assigning a user to a card."""
    user_id: int = Field(..., description="User to assign")


class DiscussionMessageRequest(BaseModel):
    """Schema for posting to a card discussion."""
    content: str = Field(..., min_length=1, description="Message text")


class DiscussionMessageResponse(BaseModel):
    """Schema for discussion messages."""
    id: int = Field(..., description="Message ID")
    kanban_card: int = Field(..., description="Card the message belongs to")
    user_id: int = Field(..., description="Author")
    content: str = Field(..., description="Message text")
    timecreated: datetime = Field(..., description="Creation timestamp")

    model_config = {"from_attributes": True}


class PushCardResponse(BaseModel):
    """Schema for the result of pushing a card to other boards."""
    card_ids: List[int] = Field(default_factory=list, description="IDs of the created copies")
