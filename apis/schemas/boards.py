from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class CreateBoardRequest(BaseModel):
    """Schema for creating a new board."""
    instance_id: int = Field(..., description="Kanban activity instance owning the board")
    template_id: Optional[int] = Field(default=None, description="Board to copy columns and cards from")
    user_id: int = Field(default=0, description="Owner of a personal board, 0 for shared boards")
    group_id: int = Field(default=0, description="Group of a group board, 0 for shared boards")


class AddColumnRequest(BaseModel):
    """Schema for adding a column to a board."""
    after_column_id: int = Field(default=0, description="Column to insert after, 0 for the first position")
    title: str = Field(..., description="Column title")
    options: Dict[str, Any] = Field(default_factory=dict, description="Column options (autoclose, autohide)")
    wip_limit: int = Field(default=0, ge=0, description="Maximum number of cards, 0 for no limit")


class MessageResponse(BaseModel):
    """Generic confirmation message."""
    message: str = Field(..., description="Result message")


class HistoryResponse(BaseModel):
    """Schema for history entries."""
    id: int = Field(..., description="History entry ID")
    kanban_board: int = Field(..., description="Board the entry belongs to")
    entity_kind: str = Field(..., description="Kind of the changed entity")
    entity_id: int = Field(..., description="ID of the changed entity")
    action: str = Field(..., description="Performed action")
    actor_id: int = Field(..., description="User who performed the action")
    timestamp: datetime = Field(..., description="When the action happened")
    before: Optional[Dict[str, Any]] = Field(default=None, description="Values before the change")
    after: Optional[Dict[str, Any]] = Field(default=None, description="Values after the change")

    model_config = {"from_attributes": True}


class ExportResponse(BaseModel):
    """Board contents as a table: one column per board column, one row per card position."""
    columns: List[str] = Field(..., description="Column titles in board order")
    rows: List[List[str]] = Field(..., description="Card titles by position")
