from fastapi import APIRouter, Depends, HTTPException, Query
from kanban.boardmanager import BoardManager
from kanban.types import CardSnapshot
from helpers.auth import get_actor_id
from helpers.kanban import get_board_manager, http_errors, publish_changes
from .schemas.boards import MessageResponse, HistoryResponse
from .schemas.cards import (
    UpdateCardRequest, MoveCardRequest, DuplicateCardRequest, AssignUserRequest,
    DiscussionMessageRequest, DiscussionMessageResponse, PushCardResponse
)
from typing import List

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("/assigned")
async def list_assigned_cards(
    instance_id: int = Query(..., description="Kanban activity instance"),
    user_id: int = Query(..., description="Assigned user"),
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> List[CardSnapshot]:
    """List uncompleted cards assigned to a user within an activity instance."""
    return board_manager.get_uncompleted_assigned_cards(instance_id, user_id)


@router.get("/{card_id}")
async def get_card(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Get card details including assignees."""
    with http_errors():
        return board_manager.get_card(card_id)


@router.put("/{card_id}")
async def update_card(
    card_id: int,
    card_data: UpdateCardRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Update card details (title, description, dates, repeat settings)."""
    with http_errors():
        board_manager.update_card(card_id, card_data.model_dump(exclude_unset=True), actor_id=actor_id)
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card


@router.post("/{card_id}/move")
async def move_card(
    card_id: int,
    move_data: MoveCardRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Move a card after another card, optionally into another column."""
    with http_errors():
        board_manager.move_card(card_id, move_data.after_card_id, move_data.column_id, actor_id=actor_id)
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card


@router.delete("/{card_id}")
async def delete_card(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> MessageResponse:
    """Delete a card with its assignees, discussion and history."""
    with http_errors():
        board_manager.delete_card(card_id, actor_id=actor_id)
    await publish_changes(board_manager)
    return MessageResponse(message=f"Card {card_id} deleted successfully")


@router.post("/{card_id}/duplicate")
async def duplicate_card(
    card_id: int,
    duplicate_data: DuplicateCardRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Duplicate a card within its column."""
    with http_errors():
        new_id = board_manager.duplicate_card(card_id, duplicate_data.after_card_id, actor_id=actor_id)
        card = board_manager.get_card(new_id)
    await publish_changes(board_manager)
    return card


@router.post("/{card_id}/push")
async def push_card(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> PushCardResponse:
    """Copy a card to all other boards of its activity instance."""
    with http_errors():
        card_ids = board_manager.push_card(card_id, actor_id=actor_id)
    await publish_changes(board_manager)
    return PushCardResponse(card_ids=card_ids)


@router.post("/{card_id}/assignees")
async def assign_user(
    card_id: int,
    assign_data: AssignUserRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Assign a user to a card. Assigning twice has no effect."""
    with http_errors():
        board_manager.assign_user(card_id, assign_data.user_id, actor_id=actor_id)
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card


@router.delete("/{card_id}/assignees/{user_id}")
async def unassign_user(
    card_id: int,
    user_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Remove a user from the assignees of a card."""
    with http_errors():
        board_manager.unassign_user(card_id, user_id, actor_id=actor_id)
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card


@router.post("/{card_id}/complete")
async def complete_card(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Mark a card completed."""
    with http_errors():
        board_manager.complete_card(card_id, actor_id=actor_id)
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card


@router.post("/{card_id}/uncomplete")
async def uncomplete_card(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Reopen a completed card."""
    with http_errors():
        board_manager.uncomplete_card(card_id, actor_id=actor_id)
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card


@router.get("/{card_id}/history")
async def get_card_history(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> List[HistoryResponse]:
    """Get the change history of a card."""
    with http_errors():
        entries = board_manager.get_history(card_id)
    return [HistoryResponse.model_validate(entry) for entry in entries]


@router.get("/{card_id}/discussion")
async def get_discussion(
    card_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> List[DiscussionMessageResponse]:
    """Get the discussion messages of a card, oldest first."""
    with http_errors():
        messages = board_manager.get_discussion(card_id)
    return [DiscussionMessageResponse.model_validate(message) for message in messages]


@router.post("/{card_id}/discussion")
async def add_discussion_message(
    card_id: int,
    message_data: DiscussionMessageRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> List[DiscussionMessageResponse]:
    """Post a message to the discussion of a card."""
    with http_errors():
        board_manager.add_discussion_message(card_id, message_data.content, actor_id=actor_id)
        messages = board_manager.get_discussion(card_id)
    await publish_changes(board_manager)
    return [DiscussionMessageResponse.model_validate(message) for message in messages]


@router.delete("/{card_id}/discussion/{message_id}")
async def delete_discussion_message(
    card_id: int,
    message_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> MessageResponse:
    """Delete a discussion message of a card."""
    with http_errors():
        if message_id not in {message.id for message in board_manager.get_discussion(card_id)}:
            raise HTTPException(status_code=404, detail="Message not found")
        board_manager.delete_discussion_message(message_id, actor_id=actor_id)
    await publish_changes(board_manager)
    return MessageResponse(message="Message deleted successfully")
