from fastapi import APIRouter, Depends
from kanban.boardmanager import BoardManager
from kanban.types import CardSnapshot, ColumnSnapshot
from helpers.auth import get_actor_id
from helpers.kanban import get_board_manager, http_errors, publish_changes
from .schemas.boards import MessageResponse
from .schemas.columns import UpdateColumnRequest, MoveColumnRequest, AddCardRequest

router = APIRouter(prefix="/columns", tags=["columns"])


@router.get("/{column_id}")
async def get_column(
    column_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> ColumnSnapshot:
    """Get a column with its card order."""
    with http_errors():
        return board_manager.get_column(column_id)


@router.put("/{column_id}")
async def update_column(
    column_id: int,
    column_data: UpdateColumnRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> ColumnSnapshot:
    """Update title, options or card limit of a column."""
    with http_errors():
        board_manager.update_column(column_id, column_data.model_dump(exclude_unset=True), actor_id=actor_id)
        column = board_manager.get_column(column_id)
    await publish_changes(board_manager)
    return column


@router.post("/{column_id}/move")
async def move_column(
    column_id: int,
    move_data: MoveColumnRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> ColumnSnapshot:
    """Move a column after another column of the same board."""
    with http_errors():
        board_manager.move_column(column_id, move_data.after_column_id, actor_id=actor_id)
        column = board_manager.get_column(column_id)
    await publish_changes(board_manager)
    return column


@router.delete("/{column_id}")
async def delete_column(
    column_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> MessageResponse:
    """Delete a column and all of its cards."""
    with http_errors():
        board_manager.delete_column(column_id, actor_id=actor_id)
    await publish_changes(board_manager)
    return MessageResponse(message="Column deleted successfully")


@router.post("/{column_id}/cards")
async def add_card(
    column_id: int,
    card_data: AddCardRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> CardSnapshot:
    """Add a card after another card of the column (0 for the first position)."""
    with http_errors():
        card_id = board_manager.add_card(
            column_id,
            card_data.after_card_id,
            card_data.model_dump(exclude={"after_card_id"}),
            actor_id=actor_id
        )
        card = board_manager.get_card(card_id)
    await publish_changes(board_manager)
    return card
