from fastapi import APIRouter, Depends, Query
from kanban.boardmanager import BoardManager
from kanban.types import BoardInfo, BoardSnapshot, ColumnSnapshot
from helpers.auth import get_actor_id
from helpers.kanban import get_board_manager, http_errors, publish_changes
from .schemas.boards import (
    CreateBoardRequest, AddColumnRequest, MessageResponse, HistoryResponse, ExportResponse
)
from typing import List

router = APIRouter(prefix="/boards", tags=["boards"])


@router.get("")
async def list_boards(
    instance_id: int = Query(..., description="Kanban activity instance"),
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> List[BoardInfo]:
    """List the boards of an activity instance."""
    return board_manager.get_boards(instance_id)


@router.post("")
async def create_board(
    board_data: CreateBoardRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> BoardSnapshot:
    """Create a board with default columns or from a template board."""
    with http_errors():
        board_id = board_manager.create_board(
            board_data.instance_id,
            board_data.template_id,
            actor_id=actor_id,
            user_id=board_data.user_id,
            group_id=board_data.group_id
        )
        board = board_manager.load_board(board_id)
    await publish_changes(board_manager)
    return board


@router.get("/{board_id}")
async def get_board(
    board_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> BoardSnapshot:
    """Get board with all columns and cards in display order."""
    with http_errors():
        return board_manager.load_board(board_id)


@router.delete("/{board_id}")
async def delete_board(
    board_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> MessageResponse:
    """Delete a board with its columns, cards, discussions and history."""
    with http_errors():
        board_manager.delete_board(board_id, actor_id=actor_id)
    await publish_changes(board_manager)
    return MessageResponse(message="Board deleted successfully")


@router.post("/{board_id}/columns")
async def add_column(
    board_id: int,
    column_data: AddColumnRequest,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> ColumnSnapshot:
    """Add a column after another column (0 for the first position)."""
    with http_errors():
        column_id = board_manager.add_column(
            board_id,
            column_data.after_column_id,
            column_data.model_dump(exclude={"after_column_id"}),
            actor_id=actor_id
        )
        column = board_manager.get_column(column_id)
    await publish_changes(board_manager)
    return column


@router.get("/{board_id}/history")
async def get_board_history(
    board_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> List[HistoryResponse]:
    """Get the history of all changes on a board."""
    with http_errors():
        entries = board_manager.get_board_history(board_id)
    return [HistoryResponse.model_validate(entry) for entry in entries]


@router.get("/{board_id}/export")
async def export_board(
    board_id: int,
    actor_id: int = Depends(get_actor_id),
    board_manager: BoardManager = Depends(get_board_manager)
) -> ExportResponse:
    """Get the board as a table of card titles per column."""
    with http_errors():
        return ExportResponse(
            columns=board_manager.get_column_titles(board_id),
            rows=board_manager.get_card_titles(board_id)
        )
