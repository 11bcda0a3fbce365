from contextlib import contextmanager
from typing import Any, Dict, List
from fastapi import Depends, HTTPException, Response, status
from sqlmodel import Session
from database import get_session
from kanban.boardmanager import BoardManager
from kanban.errors import (
    ColumnFull, DuplicateEntry, InvalidReference, KanbanError, NotFound, PersistenceFailure,
)
from settings import logger
from ws_service.manager import manager as ws_manager


def get_board_manager(response: Response, db_session: Session = Depends(get_session)) -> BoardManager:
    """Request-scoped board manager bound to the request session.

    Non-fatal problems, such as a history entry that could not be written, are
    reported to the client in `X-Kanban-Warning` response headers.
    """
    def forward_warning(message: str) -> None:
        response.headers.append("X-Kanban-Warning", message)

    return BoardManager(db_session, on_warning=forward_warning)


@contextmanager
def http_errors():
    """Translate kanban errors into HTTP responses."""
    try:
        yield
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except InvalidReference as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except (DuplicateEntry, ColumnFull) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except PersistenceFailure as e:
        logger.warning("Request failed to commit", extra={"error": e.message})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
            headers={"Retry-After": "1"}
        )
    except KanbanError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


async def publish_changes(board_manager: BoardManager) -> None:
    """Forward committed change events to the clients watching each affected board."""
    by_board: Dict[int, List[Dict[str, Any]]] = {}
    for change in board_manager.pop_changes():
        by_board.setdefault(change.board_id, []).append(change.model_dump(mode="json"))
    for board_id, changes in by_board.items():
        await ws_manager.publish(board_id, changes)
