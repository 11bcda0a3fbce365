"""
Feature: Move a card
  As a participant of a kanban board
  I want to move cards within and across columns
  So that the board reflects the state of the work

Scenario: Move a card to another column after a given card
  Given column A holds cards [1, 2] and column B holds [3]
  When I move card 2 after card 3 into column B
  Then A holds [1] and B holds [3, 2]
  And card 2 belongs to column B

Scenario: Move a card to the head of its column
Scenario: Move a card into an autoclose column
  Then the card becomes completed

Scenario: Move a card into a full column
  Then the system returns 409 Conflict error and nothing changes

Scenario: Move a card relative to itself
  Then the system returns 400 Bad Request error

Scenario: Move a card to a column of another board
  Then the system returns 400 Bad Request error and nothing changes
"""

import pytest
from fastapi import HTTPException
from sqlmodel import create_engine, Session, SQLModel
import models.boards  # noqa: F401
import models.discussions  # noqa: F401
import models.history  # noqa: F401
from kanban.boardmanager import BoardManager
from apis.cards import move_card
from apis.schemas.cards import MoveCardRequest
from board_checks import assert_board_consistent


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="board")
def board_fixture(session):
    """Board whose first column holds two cards and second column one card."""
    board_manager = BoardManager(session)
    board_id = board_manager.create_board(1, actor_id=5)
    column_a, column_b, column_c = board_manager.get_board(board_id).sequence
    card_1 = board_manager.add_card(column_a, 0, {"title": "1"}, actor_id=5)
    card_2 = board_manager.add_card(column_a, card_1, {"title": "2"}, actor_id=5)
    card_3 = board_manager.add_card(column_b, 0, {"title": "3"}, actor_id=5)
    return {
        "id": board_id,
        "columns": (column_a, column_b, column_c),
        "cards": (card_1, card_2, card_3),
    }


@pytest.mark.asyncio
async def test_move_card_to_other_column(session, board):
    board_manager = BoardManager(session)
    column_a, column_b, _ = board["columns"]
    card_1, card_2, card_3 = board["cards"]

    # When I move card 2 after card 3 into column B
    result = await move_card(
        card_id=card_2,
        move_data=MoveCardRequest(after_card_id=card_3, column_id=column_b),
        actor_id=5,
        board_manager=board_manager
    )

    # Then A holds [1] and B holds [3, 2]
    assert board_manager.get_column(column_a).sequence == [card_1]
    assert board_manager.get_column(column_b).sequence == [card_3, card_2]

    # And card 2 belongs to column B
    assert result.kanban_column == column_b
    assert_board_consistent(session, board["id"])


@pytest.mark.asyncio
async def test_move_card_to_head_of_same_column(session, board):
    board_manager = BoardManager(session)
    column_a, _, _ = board["columns"]
    card_1, card_2, _ = board["cards"]

    await move_card(card_id=card_2, move_data=MoveCardRequest(after_card_id=0),
                    actor_id=5, board_manager=board_manager)

    assert board_manager.get_column(column_a).sequence == [card_2, card_1]
    assert_board_consistent(session, board["id"])


@pytest.mark.asyncio
async def test_move_card_to_head_of_other_column(session, board):
    board_manager = BoardManager(session)
    _, column_b, _ = board["columns"]
    card_1, _, card_3 = board["cards"]

    await move_card(card_id=card_1, move_data=MoveCardRequest(after_card_id=0, column_id=column_b),
                    actor_id=5, board_manager=board_manager)

    assert board_manager.get_column(column_b).sequence == [card_1, card_3]
    assert_board_consistent(session, board["id"])


@pytest.mark.asyncio
async def test_move_card_into_autoclose_column(session, board):
    board_manager = BoardManager(session)
    _, _, column_c = board["columns"]
    card_1, _, _ = board["cards"]
    board_manager.update_column(column_c, {"options": {"autoclose": True}}, actor_id=5)

    result = await move_card(card_id=card_1, move_data=MoveCardRequest(after_card_id=0, column_id=column_c),
                             actor_id=5, board_manager=board_manager)

    assert result.completed is True
    assert result.kanban_column == column_c


@pytest.mark.asyncio
async def test_move_card_into_full_column(session, board):
    board_manager = BoardManager(session)
    column_a, column_b, _ = board["columns"]
    card_1, card_2, card_3 = board["cards"]
    board_manager.update_column(column_b, {"wip_limit": 1}, actor_id=5)

    with pytest.raises(HTTPException) as error:
        await move_card(card_id=card_1, move_data=MoveCardRequest(after_card_id=card_3, column_id=column_b),
                        actor_id=5, board_manager=board_manager)

    assert error.value.status_code == 409
    assert board_manager.get_column(column_a).sequence == [card_1, card_2]
    assert board_manager.get_column(column_b).sequence == [card_3]
    assert board_manager.get_card(card_1).kanban_column == column_a


@pytest.mark.asyncio
async def test_move_card_relative_to_itself(session, board):
    board_manager = BoardManager(session)
    column_a, column_b, _ = board["columns"]
    card_1, card_2, _ = board["cards"]

    for column_id in (None, column_b):
        with pytest.raises(HTTPException) as error:
            await move_card(card_id=card_2, move_data=MoveCardRequest(after_card_id=card_2, column_id=column_id),
                            actor_id=5, board_manager=board_manager)
        assert error.value.status_code == 400

    assert board_manager.get_column(column_a).sequence == [card_1, card_2]


@pytest.mark.asyncio
async def test_move_card_to_other_board(session, board):
    board_manager = BoardManager(session)
    other_board = board_manager.create_board(1, actor_id=5)
    foreign_column = board_manager.get_board(other_board).sequence[0]
    column_a, _, _ = board["columns"]
    card_1, card_2, _ = board["cards"]

    with pytest.raises(HTTPException) as error:
        await move_card(card_id=card_1, move_data=MoveCardRequest(after_card_id=0, column_id=foreign_column),
                        actor_id=5, board_manager=board_manager)

    assert error.value.status_code == 400
    assert board_manager.get_column(column_a).sequence == [card_1, card_2]
    assert board_manager.get_column(foreign_column).sequence == []
    assert_board_consistent(session, board["id"])
    assert_board_consistent(session, other_board)


@pytest.mark.asyncio
async def test_move_missing_card(session, board):
    with pytest.raises(HTTPException) as error:
        await move_card(card_id=999, move_data=MoveCardRequest(after_card_id=0),
                        actor_id=5, board_manager=BoardManager(session))
    assert error.value.status_code == 404
