"""
Feature: Assign users and complete cards
  As a participant of a kanban board
  I want to assign people and mark cards done
  So that everyone knows who does what and what is finished

Scenario: Assign a user twice
  When I assign the same user twice with POST /cards/{card_id}/assignees
  Then the user is listed once

Scenario: Unassign a user that is not assigned
  Then nothing changes

Scenario: Complete and reopen a card
  When I complete a card with POST /cards/{card_id}/complete
  Then the card is completed
  And reopening it clears the flag

Scenario: Complete a repeating card
  Given a card repeating every week with due date shifting
  When I complete it
  Then a new uncompleted card follows it with the due date one week later
  And the completed card stops repeating

Scenario: List uncompleted cards assigned to a user
"""

import pytest
from datetime import datetime
from sqlmodel import create_engine, Session, SQLModel
from models.boards import Board
import models.discussions  # noqa: F401
import models.history  # noqa: F401
from kanban.boardmanager import BoardManager, add_months, next_duedate
from kanban.types import RepeatIntervalType
from apis.cards import assign_user, unassign_user, complete_card, uncomplete_card, list_assigned_cards
from apis.schemas.cards import AssignUserRequest
from board_checks import assert_board_consistent


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


def make_card(board_manager, **fields):
    board_id = board_manager.create_board(1, actor_id=5)
    todo = board_manager.get_board(board_id).sequence[0]
    card_id = board_manager.add_card(todo, 0, {"title": "Task", **fields}, actor_id=5)
    return board_id, todo, card_id


@pytest.mark.asyncio
async def test_assign_user_twice(session):
    board_manager = BoardManager(session)
    _, _, card_id = make_card(board_manager)
    board_manager.pop_changes()

    board_manager.assign_user(card_id, 8, actor_id=5)
    assert len(board_manager.pop_changes()) == 1
    card = await assign_user(card_id=card_id, assign_data=AssignUserRequest(user_id=8),
                             actor_id=5, board_manager=board_manager)

    assert card.assignees == [8]
    board_manager.assign_user(card_id, 8, actor_id=5)
    assert board_manager.pop_changes() == []


@pytest.mark.asyncio
async def test_unassign_user(session):
    board_manager = BoardManager(session)
    _, _, card_id = make_card(board_manager)
    board_manager.assign_user(card_id, 8, actor_id=5)
    board_manager.assign_user(card_id, 9, actor_id=5)

    card = await unassign_user(card_id=card_id, user_id=8, actor_id=5, board_manager=board_manager)
    assert card.assignees == [9]

    # Unassigning an absent user is a no-op
    card = await unassign_user(card_id=card_id, user_id=8, actor_id=5, board_manager=board_manager)
    assert card.assignees == [9]


@pytest.mark.asyncio
async def test_complete_and_reopen(session):
    board_manager = BoardManager(session)
    _, todo, card_id = make_card(board_manager)

    card = await complete_card(card_id=card_id, actor_id=5, board_manager=board_manager)
    assert card.completed is True
    assert board_manager.get_column(todo).sequence == [card_id]

    card = await uncomplete_card(card_id=card_id, actor_id=5, board_manager=board_manager)
    assert card.completed is False


@pytest.mark.asyncio
async def test_complete_repeating_card(session):
    # Given a card repeating every week with due date shifting
    board_manager = BoardManager(session)
    board_id, todo, card_id = make_card(
        board_manager,
        duedate=datetime(2024, 3, 4, 12, 0),
        repeat_enable=True,
        repeat_interval=1,
        repeat_interval_type=RepeatIntervalType.WEEK,
        repeat_newduedate=True,
    )
    board_manager.assign_user(card_id, 8, actor_id=5)

    # When I complete it
    follow_up_id = board_manager.complete_card(card_id, actor_id=5)

    # Then a new uncompleted card follows it with the due date one week later
    assert follow_up_id is not None
    assert board_manager.get_column(todo).sequence == [card_id, follow_up_id]
    follow_up = board_manager.get_card(follow_up_id)
    assert follow_up.completed is False
    assert follow_up.repeat_enable is True
    assert follow_up.duedate.replace(tzinfo=None) == datetime(2024, 3, 11, 12, 0)
    assert follow_up.assignees == [8]

    # And the completed card stops repeating
    original = board_manager.get_card(card_id)
    assert original.completed is True
    assert original.repeat_enable is False
    assert_board_consistent(session, board_id)


def test_next_duedate_units():
    base = datetime(2024, 1, 31, 9, 30)
    assert next_duedate(base, 3, RepeatIntervalType.DAY) == datetime(2024, 2, 3, 9, 30)
    assert next_duedate(base, 2, RepeatIntervalType.WEEK) == datetime(2024, 2, 14, 9, 30)
    assert next_duedate(base, 1, RepeatIntervalType.MONTH) == datetime(2024, 2, 29, 9, 30)
    assert next_duedate(base, 1, RepeatIntervalType.YEAR) == datetime(2025, 1, 31, 9, 30)
    assert add_months(datetime(2023, 11, 15), 3) == datetime(2024, 2, 15)


@pytest.mark.asyncio
async def test_list_uncompleted_assigned_cards(session):
    board_manager = BoardManager(session)
    board_id, todo, open_card = make_card(board_manager)
    done_card = board_manager.add_card(todo, open_card, {"title": "Done"}, actor_id=5)
    other_user_card = board_manager.add_card(todo, done_card, {"title": "Other"}, actor_id=5)
    board_manager.assign_user(open_card, 8, actor_id=5)
    board_manager.assign_user(done_card, 8, actor_id=5)
    board_manager.assign_user(other_user_card, 9, actor_id=5)
    board_manager.complete_card(done_card, actor_id=5)

    # Cards on template boards are not listed
    template_id = board_manager.create_board(1, actor_id=5)
    session.get(Board, template_id).template = True
    session.commit()
    template_column = board_manager.get_board(template_id).sequence[0]
    template_card = board_manager.add_card(template_column, 0, {"title": "Template"}, actor_id=5)
    board_manager.assign_user(template_card, 8, actor_id=5)

    cards = await list_assigned_cards(instance_id=1, user_id=8, actor_id=5, board_manager=board_manager)

    assert [card.id for card in cards] == [open_card]
