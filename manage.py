#!/usr/bin/env python3
"""
Management commands for the Kanban Board API.

Usage:
    python manage.py init_db
    python manage.py check_db
    python manage.py reset_db
    python manage.py create_board <instance_id> [template_id]
"""

import sys
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel
from database import engine, get_session, create_db_and_tables
from settings import logger
from kanban.boardmanager import BoardManager
from kanban.errors import KanbanError
# Import all models to ensure tables are registered
import models.boards  # noqa: F401
import models.discussions  # noqa: F401
import models.history  # noqa: F401

# Boards created from the command line are attributed to the system actor
SYSTEM_ACTOR = 0


def init_db():
    """Initialize database tables."""
    logger.info("Creating database tables...")
    create_db_and_tables()
    logger.info("Database tables created successfully")


def check_db():
    """Check database connection and tables."""
    try:
        tables = inspect(engine).get_table_names()
        logger.info(f"Database connected. Found {len(tables)} tables: {tables}")
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        sys.exit(1)


def reset_db():
    """Drop and recreate all database tables."""
    logger.warning("Dropping all database tables...")
    SQLModel.metadata.drop_all(engine)
    logger.info("Creating database tables...")
    SQLModel.metadata.create_all(engine)
    logger.info("Database reset successfully")


def create_board(instance_id: int, template_id: int = None):
    """Create a board for an activity instance."""
    try:
        with next(get_session()) as session:
            board_id = BoardManager(session).create_board(instance_id, template_id, actor_id=SYSTEM_ACTOR)
            logger.info(f"Board created successfully with ID: {board_id}", extra={"instance_id": instance_id})
    except KanbanError as e:
        logger.error(f"Failed to create board: {e.message}")
        sys.exit(1)


def main():
    if len(sys.argv) < 2:
        print("Usage: python manage.py <command> [args]")
        print("Commands:")
        print("  init_db                                  - Initialize database tables")
        print("  check_db                                 - Check database connection")
        print("  reset_db                                 - Drop and recreate all tables")
        print("  create_board <instance_id> [template_id] - Create a board")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init_db":
        init_db()
    elif command == "check_db":
        check_db()
    elif command == "reset_db":
        reset_db()
    elif command == "create_board":
        if len(sys.argv) not in (3, 4):
            print("Usage: python manage.py create_board <instance_id> [template_id]")
            sys.exit(1)
        instance_id = int(sys.argv[2])
        template_id = int(sys.argv[3]) if len(sys.argv) == 4 else None
        create_board(instance_id, template_id)
    else:
        print(f"Unknown command: {command}")
        print("Run 'python manage.py' to see available commands")
        sys.exit(1)


if __name__ == "__main__":
    main()
