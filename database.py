import os
from sqlmodel import SQLModel, Session, create_engine
from settings import settings

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "kanban.db")


def _build_engine():
    """Create the engine from DATABASE_URL, falling back to a local SQLite file."""
    database_url = settings.DATABASE_URL or f"sqlite:///{DEFAULT_DB_PATH}"
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, echo=settings.DATABASE_ECHO, connect_args=connect_args)


engine = _build_engine()


def create_db_and_tables():
    # Import models so their tables are registered on the metadata
    import models.boards  # noqa: F401
    import models.discussions  # noqa: F401
    import models.history  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    """FastAPI dependency yielding a request-scoped session."""
    with Session(engine) as session:
        yield session
