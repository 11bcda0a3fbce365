"""
Typed errors raised by the kanban core.

Every error carries a human-readable message and a ``message_key`` that the
presentation layer can translate. Caller errors leave no partial mutation
behind; ``PersistenceFailure`` is the only retryable kind.
"""

from typing import Optional


class KanbanError(Exception):
    """Base class for all kanban core errors."""
    message_key = "error"
    retryable = False

    def __init__(self, message: str, message_key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if message_key is not None:
            self.message_key = message_key


class NotFound(KanbanError):
    """A referenced entity id does not exist."""
    message_key = "notfound"

    def __init__(self, kind: str, entity_id: int):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidReference(KanbanError):
    """A positional reference does not belong to the expected parent, or targets itself."""
    message_key = "invalidreference"


class DuplicateEntry(KanbanError):
    """An id is already present in the sequence it is inserted into."""
    message_key = "duplicateentry"


class ColumnFull(KanbanError):
    """The target column already holds as many cards as its limit allows."""
    message_key = "columnfull"


class PersistenceFailure(KanbanError):
    """The store transaction could not be committed."""
    message_key = "persistencefailure"
    retryable = True
