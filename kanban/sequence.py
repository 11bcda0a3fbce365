"""
Ordered id lists used for column order within a board and card order within
a column.

All functions are pure: they never mutate their input and return a new list,
so a failed operation leaves the caller's list untouched.
"""

from typing import Iterable, List, Optional

from .errors import DuplicateEntry, InvalidReference

DELIMITER = ","

# Reference id meaning "at the head of the list"
HEAD = 0


def insert_after(items: Iterable[int], item_id: int, after_id: int) -> List[int]:
    """Return a copy of ``items`` with ``item_id`` placed right after ``after_id``."""
    result = list(items)
    if item_id in result:
        raise DuplicateEntry(f"{item_id} is already in the sequence")
    if after_id == HEAD:
        result.insert(0, item_id)
        return result
    if after_id not in result:
        raise InvalidReference(f"{after_id} is not in the sequence")
    result.insert(result.index(after_id) + 1, item_id)
    return result


def remove(items: Iterable[int], item_id: int) -> List[int]:
    """Return a copy of ``items`` without ``item_id``. Absent ids are ignored."""
    return [existing for existing in items if existing != item_id]


def move_after(items: Iterable[int], item_id: int, after_id: int) -> List[int]:
    """Return a copy of ``items`` with ``item_id`` repositioned after ``after_id``."""
    result = list(items)
    if after_id == item_id:
        raise InvalidReference(f"{item_id} cannot be moved relative to itself")
    if item_id not in result:
        raise InvalidReference(f"{item_id} is not in the sequence")
    return insert_after(remove(result, item_id), item_id, after_id)


def last(items: List[int]) -> int:
    """Reference id that appends after the current tail."""
    return items[-1] if items else HEAD


def to_persisted(items: Iterable[int]) -> str:
    return DELIMITER.join(str(int(item)) for item in items)


def from_persisted(value: Optional[str]) -> List[int]:
    if not value:
        return []
    return [int(part) for part in value.split(DELIMITER) if part.strip()]
