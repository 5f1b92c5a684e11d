"""Bounded, ordered pin lists shared by pinned chats and pinned messages."""
from typing import List, Sequence

MAX_PINNED = 3


def pin_id(pinned: Sequence[str], item_id: str, capacity: int = MAX_PINNED) -> List[str]:
    """
    Return a new pin list with ``item_id`` appended.

    Pinning something already pinned is a no-op (unpin it explicitly first).
    When the list is full the earliest-pinned ids are evicted (FIFO).
    """
    item_id = str(item_id)
    updated = [str(i) for i in pinned]
    if item_id in updated:
        return updated

    while updated and len(updated) >= capacity:
        updated.pop(0)
    updated.append(item_id)
    return updated


def unpin_id(pinned: Sequence[str], item_id: str) -> List[str]:
    """Return a new pin list without ``item_id``, order preserved."""
    item_id = str(item_id)
    return [str(i) for i in pinned if str(i) != item_id]
