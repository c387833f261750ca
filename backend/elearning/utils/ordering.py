"""Pure helpers for keeping sibling `order_index` values contiguous.

Every function works on a list of objects exposing `id` and
`order_index` and returns the list in its new display order after
assigning `order_index = position`. Nothing here touches the database;
callers add the returned objects to their session and commit once.
"""

from typing import List, Optional, Sequence, TypeVar

T = TypeVar('T')


def clamp_position(position: Optional[int], count: int) -> int:
    """Insert position for a new child among `count` siblings (default: end)."""
    if position is None or position > count:
        return count
    return max(0, position)


def resequence(items: Sequence[T]) -> List[T]:
    """Assign 0..n-1 in the given list order."""
    out = list(items)
    for i, it in enumerate(out):
        it.order_index = i
    return out


def insert_at(siblings: Sequence[T], item: T, position: Optional[int]) -> List[T]:
    """Insert `item` among `siblings` (already ordered) and resequence."""
    ordered = [s for s in siblings if s is not item]
    ordered.insert(clamp_position(position, len(ordered)), item)
    return resequence(ordered)


def remove_from(siblings: Sequence[T], item_id: int) -> List[T]:
    """Drop the child with `item_id` and close the gap."""
    return resequence([s for s in siblings if s.id != item_id])


def move_within(siblings: Sequence[T], item_id: int, position: int) -> List[T]:
    """Move the child with `item_id` to `position` inside the same parent."""
    ordered = list(siblings)
    current = next((s for s in ordered if s.id == item_id), None)
    if current is None:
        raise ValueError(f'item {item_id} is not a child of this parent')
    ordered.remove(current)
    ordered.insert(clamp_position(position, len(ordered)), current)
    return resequence(ordered)


def apply_permutation(siblings: Sequence[T], ids: Sequence[int]) -> List[T]:
    """Reorder children to follow `ids`.

    `ids` must name every current child exactly once; anything else
    (missing, unknown or repeated ids) raises `ValueError` and leaves the
    objects untouched.
    """
    by_id = {s.id: s for s in siblings}
    if len(ids) != len(by_id) or len(set(ids)) != len(ids) or set(ids) != set(by_id):
        raise ValueError('ids must list every item of the parent exactly once')
    return resequence([by_id[i] for i in ids])
