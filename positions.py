"""
Sparse positions for cards inside a list.

Each card carries a real-number position. Inserting between two cards takes
the midpoint of their positions, so a move rewrites one row instead of the
whole list. Repeated inserts at the same spot halve the gap every time; once
it gets too small to stay distinguishable, the list has to be renumbered.
"""
from typing import List, Sequence

BASE_POSITION = 100.0
POSITION_GAP = 100.0
# Closest a new position may sit to a neighbour before we give up on midpoints
MIN_GAP = 1e-6


class PositionGapExhausted(Exception):
    """No safe position left at the requested index; renumber the list."""

    def __init__(self, index: int, lower: float, upper: float):
        super().__init__(
            f"no room for a position at index {index} between {lower!r} and {upper!r}"
        )
        self.index = index
        self.lower = lower
        self.upper = upper


def allocate(positions: Sequence[float], index: int) -> float:
    """
    Position for a card inserted at ``index`` into a list whose existing cards
    (the moving card excluded) have ``positions`` in display order.

    Raises PositionGapExhausted when the neighbours leave no usable room, or
    when they are not strictly increasing.
    """
    if index < 0:
        raise ValueError(f"index must be >= 0, got {index}")
    if not positions:
        return BASE_POSITION

    if index == 0:
        first = positions[0]
        candidate = first / 2
        if not (0 < candidate < first) or first - candidate < MIN_GAP:
            raise PositionGapExhausted(index, 0.0, first)
        return candidate

    if index >= len(positions):
        return positions[-1] + POSITION_GAP

    lower = positions[index - 1]
    upper = positions[index]
    candidate = (lower + upper) / 2
    if not (lower < candidate < upper) or min(candidate - lower, upper - candidate) < MIN_GAP:
        raise PositionGapExhausted(index, lower, upper)
    return candidate


def is_ordered(positions: Sequence[float]) -> bool:
    """True if every position is strictly greater than the one before it."""
    return all(a < b for a, b in zip(positions, positions[1:]))


def next_position(positions: Sequence[float]) -> float:
    """Position for a card appended to the end of a list."""
    return allocate(positions, len(positions))


def renumber(count: int) -> List[float]:
    """Fresh evenly spaced positions for ``count`` cards: 100, 200, 300, ..."""
    return [BASE_POSITION + POSITION_GAP * i for i in range(count)]
