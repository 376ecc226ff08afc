"""
Drag-and-drop state machine for board cards.

A gesture runs start -> over (any number of times) -> end. Every ``over``
rearranges the board state as a live preview; ``end`` picks the final
position and commits it through the synchronizer. The controller is either
Idle or Dragging, and Dragging remembers where the card started so a cancel
or a failed commit can put it back.

Pointer targets are ids: a list id means "append to this list", a card id
means "insert before that card".
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from board_state import BoardState
from positions import PositionGapExhausted, allocate, is_ordered, renumber

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    card_id: str
    origin_list_id: str
    origin_index: int
    origin_position: float


GestureState = Union[Idle, Dragging]

IDLE = Idle()


@dataclass(frozen=True)
class Drop:
    """Where a dragged card lands: list id and index with the card already taken out."""
    list_id: str
    index: int
    unchanged: bool = False


@dataclass(frozen=True)
class MoveResult:
    card_id: str
    list_id: str
    position: float
    committed: bool
    renumbered: bool = False


def resolve_drop(board: BoardState, card_id: str, target_id: str) -> Optional[Drop]:
    """
    Translate a pointer target into a destination for ``card_id``.

    Returns None when the card or the target is not on the board.
    """
    source = board.locate(card_id)
    if source is None:
        return None

    if board.has_list(target_id):
        dest_list_index = board.list_index(target_id)
        dest_index = len(board.cards_in(target_id))
    else:
        target = board.locate(target_id)
        if target is None:
            return None
        dest_list_index, dest_index = target.list_index, target.card_index

    dest_list_id = board.lists[dest_list_index].id
    same_list = source.list_index == dest_list_index
    if same_list and source.card_index == dest_index:
        return Drop(dest_list_id, dest_index, unchanged=True)

    # Taking the card out first shifts every later index in its own list down by one
    if same_list and source.card_index < dest_index:
        dest_index -= 1
    return Drop(dest_list_id, dest_index)


class DragController:
    """Drives one card drag at a time over a BoardState."""

    def __init__(self, board: BoardState, synchronizer):
        self.board = board
        self.synchronizer = synchronizer
        self.state: GestureState = IDLE
        self.last_error: Optional[str] = None

    @property
    def dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    # -------------------- transitions --------------------
    def start(self, card_id: str) -> bool:
        if self.dragging:
            logger.debug("Ignoring start(%s): %s already being dragged", card_id, self.state.card_id)
            return False
        loc = self.board.locate(card_id)
        if loc is None:
            logger.debug("Ignoring start(%s): card not on board", card_id)
            return False
        card = self.board.get_card(card_id)
        self.state = Dragging(
            card_id=card_id,
            origin_list_id=card.board_list_id,
            origin_index=loc.card_index,
            origin_position=card.position,
        )
        return True

    def over(self, target_id: str) -> bool:
        """Preview the card at ``target_id``. Returns True if the board changed."""
        if not isinstance(self.state, Dragging):
            return False
        drop = resolve_drop(self.board, self.state.card_id, target_id)
        if drop is None or drop.unchanged:
            return False
        before = self.board.locate(self.state.card_id)
        self.board.apply_move(self.state.card_id, drop.list_id, drop.index)
        logger.debug("Preview %s -> %s[%d]", self.state.card_id, drop.list_id, drop.index)
        return self.board.locate(self.state.card_id) != before

    def end(self, target_id: Optional[str]) -> Optional[MoveResult]:
        """
        Drop the card on ``target_id`` and commit it.

        Returns None when nothing was being dragged or the target is not a
        valid drop; in that case the preview is reverted.
        """
        if not isinstance(self.state, Dragging):
            return None
        gesture, self.state = self.state, IDLE

        drop = resolve_drop(self.board, gesture.card_id, target_id) if target_id else None
        if drop is None:
            logger.debug("No drop target for %s, reverting preview", gesture.card_id)
            self._restore_origin(gesture)
            return None

        positions = self.board.positions_in(drop.list_id, exclude=gesture.card_id)
        if not is_ordered(positions):
            # ties anywhere in the list, e.g. left behind by two concurrent drops
            logger.info("List %s has out-of-order positions, renumbering", drop.list_id)
            return self._renumber_and_commit(gesture, drop)
        try:
            position = allocate(positions, drop.index)
        except PositionGapExhausted as e:
            logger.info("List %s needs renumbering: %s", drop.list_id, e)
            return self._renumber_and_commit(gesture, drop)

        self.board.apply_move(gesture.card_id, drop.list_id, drop.index)
        self.board.set_position(gesture.card_id, position)

        committed = self.synchronizer.commit_move(gesture.card_id, drop.list_id, position)
        if not committed:
            self._fail(gesture, f"Could not save the move of card {gesture.card_id}")
            self._restore_origin(gesture)
        else:
            self.last_error = None
        return MoveResult(gesture.card_id, drop.list_id, position, committed)

    def cancel(self) -> None:
        """Abandon the gesture and put the card back where it started."""
        if isinstance(self.state, Dragging):
            gesture, self.state = self.state, IDLE
            self._restore_origin(gesture)

    # -------------------- helpers --------------------
    def _renumber_and_commit(self, gesture: Dragging, drop: Drop) -> MoveResult:
        previous: Dict[str, float] = {
            c.id: c.position for c in self.board.cards_in(drop.list_id) if c.id != gesture.card_id
        }
        self.board.apply_move(gesture.card_id, drop.list_id, drop.index)
        cards = self.board.cards_in(drop.list_id)
        assignments = list(zip([c.id for c in cards], renumber(len(cards))))
        for card_id, position in assignments:
            self.board.set_position(card_id, position)
        position = self.board.get_card(gesture.card_id).position

        committed = self.synchronizer.commit_renumber(drop.list_id, assignments)
        if not committed:
            self._fail(gesture, f"Could not save the renumbered list {drop.list_id}")
            for card_id, old in previous.items():
                self.board.set_position(card_id, old)
            self._restore_origin(gesture)
        else:
            self.last_error = None
        return MoveResult(gesture.card_id, drop.list_id, position, committed, renumbered=True)

    def _restore_origin(self, gesture: Dragging) -> None:
        if self.board.get_card(gesture.card_id) is None:
            return
        self.board.apply_move(gesture.card_id, gesture.origin_list_id, gesture.origin_index)
        self.board.set_position(gesture.card_id, gesture.origin_position)

    def _fail(self, gesture: Dragging, message: str) -> None:
        logger.warning("%s; rolling back to %s[%d]", message, gesture.origin_list_id, gesture.origin_index)
        self.last_error = message
