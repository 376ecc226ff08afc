"""
Moves board data between the durable store and the in-memory board state.

Loading never raises: a missing project, board or list, or a failing store,
gives an empty board. Writes report success as a bool and log failures; the
caller decides what to do with a failed commit.
"""
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from board_state import BoardList, BoardState, CardItem
from positions import next_position
from store import StoreError

logger = logging.getLogger(__name__)


class LoadedBoard(NamedTuple):
    lists: List[BoardList]
    cards_by_list: Dict[str, List[CardItem]]


EMPTY_BOARD = LoadedBoard([], {})


class BoardSynchronizer:
    """Reads a board from the store and commits finished moves back to it."""

    def __init__(self, store):
        self.store = store

    # -------------------- load --------------------
    def load(self, board_id: str) -> LoadedBoard:
        """Lists of ``board_id`` and each list's cards, ordered by position."""
        try:
            lists = [BoardList.from_row(row) for row in self.store.lists_for_board(board_id)]
            cards_by_list = {
                l.id: [CardItem.from_row(row) for row in self.store.cards_for_list(l.id)]
                for l in lists
            }
        except StoreError as e:
            logger.warning("Loading board %s failed, showing it empty: %s", board_id, e)
            return EMPTY_BOARD
        if not lists:
            logger.info("Board %s has no lists", board_id)
        return LoadedBoard(lists, cards_by_list)

    def load_project(self, slug: str) -> LoadedBoard:
        """Project -> default board -> lists -> cards."""
        try:
            project = self.store.project_by_slug(slug)
            if not project:
                logger.info("Project %s not found", slug)
                return EMPTY_BOARD
            board_id = self.store.default_board_id(project["id"])
        except StoreError as e:
            logger.warning("Loading project %s failed, showing it empty: %s", slug, e)
            return EMPTY_BOARD
        if not board_id:
            logger.info("Project %s has no default board", slug)
            return EMPTY_BOARD
        return self.load(board_id)

    def load_into(self, board: BoardState, board_id: str) -> BoardState:
        board.load(*self.load(board_id))
        return board

    # -------------------- commits --------------------
    def commit_move(self, card_id: str, dest_list_id: str, new_position: float) -> bool:
        """Single-row update of list and position. No version check: last write wins."""
        try:
            self.store.update_card(card_id, board_list_id=dest_list_id, position=new_position)
        except StoreError as e:
            logger.warning("Commit of card %s to list %s failed: %s", card_id, dest_list_id, e)
            return False
        logger.debug("Committed card %s to list %s at %s", card_id, dest_list_id, new_position)
        return True

    def commit_renumber(self, list_id: str, assignments: Iterable[Tuple[str, float]]) -> bool:
        """Write renumbered positions for a list, one row at a time. Stops at the first failure."""
        written = 0
        for card_id, position in assignments:
            try:
                self.store.update_card(card_id, board_list_id=list_id, position=position)
            except StoreError as e:
                logger.warning("Renumbering list %s failed after %d rows: %s", list_id, written, e)
                return False
            written += 1
        logger.info("Renumbered %d cards in list %s", written, list_id)
        return True

    def create_card(self, dest_list_id: str, title: str, created_by: str,
                    position: float) -> Optional[CardItem]:
        """Insert a card. Blank titles are refused and give None."""
        if not title or not title.strip():
            logger.debug("Refusing card with blank title in list %s", dest_list_id)
            return None
        try:
            row = self.store.insert_card(dest_list_id, title, created_by, position)
        except StoreError as e:
            logger.warning("Creating card in list %s failed: %s", dest_list_id, e)
            return None
        return CardItem.from_row(row)

    def delete_card(self, card_id: str) -> bool:
        try:
            return self.store.delete_card(card_id)
        except StoreError as e:
            logger.warning("Deleting card %s failed: %s", card_id, e)
            return False

    # -------------------- user actions --------------------
    def add_card(self, board: BoardState, list_id: str, title: str,
                 created_by: str) -> Optional[CardItem]:
        """Create a card at the end of ``list_id`` and show it on ``board``."""
        if not title or not title.strip():
            return None
        position = next_position(board.positions_in(list_id))
        card = self.create_card(list_id, title, created_by, position)
        if card is not None:
            board.add_card(card)
        return card

    def append_card(self, list_id: str, title: str, created_by: str) -> Optional[CardItem]:
        """Create a card at the end of ``list_id`` as the store currently orders it."""
        if not title or not title.strip():
            return None
        try:
            positions = [row["position"] for row in self.store.cards_for_list(list_id)]
        except StoreError as e:
            logger.warning("Reading list %s before insert failed: %s", list_id, e)
            return None
        return self.create_card(list_id, title, created_by, next_position(positions))

    def remove_card(self, board: BoardState, card_id: str) -> bool:
        """Delete a card in the store and drop it from ``board``. Neighbours keep their positions."""
        if not self.delete_card(card_id):
            return False
        board.remove_card(card_id)
        return True
