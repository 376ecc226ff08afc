"""
Client-held board snapshot: lists and their ordered cards.

Cards live in one flat mapping keyed by id. A single global id sequence gives
display order, and a list's contents are whatever cards in that sequence
point at the list. Lists never keep their own card-id array, so membership
cannot drift from the card's list reference.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass
class BoardList:
    id: str
    name: str
    position: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping) -> "BoardList":
        return cls(id=row["id"], name=row.get("name", ""), position=row.get("position") or 0.0)


@dataclass
class CardItem:
    id: str
    title: str
    board_list_id: str
    position: float
    created_by: str = ""
    description: Optional[str] = None
    due_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping) -> "CardItem":
        return cls(
            id=row["id"],
            title=row.get("title", ""),
            board_list_id=row["board_list_id"],
            position=row["position"],
            created_by=row.get("created_by") or "",
            description=row.get("description"),
            due_at=row.get("due_at"),
        )


@dataclass(frozen=True)
class Location:
    list_index: int
    card_index: int


class BoardState:
    """In-memory lists and cards; what the board renders from."""

    def __init__(self):
        self.lists: List[BoardList] = []
        self._cards: Dict[str, CardItem] = {}
        self._sequence: List[str] = []

    # -------------------- loading --------------------
    def load(self, lists: Iterable[BoardList], cards_by_list: Mapping[str, Iterable[CardItem]]) -> None:
        """Replace the whole snapshot."""
        self.lists = sorted(lists, key=lambda l: l.position)
        self._cards = {}
        self._sequence = []
        known = {l.id for l in self.lists}
        for board_list in self.lists:
            for card in sorted(cards_by_list.get(board_list.id, []), key=lambda c: c.position):
                if card.board_list_id not in known:
                    logger.warning("Dropping card %s: unknown list %s", card.id, card.board_list_id)
                    continue
                if card.id in self._cards:
                    logger.warning("Dropping duplicate card %s", card.id)
                    continue
                self._cards[card.id] = card
                self._sequence.append(card.id)

    # -------------------- queries --------------------
    def has_list(self, list_id: str) -> bool:
        return any(l.id == list_id for l in self.lists)

    def list_index(self, list_id: str) -> int:
        for i, board_list in enumerate(self.lists):
            if board_list.id == list_id:
                return i
        raise KeyError(list_id)

    def get_card(self, card_id: str) -> Optional[CardItem]:
        return self._cards.get(card_id)

    def cards_in(self, list_id: str) -> List[CardItem]:
        return [self._cards[cid] for cid in self._sequence if self._cards[cid].board_list_id == list_id]

    def positions_in(self, list_id: str, exclude: Optional[str] = None) -> List[float]:
        return [c.position for c in self.cards_in(list_id) if c.id != exclude]

    def locate(self, card_id: str) -> Optional[Location]:
        """List index and index inside that list, or None."""
        card = self._cards.get(card_id)
        if card is None:
            return None
        for li, board_list in enumerate(self.lists):
            if board_list.id != card.board_list_id:
                continue
            for ci, other in enumerate(self.cards_in(board_list.id)):
                if other.id == card_id:
                    return Location(li, ci)
        return None

    def __len__(self) -> int:
        return len(self._cards)

    # -------------------- mutation --------------------
    def apply_move(self, card_id: str, dest_list_id: str, dest_index: int) -> None:
        """
        Take the card out of its list and splice it into ``dest_list_id`` at
        ``dest_index``, counted once the card is already removed. Positions
        are left alone.
        """
        card = self._cards[card_id]
        if not self.has_list(dest_list_id):
            raise KeyError(dest_list_id)

        self._sequence.remove(card_id)
        siblings = [cid for cid in self._sequence if self._cards[cid].board_list_id == dest_list_id]
        dest_index = max(0, min(dest_index, len(siblings)))

        if dest_index < len(siblings):
            at = self._sequence.index(siblings[dest_index])
        elif siblings:
            at = self._sequence.index(siblings[-1]) + 1
        else:
            at = len(self._sequence)
        self._sequence.insert(at, card_id)
        card.board_list_id = dest_list_id

    def set_position(self, card_id: str, position: float) -> None:
        self._cards[card_id].position = position

    def add_card(self, card: CardItem) -> None:
        """Append a card at the end of its list."""
        if not self.has_list(card.board_list_id):
            raise KeyError(card.board_list_id)
        if card.id in self._cards:
            raise ValueError(f"card {card.id} already on the board")
        self._cards[card.id] = card
        self._sequence.append(card.id)

    def remove_card(self, card_id: str) -> Optional[CardItem]:
        card = self._cards.pop(card_id, None)
        if card is not None:
            self._sequence.remove(card_id)
        return card

    def __str__(self) -> str:
        return ", ".join(f"{l.name}: {len(self.cards_in(l.id))} cards" for l in self.lists)
