"""
Durable board storage backed by SQLAlchemy.

Rows come back as plain dicts shaped like the hosted backend's JSON, ordered
by position ascending. Every method opens its own short session; there is no
multi-row transaction across calls.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from models import Project, Board, BoardList, Card

logger = logging.getLogger(__name__)

DEFAULT_LISTS = ("To do", "In progress", "Done")


class StoreError(Exception):
    """A durable store read or write failed."""


def _list_row(board_list: BoardList) -> Dict[str, Any]:
    return {"id": board_list.id, "name": board_list.name, "position": board_list.position}


def _card_row(card: Card) -> Dict[str, Any]:
    return {
        "id": card.id,
        "title": card.title,
        "description": card.description,
        "due_at": card.due_at,
        "created_by": card.created_by,
        "board_list_id": card.board_list_id,
        "position": card.position,
    }


class SqlBoardStore:
    """Lists and cards in a SQL database."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _session(self) -> Session:
        return self.session_factory()

    # ===== reads =====

    def project_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        try:
            with self._session() as db:
                project = db.scalar(select(Project).where(Project.slug == slug))
                if not project:
                    return None
                return {"id": project.id, "slug": project.slug, "name": project.name}
        except SQLAlchemyError as e:
            raise StoreError(f"project lookup failed for {slug}: {e}") from e

    def default_board_id(self, project_id: str) -> Optional[str]:
        try:
            with self._session() as db:
                return db.scalar(
                    select(Board.id).where(Board.project_id == project_id, Board.is_default.is_(True))
                )
        except SQLAlchemyError as e:
            raise StoreError(f"board lookup failed for project {project_id}: {e}") from e

    def lists_for_board(self, board_id: str) -> List[Dict[str, Any]]:
        try:
            with self._session() as db:
                rows = db.scalars(
                    select(BoardList).where(BoardList.board_id == board_id).order_by(BoardList.position)
                ).all()
                return [_list_row(r) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"list query failed for board {board_id}: {e}") from e

    def cards_for_list(self, list_id: str) -> List[Dict[str, Any]]:
        try:
            with self._session() as db:
                rows = db.scalars(
                    select(Card).where(Card.board_list_id == list_id).order_by(Card.position)
                ).all()
                return [_card_row(r) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"card query failed for list {list_id}: {e}") from e

    def get_card(self, card_id: str) -> Optional[Dict[str, Any]]:
        try:
            with self._session() as db:
                card = db.get(Card, card_id)
                return _card_row(card) if card else None
        except SQLAlchemyError as e:
            raise StoreError(f"card lookup failed for {card_id}: {e}") from e

    # ===== writes =====

    def update_card(self, card_id: str, board_list_id: Optional[str] = None,
                    position: Optional[float] = None) -> Dict[str, Any]:
        """Partial update of a card's list reference and/or position. Last write wins."""
        try:
            with self._session() as db:
                card = db.get(Card, card_id)
                if not card:
                    raise StoreError(f"card {card_id} not found")
                if board_list_id is not None:
                    if not db.get(BoardList, board_list_id):
                        raise StoreError(f"list {board_list_id} not found")
                    card.board_list_id = board_list_id
                if position is not None:
                    card.position = position
                db.commit()
                return _card_row(card)
        except SQLAlchemyError as e:
            raise StoreError(f"update failed for card {card_id}: {e}") from e

    def insert_card(self, board_list_id: str, title: str, created_by: str,
                    position: float) -> Dict[str, Any]:
        try:
            with self._session() as db:
                if not db.get(BoardList, board_list_id):
                    raise StoreError(f"list {board_list_id} not found")
                card = Card(title=title, created_by=created_by or "", position=position,
                            board_list_id=board_list_id)
                db.add(card)
                db.commit()
                db.refresh(card)
                return _card_row(card)
        except SQLAlchemyError as e:
            raise StoreError(f"insert failed in list {board_list_id}: {e}") from e

    def delete_card(self, card_id: str) -> bool:
        """Delete a card. Returns False if it did not exist."""
        try:
            with self._session() as db:
                card = db.get(Card, card_id)
                if not card:
                    return False
                db.delete(card)
                db.commit()
                return True
        except SQLAlchemyError as e:
            raise StoreError(f"delete failed for card {card_id}: {e}") from e

    # ===== project setup =====

    def ensure_default_board(self, title: str, slug: str = "default") -> str:
        """Return the default board id for ``slug``, creating project, board and lists if missing."""
        try:
            with self._session() as db:
                project = db.scalar(select(Project).where(Project.slug == slug))
                if not project:
                    project = Project(slug=slug, name=title)
                    db.add(project)
                    db.flush()
                board = db.scalar(
                    select(Board).where(Board.project_id == project.id, Board.is_default.is_(True))
                )
                if not board:
                    board = Board(title=title, is_default=True, project=project)
                    db.add(board)
                    db.add_all([
                        BoardList(name=name, position=(i + 1) * 100, board=board)
                        for i, name in enumerate(DEFAULT_LISTS)
                    ])
                    db.commit()
                    logger.info("Created default board %s for project %s", board.id, slug)
                return board.id
        except SQLAlchemyError as e:
            raise StoreError(f"default board setup failed: {e}") from e
