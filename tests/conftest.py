"""Shared fixtures: an in-memory SQLite store seeded with one board."""

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# main.py and database.py read this at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

from models import Base, Project, Board, BoardList, Card
from store import SqlBoardStore


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlBoardStore(session_factory)


@pytest.fixture
def seeded(session_factory):
    """Project "demo" with list A holding a/b/c at 100/200/300 and an empty list B."""
    with session_factory() as db:
        project = Project(slug="demo", name="Demo")
        board = Board(title="Demo board", is_default=True, project=project)
        list_a = BoardList(name="A", position=100, board=board)
        list_b = BoardList(name="B", position=200, board=board)
        cards = [
            Card(id=f"card-{name}", title=name, created_by="u1", position=pos, board_list=list_a)
            for name, pos in (("a", 100), ("b", 200), ("c", 300))
        ]
        db.add_all([project, board, list_a, list_b, *cards])
        db.commit()
        return {"board": board.id, "A": list_a.id, "B": list_b.id}
