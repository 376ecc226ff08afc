import os, math, secrets, logging
from dataclasses import asdict
from fastapi import FastAPI, Request, Form, Depends, HTTPException
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from database import SessionLocal, engine
from models import Base
from sync import BoardSynchronizer
from store import SqlBoardStore, StoreError

ADMIN_USER = os.getenv("ADMIN_USER", "admin")
ADMIN_PASS = os.getenv("ADMIN_PASS", "dtn2025")
BOARD_TITLE = os.getenv("BOARD_TITLE", "Project board")

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI()
app.add_middleware(SessionMiddleware, secret_key=secrets.token_hex(32))

# Create tables at startup
Base.metadata.create_all(bind=engine)

_store = SqlBoardStore(SessionLocal)

def get_store() -> SqlBoardStore:
    return _store

def get_sync(store: SqlBoardStore = Depends(get_store)) -> BoardSynchronizer:
    return BoardSynchronizer(store)

def require_auth(request: Request):
    if request.session.get("auth") != True:
        raise HTTPException(status_code=401)

@app.get("/")
def root(store: SqlBoardStore = Depends(get_store)):
    # fetch or create the default board and its lists
    try:
        board_id = store.ensure_default_board(BOARD_TITLE)
    except StoreError as e:
        logger.warning("Default board setup failed: %s", e)
        raise HTTPException(503, "Board storage unavailable")
    return RedirectResponse(url=f"/api/boards/{board_id}", status_code=302)

@app.post("/login")
def login(request: Request, username: str = Form(...), password: str = Form(...)):
    if secrets.compare_digest(username, ADMIN_USER) and secrets.compare_digest(password, ADMIN_PASS):
        request.session["auth"] = True
        return {"ok": True}
    raise HTTPException(401, "Invalid credentials")

@app.get("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}

# ===== API =====

@app.get("/api/boards/{board_id}")
def board_view(board_id: str, request: Request, sync: BoardSynchronizer = Depends(get_sync)):
    require_auth(request)
    # a missing board or a failing store both come back as an empty board
    loaded = sync.load(board_id)
    lists = []
    for board_list in loaded.lists:
        row = asdict(board_list)
        row["cards"] = [asdict(c) for c in loaded.cards_by_list.get(board_list.id, [])]
        lists.append(row)
    return {"id": board_id, "lists": lists}

@app.post("/api/card")
def create_card(request: Request, title: str = Form(...), list_id: str = Form(...),
                created_by: str = Form(""), sync: BoardSynchronizer = Depends(get_sync)):
    require_auth(request)
    if not title.strip():
        raise HTTPException(422, "Title must not be blank")
    card = sync.append_card(list_id, title, created_by)
    if card is None:
        raise HTTPException(404, "List not found")
    return asdict(card)

@app.post("/api/card/move")
def move_card(request: Request, card_id: str = Form(...), to_list: str = Form(...),
              position: float = Form(...), sync: BoardSynchronizer = Depends(get_sync)):
    require_auth(request)
    if not math.isfinite(position):
        raise HTTPException(422, "Position must be a finite number")
    # One row only: siblings keep their positions, concurrent moves resolve by last write
    if not sync.commit_move(card_id, to_list, position):
        raise HTTPException(404, "Card or list not found")
    return {"ok": True, "card": {"id": card_id, "board_list_id": to_list, "position": position}}

@app.delete("/api/card/{card_id}")
def delete_card(card_id: str, request: Request, sync: BoardSynchronizer = Depends(get_sync)):
    require_auth(request)
    if not sync.delete_card(card_id):
        raise HTTPException(404, "Card not found")
    return {"ok": True}
