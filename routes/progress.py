from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from db.database import get_db
from utils.auth import require_authorized_chat
from utils.memorization import page_progress

router = APIRouter(dependencies=[Depends(require_authorized_chat)])
base_dir = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(base_dir / "templates"))

@router.get("/{chat_id}")
async def progress_json(chat_id: str, conn = Depends(get_db)):
    """Per-page totals and stage counts."""
    progress = page_progress(conn, chat_id)
    return {"chat_id": chat_id, "pages": [entry.model_dump() for entry in progress.values()]}

@router.get("/{chat_id}/view", response_class=HTMLResponse)
async def progress_view(chat_id: str, request: Request, conn = Depends(get_db)):
    progress = page_progress(conn, chat_id)
    return templates.TemplateResponse(
        request,
        "progress.html",
        {"chat_id": chat_id, "pages": list(progress.values())},
    )
