from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from db.database import get_db
from utils.auth import require_authorized_chat
from utils.memorization import add_page, list_pages, remove_page
from utils.quran import ContentUnavailableError, get_content_client

router = APIRouter(dependencies=[Depends(require_authorized_chat)])

@router.get("/{chat_id}")
async def get_pages(chat_id: str, conn = Depends(get_db)):
    """Pages currently being memorized."""
    return {"chat_id": chat_id, "pages": list_pages(conn, chat_id)}

# Plain def: adding a page may call the content API, so it runs in the threadpool
@router.post("/{chat_id}/{page}")
def add_page_for_memorization(
    chat_id: str,
    page: int,
    start_ayah: Optional[int] = Query(default=None, ge=1),
    end_ayah: Optional[int] = Query(default=None, ge=1),
    conn = Depends(get_db),
    client = Depends(get_content_client),
):
    """Schedule a whole page, or an ayah range when both bounds are given."""
    if (start_ayah is None) != (end_ayah is None):
        raise HTTPException(status_code=400, detail="Give both start_ayah and end_ayah, or neither")
    unit_range = (start_ayah, end_ayah) if start_ayah is not None else None
    try:
        added = add_page(conn, chat_id, page, unit_range, client=client)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ContentUnavailableError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return {"chat_id": chat_id, "page": page, "added": added}

@router.delete("/{chat_id}/{page}")
def remove_page_from_memorization(chat_id: str, page: int, conn = Depends(get_db)):
    try:
        removed = remove_page(conn, chat_id, page)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"chat_id": chat_id, "page": page, "removed": removed}
