from typing import Optional

from fastapi import APIRouter, Depends, Query

from config import load_config
from db.database import get_db
from utils.auth import require_authorized_chat
from utils.memorization import due_items, format_review_caption, update_schedule
from utils.quran import (
    RECITER_NAMES,
    RECITERS,
    ContentUnavailableError,
    get_content_client,
    normalize_reciter,
    resolve_audio,
)

router = APIRouter()

@router.get("/reciters")
async def list_reciters():
    return [
        {"key": key, "name": RECITER_NAMES[key], "edition": edition}
        for key, edition in RECITERS.items()
    ]

@router.get("/{chat_id}", dependencies=[Depends(require_authorized_chat)])
def review_due(
    chat_id: str,
    reciter: Optional[str] = Query(default=None),
    conn = Depends(get_db),
    client = Depends(get_content_client),
):
    """Ayahs due now, with caption and recitation link. Does not change the schedule.

    ``audio_url`` is null when the recitation cannot be resolved.
    """
    config = load_config()
    reciter_key = normalize_reciter(reciter or config["content"]["default_reciter"])
    payload = []
    for item in due_items(conn, chat_id):
        try:
            audio_url = resolve_audio(item.surah, item.ayah, reciter_key, config=config, client=client)
        except ContentUnavailableError:
            audio_url = None
        payload.append(
            {
                **item.model_dump(),
                "unit_ref": item.unit_ref,
                "caption": format_review_caption(item),
                "audio_url": audio_url,
            }
        )
    return {"chat_id": chat_id, "reciter": reciter_key, "items": payload}

@router.post("/{chat_id}/update", dependencies=[Depends(require_authorized_chat)])
async def review_update(chat_id: str, conn = Depends(get_db)):
    """Advance every due ayah to its next step."""
    return {"chat_id": chat_id, "advanced": update_schedule(conn, chat_id)}
