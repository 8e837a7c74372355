from fastapi import APIRouter, Depends

from db.database import get_db
from models.owner import Owner
from utils.auth import require_authorized_chat
from utils.items import ItemStore

router = APIRouter(dependencies=[Depends(require_authorized_chat)])

@router.post("/{chat_id}", response_model=Owner)
async def create_owner(chat_id: str, conn = Depends(get_db)):
    """Register a chat, or return the existing owner."""
    owner = ItemStore(conn).get_or_create_owner(chat_id)
    conn.commit()
    return owner
