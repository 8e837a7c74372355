from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from config import load_config
from db.database import get_db
from utils.commands import CommandDispatcher
from utils.quran import get_content_client
from utils.sessions import SessionStore

router = APIRouter()

class ChatMessage(BaseModel):
    text: str

def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions

@router.post("/{chat_id}")
def chat_message(
    chat_id: str,
    message: ChatMessage,
    sessions: SessionStore = Depends(get_sessions),
    conn = Depends(get_db),
    client = Depends(get_content_client),
):
    """Handle one chat message (a /command or a reply to a pending prompt)."""
    dispatcher = CommandDispatcher(conn, sessions, config=load_config(), client=client)
    return {"reply": dispatcher.handle(chat_id, message.text)}
