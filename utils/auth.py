from __future__ import annotations

import hmac
from typing import Any, List, Mapping, Optional

from fastapi import Header, HTTPException, status

from config import load_config


def get_allowed_chat_ids(config: Optional[Mapping[str, Any]] = None) -> List[str]:
    if config is None:
        config = load_config()
    return list(config.get("access", {}).get("allowed_chat_ids", []))


def is_authorized_chat(chat_id: Any, config: Optional[Mapping[str, Any]] = None) -> bool:
    """An empty allow-list means the bot is open to every chat."""
    allowed = get_allowed_chat_ids(config)
    if not allowed:
        return True
    return str(chat_id) in allowed


def require_authorized_chat(chat_id: str) -> str:
    """FastAPI dependency for routes that take a ``chat_id`` path parameter."""
    if not is_authorized_chat(chat_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Chat is not authorized")
    return chat_id


def require_admin_token(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Admin endpoints need HIFZ_ADMIN_TOKEN; they stay closed when it is unset."""
    expected = load_config().get("access", {}).get("admin_token")
    if not expected or not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin token required")
