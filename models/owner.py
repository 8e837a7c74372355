from pydantic import BaseModel
from typing import Optional

class OwnerBase(BaseModel):
    chat_id: str

class Owner(OwnerBase):
    id: int
    created_at: Optional[str] = None  # ISO datetime

    class Config:
        from_attributes = True
