from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime
from enum import Enum

class Stage(str, Enum):
    NEW = "sabak"
    CONSOLIDATING = "sabki"
    LONG_TERM = "manzil"

class ReviewItemCreate(BaseModel):
    surah: int
    ayah: int
    page: int
    number: Optional[int] = None  # global ayah number across the mushaf
    text: Optional[str] = None

    @validator('page')
    def validate_page(cls, v):
        if not 1 <= v <= 604:
            raise ValueError("Page must be between 1 and 604")
        return v

class ReviewItem(ReviewItemCreate):
    id: Optional[int] = None
    owner_id: Optional[int] = None
    stage: Stage = Stage.NEW
    step: int = 0
    next_due: datetime

    @property
    def unit_ref(self) -> str:
        return f"{self.surah}:{self.ayah}"

    class Config:
        from_attributes = True

class PageProgress(BaseModel):
    page: int
    total: int = 0
    sabak: int = 0
    sabki: int = 0
    manzil: int = 0
