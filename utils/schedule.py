from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from models.review_item import ReviewItem, Stage

STAGE_ORDER: Tuple[Stage, ...] = (Stage.NEW, Stage.CONSOLIDATING, Stage.LONG_TERM)

DEFAULT_INTERVALS: Dict[Stage, Tuple[int, ...]] = {
    Stage.NEW: (1, 3, 7),
    Stage.CONSOLIDATING: (14, 30),
    Stage.LONG_TERM: (90, 180),
}

# Config keys used by the [schedule] table
CONFIG_STAGE_KEYS = {
    Stage.NEW: "new",
    Stage.CONSOLIDATING: "consolidating",
    Stage.LONG_TERM: "long_term",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_stage(stage: Stage) -> Stage:
    """New -> Consolidating -> LongTerm. LongTerm stays LongTerm."""
    index = STAGE_ORDER.index(Stage(stage))
    return STAGE_ORDER[min(index + 1, len(STAGE_ORDER) - 1)]


def intervals_from_config(schedule_cfg: Mapping[str, Any]) -> Dict[Stage, Tuple[int, ...]]:
    """Build an interval table from the [schedule] config section."""
    intervals: Dict[Stage, Tuple[int, ...]] = {}
    for stage, key in CONFIG_STAGE_KEYS.items():
        values = schedule_cfg.get(key, DEFAULT_INTERVALS[stage])
        intervals[stage] = tuple(int(value) for value in values)
    return intervals


class ScheduleEngine:
    """Fixed-curve spaced repetition for memorized ayahs.

    Each item sits at a stage (sabak, sabki, manzil) and a step inside that
    stage's interval list. Advancing a due item moves it one step forward,
    rolling into the next stage when the current list is exhausted. Manzil
    has no next stage, so a manzil item alternates between its intervals
    forever.

    The engine never touches storage; callers persist what it returns.
    """

    def __init__(self, intervals: Optional[Mapping[Stage, Sequence[int]]] = None):
        table = DEFAULT_INTERVALS if intervals is None else intervals
        self.intervals: Dict[Stage, Tuple[int, ...]] = {}
        for stage in STAGE_ORDER:
            if stage not in table:
                raise ValueError(f"Missing intervals for stage '{stage.value}'")
            steps = tuple(int(days) for days in table[stage])
            if not steps:
                raise ValueError(f"Stage '{stage.value}' needs at least one interval")
            if any(days <= 0 for days in steps):
                raise ValueError(f"Intervals for stage '{stage.value}' must be positive")
            self.intervals[stage] = steps

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ScheduleEngine":
        return cls(intervals_from_config(config.get("schedule", {})))

    def initialize(
        self,
        surah: int,
        ayah: int,
        page: int,
        *,
        number: Optional[int] = None,
        text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewItem:
        """New item at sabak step 0, due immediately."""
        return ReviewItem(
            surah=surah,
            ayah=ayah,
            page=page,
            number=number,
            text=text,
            stage=Stage.NEW,
            step=0,
            next_due=as_utc(now) if now is not None else utcnow(),
        )

    @staticmethod
    def is_due(item: ReviewItem, as_of: datetime) -> bool:
        return as_utc(item.next_due) <= as_utc(as_of)

    def select_due(self, items: Iterable[ReviewItem], as_of: datetime) -> List[ReviewItem]:
        """Return the items due at ``as_of``, ordered by page then surah:ayah.

        Selection does not modify the items.
        """
        due = [item for item in items if self.is_due(item, as_of)]
        due.sort(key=lambda item: (item.page, item.surah, item.ayah))
        return due

    def advance(self, item: ReviewItem, as_of: datetime) -> ReviewItem:
        """Return a copy of ``item`` moved one step along the curve from ``as_of``."""
        stage = Stage(item.stage)
        step = item.step
        steps = self.intervals[stage]
        if step >= len(steps) - 1:
            stage = next_stage(stage)
            step = 0
        else:
            step += 1
        next_due = as_utc(as_of) + timedelta(days=self.intervals[stage][step])
        return item.model_copy(update={"stage": stage, "step": step, "next_due": next_due})

    def advance_all_due(self, items: Iterable[ReviewItem], as_of: datetime) -> List[ReviewItem]:
        """Advance every due item; items that are not due come back untouched."""
        return [
            self.advance(item, as_of) if self.is_due(item, as_of) else item
            for item in items
        ]


def build_engine(config: Optional[Mapping[str, Any]] = None) -> ScheduleEngine:
    """Engine using the configured interval table."""
    if config is None:
        from config import load_config

        config = load_config()
    return ScheduleEngine.from_config(config)
