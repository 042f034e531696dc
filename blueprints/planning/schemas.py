from __future__ import annotations
from datetime import time
from typing import Any, List
from pydantic import BaseModel, Field, field_validator, model_validator

from .dto import LessonPlacement, parse_time, parse_weekday

# с запасом больше любой недели: 5 дней по 24 часа уроками по 50 минут
MAX_PLACEMENTS = 150

# ---------- Placements ----------
class PlacementIn(BaseModel):
    subject_id: int = Field(ge=1)
    teacher_id: int = Field(ge=1)
    weekday: int
    start: time
    end: time
    is_generated: bool = True

    @field_validator("weekday", mode="before")
    @classmethod
    def _weekday(cls, v: Any) -> int:
        # 0..4, "Mon"/"Monday", "Segunda"/"Segunda-feira"
        return parse_weekday(v)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _time(cls, v: Any) -> time:
        return parse_time(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.end <= self.start:
            raise ValueError("end must be > start")
        return self

    def to_placement(self) -> LessonPlacement:
        return LessonPlacement(
            subject_id=self.subject_id, teacher_id=self.teacher_id, weekday=self.weekday,
            start=self.start, end=self.end, is_generated=self.is_generated,
        )

# ---------- Requests ----------
class ClassIn(BaseModel):
    class_id: int = Field(ge=1)

class CommitIn(BaseModel):
    preview_id: str = Field(min_length=1)

class ProposeIn(ClassIn):
    placements: List[PlacementIn] = Field(default_factory=list, max_length=MAX_PLACEMENTS)

    def to_placements(self) -> List[LessonPlacement]:
        return [p.to_placement() for p in self.placements]

# проверка кандидата из любого источника: тот же формат
CheckIn = ProposeIn
