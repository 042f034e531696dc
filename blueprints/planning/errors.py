# blueprints/planning/errors.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from .dto import LessonPlacement, Timetable


class UnplacedReason(str, Enum):
    TEACHER_CONFLICT = "TEACHER_CONFLICT"
    SUBJECT_CAP_REACHED = "SUBJECT_CAP_REACHED"
    NO_CAPACITY = "NO_CAPACITY"


@dataclass(frozen=True)
class UnplacedUnit:
    subject_id: int
    teacher_id: int
    ordinal: int  # номер урока предмета в неделе, с 1
    reason: UnplacedReason

    def to_dict(self) -> Dict[str, Any]:
        return {"subject_id": self.subject_id, "teacher_id": self.teacher_id,
                "ordinal": self.ordinal, "reason": self.reason.value}


@dataclass
class CapacityMismatch:
    code: ClassVar[str] = "CAPACITY_MISMATCH"
    required: int
    available: int

    def details(self) -> Dict[str, Any]:
        return {"required": self.required, "available": self.available}


@dataclass
class PartialFailure:
    code: ClassVar[str] = "PARTIAL_FAILURE"
    placed: List[LessonPlacement]
    unplaced: List[UnplacedUnit]
    attempts: int = 0

    def details(self) -> Dict[str, Any]:
        return {
            "placed": [p.to_dict() for p in self.placed],
            "unplaced": [u.to_dict() for u in self.unplaced],
            "attempts": self.attempts,
        }


@dataclass
class InvalidTemplate:
    code: ClassVar[str] = "INVALID_TEMPLATE"
    reasons: List[str]

    def details(self) -> Dict[str, Any]:
        return {"reasons": list(self.reasons)}


@dataclass
class InvalidAssignments:
    code: ClassVar[str] = "INVALID_ASSIGNMENTS"
    reasons: List[str]

    def details(self) -> Dict[str, Any]:
        return {"reasons": list(self.reasons)}


@dataclass
class ValidationFailed:
    code: ClassVar[str] = "VALIDATION_FAILED"
    violations: list = field(default_factory=list)  # list[Violation]

    def details(self) -> Dict[str, Any]:
        return {"violations": [v.to_dict() for v in self.violations]}


SchedulerError = Union[CapacityMismatch, PartialFailure, InvalidTemplate, InvalidAssignments, ValidationFailed]


@dataclass
class PlanResult:
    timetable: Optional[Timetable] = None
    error: Optional[SchedulerError] = None
    backtracks: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.timetable is not None

    def error_dict(self) -> Optional[Dict[str, Any]]:
        if self.error is None:
            return None
        return {"code": self.error.code, "details": self.error.details()}
