# blueprints/planning/services.py
from __future__ import annotations
import logging
import secrets
from collections import Counter, defaultdict, deque
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from blueprints.constraints.model import ConstraintModel, ExclusionWindow, SUBJECT_DAILY_CAP
from blueprints.constraints.services import validate_timetable
from .dto import Assignment, ClassContext, LessonPlacement, TeacherConstraints, Timetable
from .errors import (
    CapacityMismatch, InvalidAssignments, InvalidTemplate, PartialFailure,
    PlanResult, UnplacedReason, UnplacedUnit, ValidationFailed,
)
from .grid import LESSON_MINUTES, Cell, TimeGrid, check_template

log = logging.getLogger(__name__)

BUDGET_PER_UNIT = 200
MIN_BUDGET = 1000


# ===== DTO =====
@dataclass(frozen=True)
class LessonUnit:
    subject_id: int
    teacher_id: int
    ordinal: int


def expand_units(assignments: Iterable[Assignment]) -> List[LessonUnit]:
    """Один юнит на каждый урок в неделю; сначала предметы с большей нагрузкой."""
    ordered = sorted(assignments, key=lambda a: (-a.weekly_lessons, a.subject_id))
    return [LessonUnit(a.subject_id, a.teacher_id, n)
            for a in ordered for n in range(1, a.weekly_lessons + 1)]


def check_assignments(assignments: Sequence[Assignment]) -> List[str]:
    errors: List[str] = []
    seen: set[int] = set()
    for a in assignments:
        if a.weekly_lessons < 1:
            errors.append(f"subject {a.subject_id}: weekly lessons must be at least 1")
        if a.subject_id in seen:
            errors.append(f"subject {a.subject_id} is assigned more than once")
        seen.add(a.subject_id)
    return errors


class PlanningStrategy(Protocol):
    def propose(self, context: ClassContext, constraints: TeacherConstraints, grid: TimeGrid, *,
                daily_cap: int = SUBJECT_DAILY_CAP) -> PlanResult:
        ...


# ===== состояние одного прогона =====
# узлы остаточной сети: ("s", subject) | ("d", subject, weekday) | ("c", cell_key)
Node = Tuple[Any, ...]


class _Search:
    """Занятые клетки, окна преподавателей и счётчики предметов одного прогона."""

    def __init__(self, grid: TimeGrid, constraints: TeacherConstraints, daily_cap: int,
                 units: Sequence[LessonUnit]):
        self.grid = grid
        self.units = units
        self.cells: List[Cell] = grid.cells()
        self.cell_by_key: Dict[Tuple[int, int], Cell] = {c.key: c for c in self.cells}
        self.days: List[int] = sorted({c.weekday for c in self.cells})
        self.day_cells: Dict[int, List[Cell]] = {d: [c for c in self.cells if c.weekday == d] for d in self.days}
        self.teacher_of: Dict[int, int] = {u.subject_id: u.teacher_id for u in units}
        self.model = ConstraintModel(constraints, daily_cap=daily_cap)
        # только внешние окна: клетки одного дня не пересекаются, свои уроки мешают лишь в своей клетке
        self.external = ConstraintModel(constraints, daily_cap=daily_cap)
        self._free: Dict[Tuple[int, Tuple[int, int]], bool] = {}
        self.filled: Dict[Tuple[int, int], int] = {}
        self.teacher_days: Counter = Counter()
        self._windows: Dict[int, Tuple[Cell, ExclusionWindow]] = {}

    def available(self, teacher_id: int, cell: Cell) -> bool:
        key = (teacher_id, cell.key)
        if key not in self._free:
            self._free[key] = self.external.is_teacher_free(teacher_id, cell.weekday, cell.slot.start, cell.slot.end)
        return self._free[key]

    def eligible(self, unit: LessonUnit, cell: Cell) -> bool:
        return (cell.key not in self.filled
                and self.model.can_place_subject(unit.subject_id, cell.weekday)
                and self.model.is_teacher_free(unit.teacher_id, cell.weekday, cell.slot.start, cell.slot.end))

    def day_order(self, teacher_id: int) -> List[int]:
        # дни, где преподаватель уже ведёт этот класс, идут первыми
        return sorted(self.days, key=lambda d: (self.teacher_days[(teacher_id, d)] == 0, d))

    def candidates(self, unit: LessonUnit) -> List[Cell]:
        return [c for d in self.day_order(unit.teacher_id) for c in self.day_cells[d] if self.eligible(unit, c)]

    def place(self, idx: int, cell: Cell) -> None:
        unit = self.units[idx]
        self.filled[cell.key] = idx
        self.model.place_subject(unit.subject_id, cell.weekday)
        w = self.model.block(unit.teacher_id, cell.weekday, cell.slot.start, cell.slot.end, ref=unit)
        self.teacher_days[(unit.teacher_id, cell.weekday)] += 1
        self._windows[idx] = (cell, w)

    def unplace(self, idx: int) -> None:
        unit = self.units[idx]
        cell, w = self._windows.pop(idx)
        del self.filled[cell.key]
        self.model.unplace_subject(unit.subject_id, cell.weekday)
        self.model.release(unit.teacher_id, cell.weekday, w)
        self.teacher_days[(unit.teacher_id, cell.weekday)] -= 1

    def is_placed(self, idx: int) -> bool:
        return idx in self._windows

    # ---------- цепочки вытеснений ----------
    def _neighbours(self, node: Node) -> Iterable[Node]:
        if node[0] == "s":
            subject = node[1]
            for d in self.day_order(self.teacher_of[subject]):
                if self.model.can_place_subject(subject, d):
                    yield ("d", subject, d)
        elif node[0] == "d":
            _, subject, d = node
            teacher = self.teacher_of[subject]
            for cell in self.day_cells[d]:
                occupant = self.filled.get(cell.key)
                if occupant is not None and self.units[occupant].subject_id == subject:
                    continue
                if self.available(teacher, cell):
                    yield ("c", cell.key)
            # урок этого предмета может уйти из дня d в другой день
            if self.model.subject_count(subject, d) > 0:
                yield ("s", subject)
        else:
            key = node[1]
            yield ("d", self.units[self.filled[key]].subject_id, key[0])

    def repair(self, idx: int, limit: int) -> Tuple[bool, int, bool]:
        """
        Поиск в ширину цепочки вытеснений для застрявшего юнита: он занимает
        клетку другого предмета, вытесненный урок переходит в другую клетку
        того же дня или в другой день, и так до свободной клетки.

        Возвращает (поставлен, потрачено шагов, поиск завершён полностью).
        """
        start: Node = ("s", self.units[idx].subject_id)
        parent: Dict[Node, Optional[Node]] = {start: None}
        queue = deque([start])
        steps = 0
        while queue:
            if steps >= limit:
                return False, steps, False
            node = queue.popleft()
            steps += 1
            for nxt in self._neighbours(node):
                if nxt in parent:
                    continue
                parent[nxt] = node
                if nxt[0] == "c" and nxt[1] not in self.filled:
                    self._apply(idx, nxt, parent)
                    return True, steps, True
                queue.append(nxt)
        return False, steps, True

    def _apply(self, idx: int, end: Node, parent: Dict[Node, Optional[Node]]) -> None:
        path: List[Node] = []
        node: Optional[Node] = end
        while node is not None:
            path.append(node)
            node = parent[node]
        path.reverse()

        moved_out: List[Tuple[int, int]] = []
        moved_in: List[Tuple[Tuple[int, int], int]] = []
        for a, b in zip(path, path[1:]):
            if a[0] == "d" and b[0] == "c":
                moved_in.append((b[1], a[1]))
            elif a[0] == "c" and b[0] == "d":
                moved_out.append(a[1])

        # юниты одного предмета взаимозаменяемы: освобождённые уходят в общий пул
        pool: Dict[int, List[int]] = defaultdict(list)
        pool[self.units[idx].subject_id].append(idx)
        for key in moved_out:
            occupant = self.filled[key]
            self.unplace(occupant)
            pool[self.units[occupant].subject_id].append(occupant)
        for key, subject in moved_in:
            self.place(pool[subject].pop(0), self.cell_by_key[key])

    def diagnose(self, unit: LessonUnit) -> UnplacedReason:
        free = [c for c in self.cells if c.key not in self.filled]
        if not free:
            return UnplacedReason.NO_CAPACITY
        for c in free:
            if self.available(unit.teacher_id, c):
                return UnplacedReason.SUBJECT_CAP_REACHED
        return UnplacedReason.TEACHER_CONFLICT

    def placements(self) -> List[LessonPlacement]:
        out = []
        for idx, (cell, _) in self._windows.items():
            u = self.units[idx]
            out.append(LessonPlacement(
                subject_id=u.subject_id, teacher_id=u.teacher_id, weekday=cell.weekday,
                start=cell.slot.start, end=cell.slot.end, is_generated=True,
            ))
        out.sort(key=lambda p: (p.weekday, p.start_min, p.subject_id))
        return out


# ===== поиск с возвратами =====
class BacktrackingStrategy:
    """
    Юниты ставятся по очереди в первую подходящую клетку. Если такой нет,
    ранее поставленные уроки других предметов откатываются и переносятся
    по цепочке вытеснений, пока не освободится место.

    Каждый просмотренный узел цепочки тратит единицу бюджета. Предмет, для
    которого полный поиск цепочки ничего не нашёл, дальше не пробуется:
    освободить ему место нельзя. Неразмещённые юниты диагностируются.
    """

    def __init__(self, budget: Optional[int] = None,
                 budget_per_unit: int = BUDGET_PER_UNIT, min_budget: int = MIN_BUDGET):
        self.budget = budget
        self.budget_per_unit = budget_per_unit
        self.min_budget = min_budget

    def budget_for(self, n_units: int) -> int:
        if self.budget is not None:
            return self.budget
        return max(self.min_budget, self.budget_per_unit * n_units)

    def propose(self, context: ClassContext, constraints: TeacherConstraints, grid: TimeGrid, *,
                daily_cap: int = SUBJECT_DAILY_CAP) -> PlanResult:
        units = expand_units(context.assignments)
        n = len(units)
        budget = self.budget_for(n)
        log.info("timetable search started", extra={
            "event": "timetable_search", "class_id": context.class_id,
            "units": n, "budget": budget,
        })

        search = _Search(grid, constraints, daily_cap, units)
        dead: set[int] = set()
        used = 0

        for idx, unit in enumerate(units):
            options = search.candidates(unit)
            if options:
                search.place(idx, options[0])
                continue
            if unit.subject_id in dead or used >= budget:
                continue
            ok, steps, complete = search.repair(idx, budget - used)
            used += steps
            if not ok and complete:
                dead.add(unit.subject_id)

        unplaced = [UnplacedUnit(u.subject_id, u.teacher_id, u.ordinal, search.diagnose(u))
                    for idx, u in enumerate(units) if not search.is_placed(idx)]
        placed = search.placements()
        if not unplaced:
            return PlanResult(timetable=Timetable(context.class_id, tuple(placed)), backtracks=used)
        return PlanResult(error=PartialFailure(placed=placed, unplaced=unplaced, attempts=used), backtracks=used)


# ===== внешнее предложение =====
class ProposalStrategy:
    """Готовое предложение извне. Ничего не проверяет: проверка в generate_timetable."""

    def __init__(self, placements: Iterable[LessonPlacement]):
        self.placements = tuple(placements)

    def propose(self, context: ClassContext, constraints: TeacherConstraints, grid: TimeGrid, *,
                daily_cap: int = SUBJECT_DAILY_CAP) -> PlanResult:
        return PlanResult(timetable=Timetable(context.class_id, self.placements))


# ===== фасад планировщика =====
def generate_timetable(context: ClassContext, constraints: TeacherConstraints, *,
                       strategy: Optional[PlanningStrategy] = None,
                       lesson_minutes: int = LESSON_MINUTES,
                       daily_cap: int = SUBJECT_DAILY_CAP) -> PlanResult:
    """
    Главная точка входа ядра. Ошибки возвращаются значением в PlanResult.error,
    исключения наружу не выходят. Любой успех стратегии проходит validate_timetable.
    """
    reasons = check_template(context.template)
    if reasons:
        return PlanResult(error=InvalidTemplate(reasons))
    reasons = check_assignments(context.assignments)
    if reasons:
        return PlanResult(error=InvalidAssignments(reasons))

    grid = TimeGrid(context.template, lesson_minutes)
    required, available = context.required_total, grid.capacity
    if required != available:
        log.warning("capacity mismatch", extra={
            "event": "capacity_mismatch", "class_id": context.class_id,
            "required": required, "available": available,
        })
        return PlanResult(error=CapacityMismatch(required=required, available=available))

    strategy = strategy or BacktrackingStrategy()
    result = strategy.propose(context, constraints, grid, daily_cap=daily_cap)

    if not result.ok:
        if isinstance(result.error, PartialFailure):
            log.warning("timetable incomplete", extra={
                "event": "partial_failure", "class_id": context.class_id,
                "unplaced": len(result.error.unplaced), "attempts": result.error.attempts,
            })
        return result

    violations = validate_timetable(result.timetable, context, constraints,
                                    lesson_minutes=lesson_minutes, daily_cap=daily_cap)
    if violations:
        return PlanResult(error=ValidationFailed(violations), backtracks=result.backtracks)

    log.info("timetable generated", extra={
        "event": "timetable_generated", "class_id": context.class_id,
        "lessons": len(result.timetable), "backtracks": result.backtracks,
    })
    return result


# ===== простое in-memory хранилище предпросмотров =====
class PreviewStore:
    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}

    def save(self, payload: Dict[str, Any]) -> str:
        # у класса один живой предпросмотр: новый вытесняет старые
        class_id = payload.get("class_id")
        for old in [k for k, v in self._data.items() if v.get("class_id") == class_id]:
            del self._data[old]
        pid = secrets.token_urlsafe(8)
        self._data[pid] = payload
        return pid

    def get(self, pid: str) -> Optional[Dict[str, Any]]:
        return self._data.get(pid)

    def delete(self, pid: str) -> None:
        self._data.pop(pid, None)

preview_store = PreviewStore()
