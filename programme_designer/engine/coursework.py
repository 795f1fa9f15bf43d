# programme_designer/engine/coursework.py
"""
Coursework weighting.

Item weights are percentages of the coursework pool and must add up to 100
whenever at least one item exists. Mutations never block on that rule; callers
gate on ``is_valid()``.

``form_factor`` is the share of the whole module carried by coursework
(``coursework_percentage / 100``). It turns a pool weight into a module share
and is what the coursework-schedule step uses to place items on the timeline.
"""
import logging
import math
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from programme_designer.errors import DeadlineOutOfBounds, ValidationError
from programme_designer.schemas import CourseworkItem

logger = logging.getLogger(__name__)

WEIGHT_TOTAL = 100
WEIGHT_TOLERANCE = 1e-6


def validate_deadline(item: CourseworkItem, total_weeks: int) -> None:
    if item.deadline_week > total_weeks:
        raise DeadlineOutOfBounds(
            f"'{item.title}' deadline week {item.deadline_week} is after the last teaching week ({total_weeks})"
        )
    if item.deadline_week - item.released_week_earlier < 0:
        raise DeadlineOutOfBounds(
            f"'{item.title}' is released {item.released_week_earlier} weeks before week "
            f"{item.deadline_week}, which is before the module starts"
        )


def _field_name(field: str) -> str:
    for name, info in CourseworkItem.model_fields.items():
        if field in (name, info.alias):
            return name
    raise ValidationError(f"Unknown coursework field: {field!r}")


class CourseworkWeighting:
    def __init__(self, items: Optional[List[CourseworkItem]] = None, coursework_percentage: int = 0):
        self.items: List[CourseworkItem] = list(items or [])
        self.coursework_percentage = 0
        self.form_factor = 0.0
        self.set_coursework_percentage(coursework_percentage)

    @property
    def exam_percentage(self) -> int:
        return 100 - self.coursework_percentage

    def set_coursework_percentage(self, percentage: int) -> float:
        if not 0 <= percentage <= 100:
            raise ValidationError(f"Coursework percentage must be within 0..100, got {percentage}")
        self.coursework_percentage = percentage
        self.form_factor = percentage / 100
        return self.form_factor

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_item(self, item: CourseworkItem | dict) -> CourseworkItem:
        if not isinstance(item, CourseworkItem):
            item = self._validate_item(item)
        self.items.append(item)
        self._log_state("added")
        return item

    def remove_item(self, index: int) -> CourseworkItem:
        item = self.items.pop(index)
        self._log_state("removed")
        return item

    def update_item(self, index: int, field: str, value: Any) -> CourseworkItem:
        current = self.items[index]
        name = _field_name(field)
        updated = self._validate_item({**current.model_dump(), name: value})
        self.items[index] = updated
        self._log_state("updated")
        return updated

    @staticmethod
    def _validate_item(data: dict) -> CourseworkItem:
        try:
            return CourseworkItem.model_validate(data)
        except PydanticValidationError as e:
            problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise ValidationError("Invalid coursework item", problems) from e

    def _log_state(self, action: str) -> None:
        if not self.is_valid():
            logger.debug("Coursework %s; weights total %.2f (expected %d)", action, self.total_weight(), WEIGHT_TOTAL)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def total_weight(self) -> float:
        return sum(item.weight for item in self.items)

    def is_valid(self) -> bool:
        if not self.items:
            return True
        return math.isclose(self.total_weight(), WEIGHT_TOTAL, abs_tol=WEIGHT_TOLERANCE)

    def errors(self) -> List[str]:
        if self.is_valid():
            return []
        return [f"Coursework weights must add up to {WEIGHT_TOTAL} (currently {self.total_weight():g})"]

    def deadline_errors(self, total_weeks: int) -> List[str]:
        problems = []
        for item in self.items:
            try:
                validate_deadline(item, total_weeks)
            except DeadlineOutOfBounds as e:
                problems.append(str(e))
        return problems

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------
    def module_share(self, item: CourseworkItem) -> float:
        return item.weight * self.form_factor

    def timeline(self, total_weeks: int) -> List[float]:
        """
        Module-share load per teaching week (index 0 is week 1).
        Each item's share is spread evenly over the weeks between its release
        and its deadline, inclusive. Release week 0 counts as week 1.
        """
        load = [0.0] * total_weeks
        for item in self.items:
            start = max(1, item.deadline_week - item.released_week_earlier)
            end = min(item.deadline_week, total_weeks)
            if end < start:
                continue
            per_week = self.module_share(item) / (end - start + 1)
            for week in range(start, end + 1):
                load[week - 1] += per_week
        return load
