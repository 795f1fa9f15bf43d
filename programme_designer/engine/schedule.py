# programme_designer/engine/schedule.py
"""
Teaching schedule matrix.

The matrix is a 3-level nested list ``weeks[sessions[attributes]]`` of
non-negative ints (contact hours). Week and session indices are 0-based.

Its shape is derived once from a (credit, semester) pair through the template
collaborator and never changes while cells are edited. Template fetches are
tokenised: a response is applied only if no newer fetch was issued and no cell
was edited after the fetch started.
"""
import copy
import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

from programme_designer.errors import OutOfRange, ValidationError
from programme_designer.schemas import PersistedSchedule, ScheduleTemplate
from programme_designer.templates.base import TemplateClient

logger = logging.getLogger(__name__)

Shape = Tuple[int, int, int]


class DeriveToken(NamedTuple):
    generation: int
    revision: int
    credit: int
    semester: str


def _shape_of(weeks: List[List[List[int]]]) -> Optional[Shape]:
    if not weeks:
        return None
    sessions = len(weeks[0])
    if not sessions:
        raise ValidationError("Schedule weeks must have at least one session")
    attributes = len(weeks[0][0])
    if not attributes:
        raise ValidationError("Schedule cells must have at least one attribute")
    for week in weeks:
        if len(week) != sessions:
            raise ValidationError("Schedule weeks must all have the same number of sessions")
        for cell in week:
            if len(cell) != attributes:
                raise ValidationError("Schedule cells must all have the same number of attributes")
    return (len(weeks), sessions, attributes)


class ScheduleMatrix:
    def __init__(self, weeks: Optional[List[List[List[int]]]] = None,
                 derived_for: Optional[Tuple[int, str]] = None):
        self._weeks: List[List[List[int]]] = copy.deepcopy(weeks) if weeks else []
        self._shape = _shape_of(self._weeks)
        self._derived_for = derived_for if self._shape else None
        self._generation = 0
        self._revision = 0

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Optional[Shape]:
        return self._shape

    @property
    def is_derived(self) -> bool:
        return self._shape is not None

    @property
    def derived_for(self) -> Optional[Tuple[int, str]]:
        return self._derived_for

    @property
    def total_weeks(self) -> int:
        return self._shape[0] if self._shape else 0

    def needs_derive(self, credit: int, semester: str) -> bool:
        """True when the shape is missing or was derived for another (credit, semester)."""
        if not self._shape:
            return True
        return self._derived_for != (credit, semester)

    def derive(self, credit: int, semester: str, client: TemplateClient) -> Shape:
        token = self.begin_derive(credit, semester)
        template = client.fetch_template(credit, semester)
        self.complete_derive(token, template)
        return self._shape

    def begin_derive(self, credit: int, semester: str) -> DeriveToken:
        self._generation += 1
        return DeriveToken(self._generation, self._revision, credit, semester)

    def complete_derive(self, token: DeriveToken, template: ScheduleTemplate) -> bool:
        if token.generation != self._generation:
            logger.info("Discarding stale template response (generation %d, current %d)",
                        token.generation, self._generation)
            return False
        if token.revision != self._revision:
            logger.info("Discarding template response: schedule edited after fetch was issued")
            return False

        if template.seed is not None:
            weeks = copy.deepcopy(template.seed)
        else:
            weeks = [
                [[0] * template.attributes for _ in range(template.sessions)]
                for _ in range(template.weeks)
            ]
        self._weeks = weeks
        self._shape = (template.weeks, template.sessions, template.attributes)
        self._derived_for = (token.credit, token.semester)
        self._revision += 1
        logger.debug("Derived schedule shape %s for credit=%s semester=%s",
                     self._shape, token.credit, token.semester)
        return True

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------
    def _check_index(self, week: int, session: int) -> None:
        if not self._shape:
            raise OutOfRange("Schedule shape has not been derived yet")
        weeks, sessions, _ = self._shape
        if not 0 <= week < weeks:
            raise OutOfRange(f"Week {week} outside 0..{weeks - 1}")
        if not 0 <= session < sessions:
            raise OutOfRange(f"Session {session} outside 0..{sessions - 1}")

    def cell(self, week: int, session: int) -> List[int]:
        self._check_index(week, session)
        return list(self._weeks[week][session])

    def set_cell(self, week: int, session: int, value: int | Sequence[int], attribute: int = 0) -> None:
        self._check_index(week, session)
        attributes = self._shape[2]

        if isinstance(value, int):
            if not 0 <= attribute < attributes:
                raise OutOfRange(f"Attribute {attribute} outside 0..{attributes - 1}")
            values = list(self._weeks[week][session])
            values[attribute] = value
        else:
            values = list(value)
            if len(values) != attributes:
                raise OutOfRange(f"Expected {attributes} attribute values, got {len(values)}")

        if any(v < 0 for v in values):
            raise ValidationError("Schedule hours cannot be negative")

        self._weeks[week][session] = values
        self._revision += 1

    def weekly_hours(self, week: int) -> int:
        self._check_index(week, 0)
        return sum(sum(cell) for cell in self._weeks[week])

    def total_hours(self) -> int:
        return sum(sum(sum(cell) for cell in week) for week in self._weeks)

    def to_nested(self) -> List[List[List[int]]]:
        return copy.deepcopy(self._weeks)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    def to_persisted_form(self) -> PersistedSchedule:
        shape = list(self._shape) if self._shape else [0, 0, 0]
        cells = [v for week in self._weeks for cell in week for v in cell]
        return PersistedSchedule(shape=shape, cells=cells)

    @classmethod
    def from_persisted_form(cls, doc: PersistedSchedule | dict,
                            derived_for: Optional[Tuple[int, str]] = None) -> "ScheduleMatrix":
        if not isinstance(doc, PersistedSchedule):
            doc = PersistedSchedule.model_validate(doc)

        weeks, sessions, attributes = doc.shape
        if not (weeks or sessions or attributes):
            return cls()
        if not (weeks and sessions and attributes):
            raise ValidationError(f"Schedule shape {doc.shape} has an empty dimension")

        it = iter(doc.cells)
        nested = [
            [[next(it) for _ in range(attributes)] for _ in range(sessions)]
            for _ in range(weeks)
        ]
        return cls(nested, derived_for=derived_for)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScheduleMatrix):
            return NotImplemented
        return self._shape == other._shape and self._weeks == other._weeks

    def __repr__(self) -> str:
        return f"ScheduleMatrix(shape={self._shape}, total_hours={self.total_hours()})"
