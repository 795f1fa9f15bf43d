# programme_designer/engine/draft.py
"""
Module draft: one editable module moving through the creation wizard.

    SETUP -> SCHEDULE -> COURSEWORK_SETUP -> COURSEWORK_SCHEDULE -> REVIEW -> SAVED | DISCARDED

Forward moves are gated on the current step's own checks, backward moves are
free. REVIEW is read-only; leaving it backwards unlocks editing again.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import ValidationError as PydanticValidationError

from programme_designer.engine.coursework import CourseworkWeighting
from programme_designer.engine.schedule import DeriveToken, ScheduleMatrix, Shape
from programme_designer.errors import DraftLocked, PersistenceError, StepBlocked, ValidationError
from programme_designer.schemas import CourseworkItem, ModuleDocument, ModuleSetup, ScheduleTemplate
from programme_designer.templates.base import TemplateClient

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    SETUP = "setup"
    SCHEDULE = "schedule"
    COURSEWORK_SETUP = "coursework_setup"
    COURSEWORK_SCHEDULE = "coursework_schedule"
    REVIEW = "review"
    SAVED = "saved"
    DISCARDED = "discarded"


_FORWARD = {
    WizardStep.SETUP: WizardStep.SCHEDULE,
    WizardStep.SCHEDULE: WizardStep.COURSEWORK_SETUP,
    WizardStep.COURSEWORK_SETUP: WizardStep.COURSEWORK_SCHEDULE,
    WizardStep.COURSEWORK_SCHEDULE: WizardStep.REVIEW,
}
_BACKWARD = {after: before for before, after in _FORWARD.items()}

EDITABLE_STEPS = frozenset(_FORWARD)


class ModuleWriter(Protocol):
    def create_module(self, document: ModuleDocument) -> str: ...

    def update_module_by_id(self, module_id: str, document: ModuleDocument) -> str: ...


class ModuleDraft:
    def __init__(
        self,
        setup: Optional[ModuleSetup] = None,
        schedule: Optional[ScheduleMatrix] = None,
        coursework: Optional[List[CourseworkItem]] = None,
        *,
        source_module_id: Optional[str] = None,
    ):
        self.setup = setup or ModuleSetup()
        self.schedule = schedule or ScheduleMatrix()
        self.coursework = CourseworkWeighting(coursework, self.setup.coursework_percentage)
        self.step = WizardStep.SETUP
        self.source_module_id = source_module_id
        self.module_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: ModuleDocument | dict, module_id: Optional[str] = None) -> "ModuleDraft":
        """Hydrate a draft for editing. The stored schedule shape is kept as-is."""
        if not isinstance(doc, ModuleDocument):
            doc = ModuleDocument.model_validate(doc)
        setup = doc.module_setup.model_copy(deep=True)
        derived_for = None
        if setup.semester is not None:
            derived_for = (setup.module_credit, setup.semester.value)
        schedule = ScheduleMatrix.from_persisted_form(doc.teaching_schedule, derived_for=derived_for)
        return cls(
            setup,
            schedule,
            [item.model_copy() for item in doc.coursework_list],
            source_module_id=module_id,
        )

    @property
    def is_editing(self) -> bool:
        return self.source_module_id is not None

    def to_document(self) -> ModuleDocument:
        return ModuleDocument(
            module_setup=self.setup.model_copy(deep=True),
            teaching_schedule=self.schedule.to_persisted_form(),
            coursework_list=[item.model_copy() for item in self.coursework.items],
        )

    def _ensure_editable(self) -> None:
        if self.step not in EDITABLE_STEPS:
            raise DraftLocked(f"Draft is read-only in step '{self.step.value}'")

    # ------------------------------------------------------------------
    # Setup step
    # ------------------------------------------------------------------
    def update_setup(self, field: str, value: Any) -> ModuleSetup:
        self._ensure_editable()
        name = next(
            (n for n, info in ModuleSetup.model_fields.items() if field in (n, info.alias)),
            None,
        )
        if name is None:
            raise ValidationError(f"Unknown setup field: {field!r}")

        data = self.setup.model_dump()
        data[name] = value
        try:
            updated = ModuleSetup.model_validate(data)
        except PydanticValidationError as e:
            problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise ValidationError(f"Invalid value for {field}", problems) from e

        if name == "coursework_percentage":
            self.coursework.set_coursework_percentage(updated.coursework_percentage)
            updated = updated.model_copy(update={"exam_percentage": self.coursework.exam_percentage})
        self.setup = updated
        return updated

    @property
    def form_factor(self) -> float:
        return self.coursework.form_factor

    # ------------------------------------------------------------------
    # Schedule step
    # ------------------------------------------------------------------
    def _schedule_key(self) -> Optional[tuple]:
        if self.setup.module_credit <= 0 or self.setup.semester is None:
            return None
        return (self.setup.module_credit, self.setup.semester.value)

    @property
    def needs_template(self) -> bool:
        key = self._schedule_key()
        return key is not None and self.schedule.needs_derive(*key)

    def derive_schedule(self, client: TemplateClient) -> Shape:
        self._ensure_editable()
        key = self._schedule_key()
        if key is None:
            raise ValidationError("Module credit and semester are required to derive a schedule")
        return self.schedule.derive(key[0], key[1], client)

    def request_template(self) -> Optional[DeriveToken]:
        """Start a template fetch; returns None if setup is not ready for one."""
        self._ensure_editable()
        key = self._schedule_key()
        if key is None:
            return None
        return self.schedule.begin_derive(*key)

    def apply_template(self, token: DeriveToken, template: ScheduleTemplate) -> bool:
        if self.step not in EDITABLE_STEPS:
            logger.info("Ignoring template response for draft in step '%s'", self.step.value)
            return False
        if (token.credit, token.semester) != self._schedule_key():
            logger.info("Ignoring template response for outdated credit/semester %s", (token.credit, token.semester))
            return False
        return self.schedule.complete_derive(token, template)

    def set_cell(self, week: int, session: int, value: int | Sequence[int], attribute: int = 0) -> None:
        self._ensure_editable()
        self.schedule.set_cell(week, session, value, attribute)

    # ------------------------------------------------------------------
    # Coursework steps
    # ------------------------------------------------------------------
    def add_coursework(self, item: CourseworkItem | dict) -> CourseworkItem:
        self._ensure_editable()
        return self.coursework.add_item(item)

    def remove_coursework(self, index: int) -> CourseworkItem:
        self._ensure_editable()
        return self.coursework.remove_item(index)

    def update_coursework(self, index: int, field: str, value: Any) -> CourseworkItem:
        self._ensure_editable()
        return self.coursework.update_item(index, field, value)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def step_errors(self, step: Optional[WizardStep] = None) -> List[str]:
        step = step or self.step
        if step == WizardStep.SETUP:
            return self.setup.errors()
        if step == WizardStep.SCHEDULE:
            if not self.schedule.is_derived:
                return ["Teaching schedule has not been derived"]
            if self.needs_template:
                return ["Teaching schedule is out of date for the current credit and semester"]
            return []
        if step == WizardStep.COURSEWORK_SETUP:
            return self.coursework.errors()
        if step == WizardStep.COURSEWORK_SCHEDULE:
            return self.coursework.deadline_errors(self.schedule.total_weeks)
        return []

    def validation_errors(self) -> List[str]:
        problems: List[str] = []
        for step in _FORWARD:
            problems.extend(self.step_errors(step))
        return problems

    def advance(self) -> WizardStep:
        if self.step not in _FORWARD:
            raise DraftLocked(f"Cannot advance from step '{self.step.value}'")
        problems = self.step_errors()
        if problems:
            raise StepBlocked(f"Step '{self.step.value}' is incomplete", problems)
        self.step = _FORWARD[self.step]
        return self.step

    def back(self) -> WizardStep:
        if self.step not in _BACKWARD:
            raise DraftLocked(f"Cannot go back from step '{self.step.value}'")
        self.step = _BACKWARD[self.step]
        return self.step

    def discard(self) -> None:
        if self.step == WizardStep.SAVED:
            raise DraftLocked("Draft has already been saved")
        self.step = WizardStep.DISCARDED

    def save(self, store: ModuleWriter) -> str:
        if self.step != WizardStep.REVIEW:
            raise DraftLocked(f"Draft can only be saved from review, not '{self.step.value}'")
        problems = self.validation_errors()
        if problems:
            raise StepBlocked("Draft is not valid", problems)

        document = self.to_document()
        try:
            if self.source_module_id:
                module_id = store.update_module_by_id(self.source_module_id, document)
            else:
                module_id = store.create_module(document)
        except PersistenceError:
            logger.exception("Saving module %s failed; draft kept for retry", self.setup.module_code)
            raise

        if self.step == WizardStep.DISCARDED:
            logger.info("Draft discarded while saving; ignoring result for module %s", module_id)
            return module_id

        self.module_id = module_id
        self.step = WizardStep.SAVED
        logger.info("Saved module %s (%s)", self.setup.module_code, module_id)
        return module_id

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------
    def review_summary(self) -> Dict[str, Any]:
        total_weeks = self.schedule.total_weeks
        return {
            "moduleSetup": self.setup.model_dump(by_alias=True, mode="json"),
            "formFactor": self.form_factor,
            "totalWeeks": total_weeks,
            "totalTeachingHours": self.schedule.total_hours(),
            "weeklyHours": [self.schedule.weekly_hours(w) for w in range(total_weeks)],
            "coursework": [
                {
                    "title": item.title,
                    "weight": item.weight,
                    "moduleShare": self.coursework.module_share(item),
                    "deadlineWeek": item.deadline_week,
                }
                for item in self.coursework.items
            ],
            "courseworkLoad": self.coursework.timeline(total_weeks),
        }
