# programme_designer/designer.py
"""
Application controller for one administrator session.

Owns the designer state (programmes, instances, active filter, open draft)
and the two collaborators. Collaborator failures are turned into notices so a
failed action never loses local state; the user can simply retry.
"""
import logging
from typing import List, Optional

from pydantic import BaseModel

from programme_designer.engine.assignment import ALL_PROGRAMMES, FilterCriteria, InstanceAssignment, SaveReport
from programme_designer.engine.draft import ModuleDraft, WizardStep
from programme_designer.errors import (
    DraftLocked,
    NotFound,
    PersistenceError,
    StepBlocked,
    TemplateUnavailable,
    ValidationError,
)
from programme_designer.schemas import ModuleInstance
from programme_designer.store import ModuleStore
from programme_designer.templates.base import TemplateClient

logger = logging.getLogger(__name__)


class Notice(BaseModel):
    level: str  # info/warning/error
    message: str


class DesignerSession:
    def __init__(self, store: ModuleStore, templates: TemplateClient):
        self.store = store
        self.templates = templates
        self.assignment = InstanceAssignment()
        self.criteria = FilterCriteria()
        self.draft: Optional[ModuleDraft] = None
        self.notices: List[Notice] = []

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    def take_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # -------------------------
    # Programme designer
    # -------------------------
    def refresh(self) -> bool:
        """
        Reload programmes and modules. Programme ``moduleIds`` are module ids in
        storage; each placement becomes its own instance. Modules placed nowhere
        land in the search pool. References to missing modules are dropped.
        """
        try:
            programmes = self.store.list_programmes()
            modules = {m.id: m.document for m in self.store.list_modules()}
        except PersistenceError as e:
            self._notify("error", f"Could not load programmes: {e}")
            return False

        assignment = InstanceAssignment()
        assignment.load([p.model_copy(update={"module_ids": []}) for p in programmes], [])
        placed = set()
        for programme in programmes:
            for module_id in programme.module_ids:
                if module_id not in modules:
                    logger.warning("Programme %s references missing module %s", programme.id, module_id)
                    self._notify("warning", f"Programme {programme.name} referenced a missing module; it was removed")
                    continue
                assignment.add_instance(module_id, modules[module_id], programme.id)
                placed.add(module_id)

        for module_id, document in modules.items():
            if module_id not in placed:
                assignment.add_instance(module_id, document)

        self.assignment = assignment
        return True

    def set_filter(self, **changes) -> FilterCriteria:
        try:
            self.criteria = FilterCriteria.parse({**self.criteria.model_dump(), **changes})
        except ValidationError as e:
            self._notify("warning", f"{e}: {'; '.join(e.errors)}")
        return self.criteria

    def clear_filter(self) -> FilterCriteria:
        self.criteria = FilterCriteria()
        return self.criteria

    def visible_instances(self, programme_id=ALL_PROGRAMMES) -> tuple[ModuleInstance, ...]:
        return self.assignment.view(self.criteria, programme_id)

    def move(self, instance_id: str, from_programme_id: Optional[str], to_programme_id: Optional[str], to_index: int) -> bool:
        return self.assignment.move(instance_id, from_programme_id, to_programme_id, to_index)

    def save_programmes(self) -> SaveReport:
        report = self.assignment.save_all(self.store)
        if report.ok:
            self._notify("info", "All programmes saved")
        for pid in report.missing:
            self._notify("warning", f"Programme {pid} no longer exists and was removed")
        for pid, reason in report.failed.items():
            self._notify("error", f"Could not save programme {pid}: {reason}")
        return report

    # -------------------------
    # Module wizard
    # -------------------------
    def start_draft(self) -> ModuleDraft:
        self.discard_draft()
        self.draft = ModuleDraft()
        return self.draft

    def edit_instance(self, instance_id: str) -> Optional[ModuleDraft]:
        # an unknown instance leaves the open draft alone
        try:
            draft = self.assignment.instance_for_edit(instance_id)
        except NotFound as e:
            self._notify("error", str(e))
            return None
        self.discard_draft()
        self.draft = draft
        return draft

    def discard_draft(self) -> None:
        if self.draft is not None and self.draft.step not in (WizardStep.SAVED, WizardStep.DISCARDED):
            self.draft.discard()
        self.draft = None

    def request_template(self) -> bool:
        """Fetch and apply the schedule template for the open draft if it needs one."""
        draft = self.draft
        if draft is None or not draft.needs_template:
            return False

        token = draft.request_template()
        if token is None:
            return False
        try:
            template = self.templates.fetch_template(token.credit, token.semester)
        except TemplateUnavailable as e:
            logger.warning("%s", e)
            self._notify("warning", f"{e}. Try again or pick another credit/semester.")
            return False

        return draft.apply_template(token, template)

    def save_draft(self) -> Optional[str]:
        draft = self.draft
        if draft is None:
            return None
        try:
            module_id = draft.save(self.store)
        except StepBlocked as e:
            for problem in e.errors:
                self._notify("warning", problem)
            return None
        except DraftLocked as e:
            self._notify("warning", str(e))
            return None
        except NotFound as e:
            if draft.is_editing:
                self._forget_missing_module(draft)
            else:
                self._notify("error", f"Error saving module document: {e}")
            return None
        except PersistenceError as e:
            self._notify("error", f"Error saving module document: {e}")
            return None

        document = draft.to_document()
        if not (draft.is_editing and self.assignment.replace_module(module_id, document)):
            self.assignment.add_instance(module_id, document)
        self._notify("info", "Module document saved successfully")
        return module_id

    def _forget_missing_module(self, draft: ModuleDraft) -> None:
        """The edited module was deleted in storage; the next save creates it anew."""
        module_id = draft.source_module_id
        dropped = self.assignment.drop_module(module_id)
        draft.source_module_id = None
        logger.warning("Module %s no longer exists; removed %d placement(s)", module_id, len(dropped))
        self._notify(
            "warning",
            "The module being edited no longer exists and was removed from its programmes. "
            "Save again to create it as a new module.",
        )
