# programme_designer/engine/assignment.py
"""
Placement of module instances into programmes.

Each programme owns an ordered list of instance ids; each instance records the
programme that owns it, or None while it sits in the search pool. ``move`` is
the only way ownership changes and it keeps both sides in step.
"""
import logging
import uuid
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from programme_designer.engine.draft import ModuleDraft
from programme_designer.errors import NotFound, PersistenceError, ValidationError
from programme_designer.schemas import ModuleDocument, ModuleInstance, ModuleType, Programme

logger = logging.getLogger(__name__)

# sentinel for "every instance, assigned or not"
ALL_PROGRAMMES = object()


class ProgrammeWriter(Protocol):
    def update_module_ids_for_programmes(
        self, module_ids: Dict[str, List[str]]
    ) -> Dict[str, Programme | Exception]: ...


class FilterCriteria(BaseModel):
    year: Optional[int] = None
    module_type: Optional[ModuleType] = None
    search_text: Optional[str] = None

    @field_validator("year", "module_type", "search_text", mode="before")
    @classmethod
    def _blank_is_unset(cls, v):
        # a cleared select or search box sends ""
        return None if v == "" else v

    def matches(self, instance: ModuleInstance) -> bool:
        setup = instance.module.module_setup
        if self.year and setup.study_year != self.year:
            return False
        if self.module_type and setup.type != self.module_type:
            return False
        if self.search_text:
            needle = self.search_text.lower()
            if needle not in setup.module_code.lower() and needle not in setup.module_title.lower():
                return False
        return True

    @classmethod
    def parse(cls, data: dict) -> "FilterCriteria":
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise ValidationError("Invalid filter", problems) from e


class SaveReport(BaseModel):
    saved: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.failed


def new_instance_id() -> str:
    return uuid.uuid4().hex


class InstanceAssignment:
    def __init__(self):
        self._programmes: Dict[str, Programme] = {}
        self._instances: Dict[str, ModuleInstance] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def load(self, programmes: Iterable[Programme], instances: Iterable[ModuleInstance]) -> None:
        """Replace all state. Programme ``module_ids`` hold instance ids."""
        self._programmes = {p.id: p.model_copy(deep=True) for p in programmes}
        self._instances = {i.unique_id: i for i in instances}

        # ownership is taken from programme lists; drop dangling ids
        owners: Dict[str, str] = {}
        for programme in self._programmes.values():
            kept = []
            for iid in programme.module_ids:
                if iid not in self._instances or iid in owners:
                    logger.warning("Programme %s references unknown or duplicate instance %s; dropped",
                                   programme.id, iid)
                    continue
                owners[iid] = programme.id
                kept.append(iid)
            programme.module_ids = kept

        for iid, instance in self._instances.items():
            owner = owners.get(iid)
            if instance.programme_id != owner:
                self._instances[iid] = instance.model_copy(update={"programme_id": owner})

    def programmes(self) -> List[Programme]:
        return [p.model_copy(deep=True) for p in self._programmes.values()]

    def programme(self, programme_id: str) -> Programme:
        if programme_id not in self._programmes:
            raise NotFound(f"Programme not found: {programme_id}")
        return self._programmes[programme_id].model_copy(deep=True)

    def instance(self, instance_id: str) -> ModuleInstance:
        if instance_id not in self._instances:
            raise NotFound(f"Module instance not found: {instance_id}")
        return self._instances[instance_id]

    def pool(self) -> Tuple[ModuleInstance, ...]:
        return tuple(i for i in self._instances.values() if i.programme_id is None)

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------
    def move(
        self,
        instance_id: str,
        from_programme_id: Optional[str],
        to_programme_id: Optional[str],
        to_index: int,
    ) -> bool:
        """
        Move an instance into ``to_programme_id`` at ``to_index`` (clamped).
        ``None`` as target returns it to the pool. Unknown ids are ignored so
        stale drag events are harmless. Returns True if state changed.
        """
        instance = self._instances.get(instance_id)
        if instance is None:
            logger.debug("Ignoring move of unknown instance %s", instance_id)
            return False
        if to_programme_id is not None and to_programme_id not in self._programmes:
            logger.debug("Ignoring move of %s to unknown programme %s", instance_id, to_programme_id)
            return False

        owner_id = instance.programme_id
        if from_programme_id != owner_id:
            logger.info("Move of %s reported source %s but owner is %s; using owner",
                        instance_id, from_programme_id, owner_id)

        if owner_id is not None:
            self._programmes[owner_id].module_ids.remove(instance_id)

        if to_programme_id is not None:
            target = self._programmes[to_programme_id].module_ids
            index = max(0, min(to_index, len(target)))
            target.insert(index, instance_id)

        self._instances[instance_id] = instance.model_copy(update={"programme_id": to_programme_id})
        return True

    def remove(self, instance_id: str) -> bool:
        """Take an instance out of its programme and back into the pool."""
        instance = self._instances.get(instance_id)
        if instance is None or instance.programme_id is None:
            return False
        return self.move(instance_id, instance.programme_id, None, 0)

    def add_instance(
        self,
        module_id: str,
        module: ModuleDocument,
        programme_id: Optional[str] = None,
        index: Optional[int] = None,
    ) -> ModuleInstance:
        instance = ModuleInstance(unique_id=new_instance_id(), module_id=module_id, module=module)
        self._instances[instance.unique_id] = instance
        if programme_id is not None:
            target_len = len(self._programmes[programme_id].module_ids) if programme_id in self._programmes else 0
            self.move(instance.unique_id, None, programme_id, target_len if index is None else index)
        return self._instances[instance.unique_id]

    def replace_module(self, module_id: str, module: ModuleDocument) -> int:
        """Refresh the snapshot of every instance of ``module_id``; returns how many changed."""
        count = 0
        for iid, instance in self._instances.items():
            if instance.module_id == module_id:
                self._instances[iid] = instance.model_copy(update={"module": module})
                count += 1
        return count

    def instance_for_edit(self, instance_id: str) -> ModuleDraft:
        instance = self.instance(instance_id)
        return ModuleDraft.from_document(instance.module, module_id=instance.module_id)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def filter(
        self,
        year: Optional[int] = None,
        module_type: Optional[ModuleType | str] = None,
        search_text: Optional[str] = None,
        programme_id=ALL_PROGRAMMES,
    ) -> Tuple[ModuleInstance, ...]:
        criteria = FilterCriteria.parse({"year": year, "module_type": module_type, "search_text": search_text})
        return self.view(criteria, programme_id)

    def view(self, criteria: FilterCriteria, programme_id=ALL_PROGRAMMES) -> Tuple[ModuleInstance, ...]:
        if programme_id is ALL_PROGRAMMES:
            ordered = [self._instances[iid] for p in self._programmes.values() for iid in p.module_ids]
            ordered.extend(self.pool())
        elif programme_id is None:
            ordered = list(self.pool())
        elif programme_id in self._programmes:
            ordered = [self._instances[iid] for iid in self._programmes[programme_id].module_ids]
        else:
            ordered = []
        return tuple(i for i in ordered if criteria.matches(i))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def serialized_module_ids(self) -> Dict[str, List[str]]:
        return {
            pid: [self._instances[iid].module_id for iid in p.module_ids]
            for pid, p in self._programmes.items()
        }

    def save_all(self, store: ProgrammeWriter) -> SaveReport:
        payload = self.serialized_module_ids()
        report = SaveReport()
        try:
            results = store.update_module_ids_for_programmes(payload)
        except PersistenceError as e:
            logger.exception("Saving programmes failed")
            report.failed = {pid: str(e) for pid in payload}
            return report

        for pid in payload:
            outcome = results.get(pid)
            if isinstance(outcome, NotFound):
                report.missing.append(pid)
            elif isinstance(outcome, Exception):
                report.failed[pid] = str(outcome)
            elif outcome is None:
                report.failed[pid] = "No result returned"
            else:
                report.saved.append(pid)

        for pid in report.missing:
            self._drop_programme(pid)

        if not report.ok:
            logger.warning("Programme save incomplete: missing=%s failed=%s", report.missing, list(report.failed))
        return report

    def drop_module(self, module_id: str) -> List[str]:
        """Forget every instance of a module that no longer exists in storage."""
        dropped = [iid for iid, i in self._instances.items() if i.module_id == module_id]
        for iid in dropped:
            owner = self._instances.pop(iid).programme_id
            if owner is not None:
                self._programmes[owner].module_ids.remove(iid)
        if dropped:
            logger.info("Removed %d instance(s) of missing module %s", len(dropped), module_id)
        return dropped

    def _drop_programme(self, programme_id: str) -> None:
        programme = self._programmes.pop(programme_id, None)
        if programme is None:
            return
        for iid in programme.module_ids:
            self._instances[iid] = self._instances[iid].model_copy(update={"programme_id": None})
        logger.info("Removed stale programme %s from local state", programme_id)
