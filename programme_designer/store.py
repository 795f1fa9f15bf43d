# programme_designer/store.py
"""
SQLAlchemy-backed persistence for module documents and programmes.

Every public method opens its own session from the factory, commits or rolls
back, and closes it. Database failures surface as PersistenceError; missing
rows as NotFound.
"""
import json
import logging
from typing import Callable, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from programme_designer.db.models.module import ModuleRecord
from programme_designer.db.models.programme import ProgrammeRecord
from programme_designer.db.session import SessionLocal
from programme_designer.errors import ModuleNotInProgramme, NotFound, PersistenceError, ValidationError
from programme_designer.schemas import (
    CourseworkItem,
    ModuleDocument,
    ModuleSetup,
    PersistedSchedule,
    Programme,
    ProgrammeUpdate,
    StoredModule,
)

logger = logging.getLogger(__name__)


def _programme_out(row: ProgrammeRecord) -> Programme:
    return Programme(id=row.id, name=row.name, module_ids=json.loads(row.module_ids_json))


def _module_out(row: ModuleRecord) -> StoredModule:
    document = ModuleDocument(
        module_setup=ModuleSetup.model_validate_json(row.module_setup_json),
        teaching_schedule=PersistedSchedule.model_validate_json(row.teaching_schedule_json),
        coursework_list=[CourseworkItem.model_validate(c) for c in json.loads(row.coursework_json)],
    )
    return StoredModule(id=row.id, document=document)


def _fill_module_row(row: ModuleRecord, document: ModuleDocument) -> None:
    setup = document.module_setup
    row.module_code = setup.module_code
    row.module_title = setup.module_title
    row.study_year = setup.study_year
    row.module_type = setup.type.value if setup.type else None
    row.module_setup_json = setup.model_dump_json(by_alias=True)
    row.teaching_schedule_json = document.teaching_schedule.model_dump_json()
    row.coursework_json = json.dumps([c.model_dump(by_alias=True, mode="json") for c in document.coursework_list])


class ModuleStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def _run(self, action: str, fn):
        db = self._session_factory()
        try:
            result = fn(db)
            db.commit()
            return result
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Database error while trying to %s", action)
            raise PersistenceError(f"Could not {action}: {type(e).__name__}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _get_programme_row(db: Session, programme_id: str) -> ProgrammeRecord:
        row = db.query(ProgrammeRecord).filter(ProgrammeRecord.id == programme_id).first()
        if not row:
            raise NotFound("Programme not found")
        return row

    # -------------------------
    # Modules
    # -------------------------
    def create_module(self, document: ModuleDocument) -> str:
        def _create(db: Session) -> str:
            row = ModuleRecord()
            _fill_module_row(row, document)
            db.add(row)
            db.flush()
            return row.id

        module_id = self._run("create module", _create)
        logger.info("Created module %s (%s)", module_id, document.module_setup.module_code)
        return module_id

    def update_module_by_id(self, module_id: str, document: ModuleDocument) -> str:
        def _update(db: Session) -> str:
            row = db.query(ModuleRecord).filter(ModuleRecord.id == module_id).first()
            if not row:
                raise NotFound("Module not found")
            _fill_module_row(row, document)
            return row.id

        return self._run("update module", _update)

    def get_module_by_id(self, module_id: str) -> StoredModule:
        def _get(db: Session) -> StoredModule:
            row = db.query(ModuleRecord).filter(ModuleRecord.id == module_id).first()
            if not row:
                raise NotFound("Module not found")
            return _module_out(row)

        return self._run("load module", _get)

    def list_modules(self) -> List[StoredModule]:
        def _list(db: Session) -> List[StoredModule]:
            rows = db.query(ModuleRecord).order_by(ModuleRecord.module_code.asc()).all()
            return [_module_out(r) for r in rows]

        return self._run("list modules", _list)

    # -------------------------
    # Programmes
    # -------------------------
    def list_programmes(self) -> List[Programme]:
        def _list(db: Session) -> List[Programme]:
            rows = db.query(ProgrammeRecord).order_by(ProgrammeRecord.created_at.asc(), ProgrammeRecord.id.asc()).all()
            return [_programme_out(r) for r in rows]

        return self._run("list programmes", _list)

    def list_programme_ids(self) -> List[str]:
        def _ids(db: Session) -> List[str]:
            return [pid for (pid,) in db.query(ProgrammeRecord.id).distinct().order_by(ProgrammeRecord.id).all()]

        return self._run("list programme ids", _ids)

    def get_programme_by_id(self, programme_id: str) -> Programme:
        return self._run("load programme", lambda db: _programme_out(self._get_programme_row(db, programme_id)))

    def create_programme(self, programme: Programme) -> Programme:
        def _create(db: Session) -> Programme:
            if db.query(ProgrammeRecord).filter(ProgrammeRecord.id == programme.id).first():
                raise ValidationError(f"Programme {programme.id} already exists")
            row = ProgrammeRecord(
                id=programme.id,
                name=programme.name.strip(),
                module_ids_json=json.dumps(programme.module_ids),
            )
            db.add(row)
            db.flush()
            return _programme_out(row)

        return self._run("create programme", _create)

    def update_programme_by_id(self, programme_id: str, update: ProgrammeUpdate) -> Programme:
        def _update(db: Session) -> Programme:
            row = self._get_programme_row(db, programme_id)
            if update.name is not None:
                row.name = update.name.strip()
            if update.module_ids is not None:
                row.module_ids_json = json.dumps(update.module_ids)
            return _programme_out(row)

        return self._run("update programme", _update)

    def update_module_ids_for_programme(self, programme_id: str, module_ids: List[str]) -> Programme:
        return self.update_programme_by_id(programme_id, ProgrammeUpdate(module_ids=module_ids))

    def update_module_ids_for_programmes(self, module_ids: Dict[str, List[str]]) -> Dict[str, Programme | Exception]:
        """
        Batch update. Each programme is written independently; one missing or
        failing programme does not roll back the others.
        """
        results: Dict[str, Programme | Exception] = {}
        for programme_id, ids in module_ids.items():
            try:
                results[programme_id] = self.update_module_ids_for_programme(programme_id, ids)
            except (NotFound, PersistenceError) as e:
                logger.warning("Updating module ids for programme %s failed: %s", programme_id, e)
                results[programme_id] = e
        return results

    def delete_programme_by_id(self, programme_id: str) -> None:
        def _delete(db: Session) -> None:
            db.delete(self._get_programme_row(db, programme_id))

        self._run("delete programme", _delete)
        logger.info("Deleted programme %s", programme_id)

    def remove_module_from_programme(self, programme_id: str, module_instance_id: str) -> Programme:
        def _remove(db: Session) -> Programme:
            row = self._get_programme_row(db, programme_id)
            ids = json.loads(row.module_ids_json)
            if module_instance_id not in ids:
                raise ModuleNotInProgramme("Module not found in the programme")
            ids.remove(module_instance_id)
            row.module_ids_json = json.dumps(ids)
            return _programme_out(row)

        return self._run("remove module from programme", _remove)
