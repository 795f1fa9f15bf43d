# programme_designer/modules/routes.py
from typing import List

from fastapi import APIRouter, Depends

from programme_designer.deps import get_store
from programme_designer.engine.draft import ModuleDraft
from programme_designer.errors import ValidationError
from programme_designer.schemas import ModuleDocument, StoredModule
from programme_designer.store import ModuleStore

router = APIRouter(prefix="/modules", tags=["Modules"])


def _check_document(document: ModuleDocument) -> None:
    problems = ModuleDraft.from_document(document).validation_errors()
    if problems:
        raise ValidationError("Module document is not consistent", problems)


@router.get("", response_model=List[StoredModule])
def list_modules(store: ModuleStore = Depends(get_store)):
    return store.list_modules()


@router.get("/{module_id}", response_model=StoredModule)
def get_module(module_id: str, store: ModuleStore = Depends(get_store)):
    return store.get_module_by_id(module_id)


@router.post("", response_model=StoredModule, status_code=201)
def create_module(document: ModuleDocument, store: ModuleStore = Depends(get_store)):
    _check_document(document)
    module_id = store.create_module(document)
    return StoredModule(id=module_id, document=document)


@router.put("/{module_id}", response_model=StoredModule)
def update_module(module_id: str, document: ModuleDocument, store: ModuleStore = Depends(get_store)):
    _check_document(document)
    store.update_module_by_id(module_id, document)
    return StoredModule(id=module_id, document=document)
