# programme_designer/programmes/routes.py
from typing import List

from fastapi import APIRouter, Depends

from programme_designer.deps import get_store
from programme_designer.schemas import ModuleIdsUpdate, Programme, ProgrammeUpdate, RemoveModuleRequest
from programme_designer.store import ModuleStore

router = APIRouter(prefix="/programmes", tags=["Programmes"])


@router.get("", response_model=List[Programme])
def list_programmes(store: ModuleStore = Depends(get_store)):
    return store.list_programmes()


@router.get("/ids", response_model=List[str])
def list_programme_ids(store: ModuleStore = Depends(get_store)):
    return store.list_programme_ids()


@router.get("/{programme_id}", response_model=Programme)
def get_programme(programme_id: str, store: ModuleStore = Depends(get_store)):
    return store.get_programme_by_id(programme_id)


@router.post("", response_model=Programme, status_code=201)
def create_programme(programme: Programme, store: ModuleStore = Depends(get_store)):
    return store.create_programme(programme)


@router.put("/{programme_id}", response_model=Programme)
def update_programme(programme_id: str, update: ProgrammeUpdate, store: ModuleStore = Depends(get_store)):
    return store.update_programme_by_id(programme_id, update)


@router.put("/{programme_id}/modules", response_model=Programme)
def update_module_ids(programme_id: str, body: ModuleIdsUpdate, store: ModuleStore = Depends(get_store)):
    return store.update_module_ids_for_programme(programme_id, body.module_ids)


@router.delete("/{programme_id}")
def delete_programme(programme_id: str, store: ModuleStore = Depends(get_store)):
    store.delete_programme_by_id(programme_id)
    return {"message": "Programme deleted successfully"}


@router.post("/{programme_id}/remove-module", response_model=Programme)
def remove_module(programme_id: str, body: RemoveModuleRequest, store: ModuleStore = Depends(get_store)):
    return store.remove_module_from_programme(programme_id, body.module_instance_id)
