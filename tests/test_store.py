import pytest

from programme_designer.errors import ModuleNotInProgramme, NotFound, PersistenceError, ValidationError
from programme_designer.schemas import Programme, ProgrammeUpdate

from factories import make_document


def test_module_document_round_trip(store):
    document = make_document("CS301", "Compilers", year=3, credit=30)

    module_id = store.create_module(document)
    stored = store.get_module_by_id(module_id)

    assert stored.id == module_id
    assert stored.document == document
    assert stored.document.teaching_schedule.shape == [12, 4, 1]


def test_update_module(store):
    module_id = store.create_module(make_document("CS301", "Compilers"))

    store.update_module_by_id(module_id, make_document("CS301", "Compiler Construction"))

    assert store.get_module_by_id(module_id).document.module_setup.module_title == "Compiler Construction"
    with pytest.raises(NotFound):
        store.update_module_by_id("missing", make_document())


def test_list_modules_sorted_by_code(store):
    store.create_module(make_document("MA210", "Linear Algebra"))
    store.create_module(make_document("CS101", "Programming"))

    codes = [m.document.module_setup.module_code for m in store.list_modules()]
    assert codes == ["CS101", "MA210"]


def test_get_missing_module(store):
    with pytest.raises(NotFound, match="Module not found"):
        store.get_module_by_id("nope")


def test_programme_crud(store):
    created = store.create_programme(Programme(id="CS", name="  Computer Science "))
    assert created.name == "Computer Science"
    assert created.module_ids == []

    store.create_programme(Programme(id="AI", name="Artificial Intelligence", module_ids=["m1"]))
    assert store.list_programme_ids() == ["AI", "CS"]

    updated = store.update_programme_by_id("CS", ProgrammeUpdate(name="Computing"))
    assert updated.name == "Computing"
    assert store.get_programme_by_id("CS").name == "Computing"

    store.delete_programme_by_id("CS")
    with pytest.raises(NotFound, match="Programme not found"):
        store.get_programme_by_id("CS")
    with pytest.raises(NotFound):
        store.delete_programme_by_id("CS")


def test_duplicate_programme_is_rejected(store):
    store.create_programme(Programme(id="CS", name="Computer Science"))

    with pytest.raises(ValidationError):
        store.create_programme(Programme(id="CS", name="Other"))
    assert store.get_programme_by_id("CS").name == "Computer Science"


def test_remove_module_from_programme(store):
    store.create_programme(Programme(id="CS", name="Computer Science", module_ids=["m1", "m2"]))

    assert store.remove_module_from_programme("CS", "m1").module_ids == ["m2"]
    with pytest.raises(ModuleNotInProgramme, match="Module not found in the programme"):
        store.remove_module_from_programme("CS", "m1")
    with pytest.raises(NotFound):
        store.remove_module_from_programme("XX", "m2")


def test_batch_update_is_per_programme(store):
    store.create_programme(Programme(id="CS", name="Computer Science"))
    store.create_programme(Programme(id="MA", name="Mathematics"))

    results = store.update_module_ids_for_programmes({"CS": ["m1", "m2"], "GONE": ["m3"], "MA": ["m3"]})

    assert results["CS"].module_ids == ["m1", "m2"]
    assert isinstance(results["GONE"], NotFound)
    assert results["MA"].module_ids == ["m3"]
    assert store.get_programme_by_id("CS").module_ids == ["m1", "m2"]


def test_database_failure_becomes_persistence_error():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    from programme_designer.store import ModuleStore

    # no tables created
    engine = create_engine("sqlite://")
    broken = ModuleStore(sessionmaker(bind=engine))

    with pytest.raises(PersistenceError):
        broken.list_programmes()
