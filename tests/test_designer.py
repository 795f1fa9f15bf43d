import pytest

from programme_designer.db.models.module import ModuleRecord
from programme_designer.designer import DesignerSession
from programme_designer.engine.draft import WizardStep
from programme_designer.errors import PersistenceError
from programme_designer.schemas import CourseworkItem, Programme

from factories import make_document


@pytest.fixture
def session(store, templates):
    return DesignerSession(store, templates)


def seed(store):
    algo = store.create_module(make_document("CS201", "Algorithms", year=2))
    la = store.create_module(make_document("MA210", "Linear Algebra", year=2))
    store.create_module(make_document("CS101", "Programming", year=1))
    store.create_programme(Programme(id="CS", name="Computer Science", module_ids=[algo, la]))
    store.create_programme(Programme(id="MA", name="Mathematics", module_ids=[la]))
    return algo, la


def placed(session, programme_id):
    return [i.module.module_setup.module_code for i in session.visible_instances(programme_id)]


def test_refresh_creates_instance_per_placement(session, store):
    seed(store)

    assert session.refresh()

    assert placed(session, "CS") == ["CS201", "MA210"]
    assert placed(session, "MA") == ["MA210"]
    assert placed(session, None) == ["CS101"]
    cs_la = session.assignment.programme("CS").module_ids[1]
    ma_la = session.assignment.programme("MA").module_ids[0]
    assert cs_la != ma_la


def test_refresh_drops_missing_module_reference(session, store):
    algo, _ = seed(store)
    store.update_module_ids_for_programme("MA", ["gone", algo])

    session.refresh()

    assert placed(session, "MA") == ["CS201"]
    assert [n.level for n in session.take_notices()] == ["warning"]
    assert session.take_notices() == []


def test_filter_is_kept_on_the_session(session, store):
    seed(store)
    session.refresh()

    session.set_filter(year=2, search_text="alg")
    assert placed(session, "CS") == ["CS201", "MA210"]

    session.set_filter(module_type="Core", search_text="cs")
    assert [i.module.module_setup.module_code for i in session.visible_instances()] == ["CS201"]

    session.clear_filter()
    assert len(session.visible_instances()) == 4


def test_move_and_save_programmes(session, store):
    algo, la = seed(store)
    session.refresh()
    iid = session.assignment.programme("CS").module_ids[0]

    assert session.move(iid, "CS", "MA", 1)
    report = session.save_programmes()

    assert report.ok
    assert store.get_programme_by_id("CS").module_ids == [la]
    assert store.get_programme_by_id("MA").module_ids == [la, algo]
    assert session.take_notices()[0].message == "All programmes saved"


def test_save_programmes_drops_deleted_programme(session, store):
    seed(store)
    session.refresh()
    store.delete_programme_by_id("MA")

    report = session.save_programmes()

    assert report.missing == ["MA"]
    assert [p.id for p in session.assignment.programmes()] == ["CS"]
    assert sorted(placed(session, None)) == ["CS101", "MA210"]


def test_new_module_through_wizard(session, store):
    draft = session.start_draft()
    for field, value in [("moduleCode", "CS350"), ("moduleTitle", "Databases"), ("moduleCredit", 30),
                         ("courseworkPercentage", 50), ("studyYear", 3), ("semester", "Semester 2"),
                         ("type", "Optional")]:
        draft.update_setup(field, value)
    draft.advance()

    assert session.request_template()
    assert draft.schedule.shape == (12, 4, 1)
    draft.advance()

    draft.add_coursework(CourseworkItem(title="Report", weight=100, type="Report", deadline_week=10))
    draft.advance()
    draft.advance()
    assert draft.step == WizardStep.REVIEW

    module_id = session.save_draft()

    assert module_id
    assert draft.step == WizardStep.SAVED
    assert store.get_module_by_id(module_id).document.module_setup.exam_percentage == 50
    assert [i.module_id for i in session.assignment.pool()] == [module_id]
    assert session.take_notices()[-1].message == "Module document saved successfully"


def test_unsupported_credit_becomes_notice(session):
    draft = session.start_draft()
    draft.update_setup("moduleCredit", 20)
    draft.update_setup("semester", "Semester 1")

    assert session.request_template() is False
    assert not draft.schedule.is_derived
    notice = session.take_notices()[0]
    assert notice.level == "warning"
    assert "credit=20" in notice.message


def test_save_from_wrong_step_becomes_notice(session):
    session.start_draft()

    assert session.save_draft() is None
    assert session.take_notices()[0].level == "warning"


def test_edit_instance_updates_every_placement(session, store):
    _, la = seed(store)
    session.refresh()
    iid = session.assignment.programme("CS").module_ids[1]

    draft = session.edit_instance(iid)
    draft.update_setup("moduleTitle", "Linear Algebra II")
    for _ in range(4):
        draft.advance()

    assert session.save_draft() == la
    assert store.get_module_by_id(la).document.module_setup.module_title == "Linear Algebra II"
    titles = [i.module.module_setup.module_title for i in session.assignment.filter(search_text="MA210")]
    assert titles == ["Linear Algebra II", "Linear Algebra II"]
    assert len(session.assignment.pool()) == 1


def test_edit_unknown_instance(session):
    assert session.edit_instance("missing") is None
    assert session.take_notices()[0].level == "error"


def test_failed_save_keeps_draft_for_retry(session, store, monkeypatch):
    draft = session.edit_instance(session.assignment.add_instance("m1", make_document()).unique_id)
    for _ in range(4):
        draft.advance()

    def boom(module_id, document):
        raise PersistenceError("Could not update module: OperationalError")

    monkeypatch.setattr(store, "update_module_by_id", boom)

    assert session.save_draft() is None
    assert draft.step == WizardStep.REVIEW
    assert session.take_notices()[0].level == "error"


def test_blank_type_filter_is_ignored(session, store):
    seed(store)
    session.refresh()

    session.set_filter(year=2, module_type="")
    assert session.take_notices() == []
    assert len(session.visible_instances()) == 3

    session.set_filter(module_type="Seminar")
    assert session.take_notices()[0].level == "warning"
    assert session.criteria.year == 2
    assert session.criteria.module_type is None


def test_editing_deleted_module_drops_its_placements(session, store, session_factory):
    algo, _ = seed(store)
    session.refresh()
    iid = session.assignment.programme("CS").module_ids[0]
    draft = session.edit_instance(iid)
    for _ in range(4):
        draft.advance()

    db = session_factory()
    db.query(ModuleRecord).filter(ModuleRecord.id == algo).delete()
    db.commit()
    db.close()

    assert session.save_draft() is None
    assert placed(session, "CS") == ["MA210"]
    assert all(i.module_id != algo for i in session.assignment.filter())
    assert draft.step == WizardStep.REVIEW
    assert not draft.is_editing
    assert session.take_notices()[0].level == "warning"

    # the retry stores the draft as a new module
    module_id = session.save_draft()
    assert module_id and module_id != algo
    assert store.get_module_by_id(module_id).document.module_setup.module_code == "CS201"
    assert [i.module_id for i in session.assignment.filter(search_text="CS201")] == [module_id]


def test_edit_unknown_instance_keeps_open_draft(session):
    draft = session.start_draft()
    draft.update_setup("moduleCode", "CS999")

    assert session.edit_instance("missing") is None
    assert session.draft is draft
    assert draft.step == WizardStep.SETUP
