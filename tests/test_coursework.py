import pytest

from programme_designer.engine.coursework import CourseworkWeighting, validate_deadline
from programme_designer.errors import DeadlineOutOfBounds, ValidationError
from programme_designer.schemas import CourseworkItem


def item(weight, deadline=10, released=2, title="Essay"):
    return CourseworkItem(title=title, weight=weight, type="Essay", deadline_week=deadline,
                          released_week_earlier=released)


def test_weights_must_total_100():
    cw = CourseworkWeighting()
    assert cw.is_valid()  # empty list has no weight rule

    cw.add_item(item(40))
    cw.add_item(item(50))
    assert not cw.is_valid()
    assert cw.errors() == ["Coursework weights must add up to 100 (currently 90)"]

    cw.update_item(1, "weight", 60)
    assert cw.is_valid()
    assert cw.errors() == []


def test_intermediate_invalid_states_are_allowed():
    cw = CourseworkWeighting([item(100)])
    cw.add_item({"title": "Talk", "weight": 20, "type": "Presentation", "deadlineWeek": 4})

    assert len(cw.items) == 2
    assert not cw.is_valid()

    cw.remove_item(0)
    assert cw.total_weight() == 20


def test_update_accepts_camel_case_fields():
    cw = CourseworkWeighting([item(100)])
    cw.update_item(0, "deadlineWeek", 7)
    cw.update_item(0, "released_week_earlier", 3)

    assert cw.items[0].deadline_week == 7
    assert cw.items[0].released_week_earlier == 3


def test_update_rejects_unknown_field_and_bad_values():
    cw = CourseworkWeighting([item(100)])

    with pytest.raises(ValidationError):
        cw.update_item(0, "colour", "red")
    with pytest.raises(ValidationError):
        cw.update_item(0, "weight", 0)
    with pytest.raises(IndexError):
        cw.remove_item(3)

    assert cw.items[0].weight == 100


def test_validate_deadline():
    with pytest.raises(DeadlineOutOfBounds):
        validate_deadline(item(100, deadline=10, released=12), total_weeks=12)
    with pytest.raises(DeadlineOutOfBounds):
        validate_deadline(item(100, deadline=13, released=0), total_weeks=12)

    validate_deadline(item(100, deadline=10, released=2), total_weeks=12)
    validate_deadline(item(100, deadline=12, released=12), total_weeks=12)


def test_deadline_errors_lists_each_bad_item():
    cw = CourseworkWeighting([item(50, 10, 12, "Early"), item(50, 20, 0, "Late")])
    problems = cw.deadline_errors(12)

    assert len(problems) == 2
    assert "Early" in problems[0]
    assert "Late" in problems[1]


def test_form_factor_follows_coursework_percentage():
    cw = CourseworkWeighting([item(50), item(50)], coursework_percentage=60)
    assert cw.form_factor == pytest.approx(0.6)
    assert cw.exam_percentage == 40

    cw.set_coursework_percentage(70)
    assert cw.exam_percentage == 30
    assert cw.module_share(cw.items[0]) == pytest.approx(35)

    with pytest.raises(ValidationError):
        cw.set_coursework_percentage(120)


def test_timeline_spreads_module_share_over_window():
    cw = CourseworkWeighting([item(100, deadline=10, released=2)], coursework_percentage=60)
    load = cw.timeline(12)

    assert len(load) == 12
    assert load[7:10] == [pytest.approx(20)] * 3
    assert sum(load) == pytest.approx(60)
    assert load[6] == 0


def test_timeline_treats_release_before_start_as_week_one():
    cw = CourseworkWeighting([item(100, deadline=2, released=2)], coursework_percentage=50)
    load = cw.timeline(4)

    assert load == [pytest.approx(25), pytest.approx(25), 0, 0]
