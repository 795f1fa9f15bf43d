## Built-in schedule templates
from programme_designer.errors import TemplateUnavailable
from programme_designer.schemas import ScheduleTemplate, Semester
from programme_designer.templates.base import TemplateClient

WEEKS_PER_SEMESTER = {
    Semester.SEMESTER_1.value: 12,
    Semester.SEMESTER_2.value: 12,
    Semester.FULL_YEAR.value: 24,
}

SUPPORTED_CREDITS = (15, 30, 45, 60)
CREDITS_PER_SESSION_PAIR = 15
SEED_HOURS_PER_SESSION = 1


def sessions_for_credit(credit: int) -> int:
    # two weekly sessions per 15 credits
    return credit // CREDITS_PER_SESSION_PAIR * 2


class StaticTemplateClient(TemplateClient):
    def __init__(self, seed_hours: int = SEED_HOURS_PER_SESSION):
        self.seed_hours = seed_hours

    def fetch_template(self, credit: int, semester: str) -> ScheduleTemplate:
        semester = getattr(semester, "value", semester)
        weeks = WEEKS_PER_SEMESTER.get(semester)
        if weeks is None:
            raise TemplateUnavailable(credit, semester, "unknown semester")
        if credit not in SUPPORTED_CREDITS:
            raise TemplateUnavailable(credit, semester, f"credit must be one of {SUPPORTED_CREDITS}")

        sessions = sessions_for_credit(credit)
        seed = [[[self.seed_hours] for _ in range(sessions)] for _ in range(weeks)]
        return ScheduleTemplate(weeks=weeks, sessions=sessions, attributes=1, seed=seed)
