# programme_designer/schedule_templates/routes.py
from fastapi import APIRouter, Depends, Query

from programme_designer.deps import get_templates
from programme_designer.schemas import ScheduleTemplate, Semester
from programme_designer.templates.base import TemplateClient

router = APIRouter(tags=["Templates"])


@router.get("/templates", response_model=ScheduleTemplate)
def get_template(
    credit: int = Query(..., gt=0),
    semester: Semester = Query(...),
    templates: TemplateClient = Depends(get_templates),
):
    return templates.fetch_template(credit, semester.value)
