## Schedule templates served by a remote templates endpoint
import logging

import httpx
from pydantic import ValidationError

from programme_designer.errors import TemplateUnavailable
from programme_designer.schemas import ScheduleTemplate
from programme_designer.templates.base import TemplateClient

logger = logging.getLogger(__name__)


class HttpTemplateClient(TemplateClient):
    def __init__(self, base_url: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def fetch_template(self, credit: int, semester: str) -> ScheduleTemplate:
        semester = getattr(semester, "value", semester)
        url = f"{self.base_url}/templates"
        params = {"credit": credit, "semester": semester}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.get(url, params=params)
                if r.status_code == 404:
                    raise TemplateUnavailable(credit, semester, "not found")
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Template fetch failed for credit=%s semester=%s: %s", credit, semester, e)
            raise TemplateUnavailable(credit, semester, f"{type(e).__name__}: {e}") from e

        try:
            return ScheduleTemplate.model_validate(data)
        except ValidationError as e:
            raise TemplateUnavailable(credit, semester, "malformed template response") from e
