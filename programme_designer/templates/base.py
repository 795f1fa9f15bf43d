## Base schedule template client interface
from abc import ABC, abstractmethod

from programme_designer.schemas import ScheduleTemplate


class TemplateClient(ABC):
    @abstractmethod
    def fetch_template(self, credit: int, semester: str) -> ScheduleTemplate:
        """
        Return the schedule template for a (credit, semester) pair.
        Raise TemplateUnavailable if no template can be produced.
        """
        raise NotImplementedError
