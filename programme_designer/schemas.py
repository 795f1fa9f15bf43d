## Pydantic schemas shared by the engines, the store and the API
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Semester(str, Enum):
    SEMESTER_1 = "Semester 1"
    SEMESTER_2 = "Semester 2"
    FULL_YEAR = "Full Year"


class ModuleType(str, Enum):
    CORE = "Core"
    OPTIONAL = "Optional"
    ELECTIVE = "Elective"


class CourseworkType(str, Enum):
    ESSAY = "Essay"
    REPORT = "Report"
    PRESENTATION = "Presentation"
    PROJECT = "Project"
    TEST = "Test"
    PORTFOLIO = "Portfolio"


class CamelModel(BaseModel):
    """Documents are stored and served with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ModuleSetup(CamelModel):
    module_code: str = ""
    module_title: str = ""
    module_credit: conint(ge=0) = 0
    coursework_percentage: conint(ge=0, le=100) = 0
    exam_percentage: conint(ge=0, le=100) = 0
    study_year: conint(ge=0) = 0
    programme: List[str] = Field(default_factory=list)
    semester: Optional[Semester] = None
    type: Optional[ModuleType] = None

    @field_validator("programme")
    @classmethod
    def _unique_programmes(cls, v: List[str]) -> List[str]:
        # set semantics, first occurrence wins
        return list(dict.fromkeys(v))

    def errors(self) -> List[str]:
        problems = []
        if self.module_credit <= 0:
            problems.append("Module credit must be greater than 0")
        if self.semester is None:
            problems.append("Semester is required")
        if self.coursework_percentage + self.exam_percentage != 100:
            problems.append(
                f"Coursework and exam percentages must add up to 100 "
                f"(got {self.coursework_percentage} + {self.exam_percentage})"
            )
        return problems


class CourseworkItem(CamelModel):
    title: str = ""
    weight: float = Field(gt=0, le=100)
    type: CourseworkType = CourseworkType.ESSAY
    deadline_week: int = 1
    released_week_earlier: conint(ge=0) = 0


class PersistedSchedule(BaseModel):
    """Flat storage form of a schedule matrix: shape + row-major cell values."""

    shape: List[conint(ge=0)] = Field(default_factory=lambda: [0, 0, 0])
    cells: List[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _cells_match_shape(self):
        if len(self.shape) != 3:
            raise ValueError(f"shape must have 3 dimensions, got {len(self.shape)}")
        weeks, sessions, attributes = self.shape
        expected = weeks * sessions * attributes
        if len(self.cells) != expected:
            raise ValueError(f"Expected {expected} cells for shape {self.shape}, got {len(self.cells)}")
        return self


class ModuleDocument(CamelModel):
    module_setup: ModuleSetup = Field(default_factory=ModuleSetup)
    teaching_schedule: PersistedSchedule = Field(default_factory=PersistedSchedule)
    coursework_list: List[CourseworkItem] = Field(default_factory=list)


class StoredModule(CamelModel):
    id: str
    document: ModuleDocument


class ScheduleTemplate(BaseModel):
    weeks: conint(ge=1, le=52)
    sessions: conint(ge=1)
    attributes: conint(ge=1) = 1
    seed: Optional[List[List[List[int]]]] = None

    @model_validator(mode="after")
    def _seed_matches_shape(self):
        if self.seed is None:
            return self
        if len(self.seed) != self.weeks:
            raise ValueError(f"Seed has {len(self.seed)} weeks, expected {self.weeks}")
        for week in self.seed:
            if len(week) != self.sessions:
                raise ValueError(f"Seed week has {len(week)} sessions, expected {self.sessions}")
            for cell in week:
                if len(cell) != self.attributes:
                    raise ValueError(f"Seed cell has {len(cell)} attributes, expected {self.attributes}")
        return self


class Programme(CamelModel):
    id: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    module_ids: List[str] = Field(default_factory=list)


class ProgrammeUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    module_ids: Optional[List[str]] = None


class ModuleIdsUpdate(CamelModel):
    module_ids: List[str]


class RemoveModuleRequest(CamelModel):
    module_instance_id: str


class ModuleInstance(CamelModel):
    """One placement of a module document, owned by at most one programme."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    unique_id: str
    module_id: str
    programme_id: Optional[str] = None
    module: ModuleDocument
