## Error taxonomy shared by the engines, the store and the API
"""
Every error here is recoverable at the granularity of a single user action.

- ValidationError: a local invariant does not hold (percentage split, weight
  sum, deadline bounds). Blocks step advancement.
- TemplateUnavailable: no schedule template for a (credit, semester) pair.
- PersistenceError: the store rejected or failed a write. State is kept so the
  caller may retry.
- NotFound: a referenced programme / module is missing.
"""


class DesignerError(Exception):
    pass


class ValidationError(DesignerError):
    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or [message]


class DeadlineOutOfBounds(ValidationError):
    pass


class StepBlocked(ValidationError):
    pass


class OutOfRange(DesignerError):
    pass


class DraftLocked(DesignerError):
    pass


class TemplateUnavailable(DesignerError):
    def __init__(self, credit: int, semester: str, reason: str | None = None):
        msg = f"No schedule template for credit={credit} semester={semester!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.credit = credit
        self.semester = semester


class PersistenceError(DesignerError):
    pass


class NotFound(DesignerError):
    pass


class ModuleNotInProgramme(NotFound):
    pass
