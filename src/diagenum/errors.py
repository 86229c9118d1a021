from typing import Optional, Sequence


class DiagenumError(Exception):
    """Base class for every error raised by diagenum."""


class SchemaError(DiagenumError):
    """
    A union's annotations are malformed or attached where they cannot apply.

    Raised while the union class is being created, so the defining module
    fails to import.
    """

    def __init__(
        self,
        message: str,
        *,
        union: Optional[str] = None,
        case: Optional[str] = None,
        field: Optional[str] = None,
        location: Optional[str] = None,
    ):
        self.message = message
        self.union = union
        self.case = case
        self.field = field
        self.location = location
        super().__init__(str(self))

    @property
    def path(self) -> str:
        return ".".join(part for part in (self.union, self.case, self.field) if part)

    def __str__(self):
        text = f"{self.path}: {self.message}" if self.path else self.message
        if self.location:
            text += f" ({self.location})"
        return text


class MissingRequiredField(DiagenumError):
    """Rendering was requested for an instance without a message or a location."""

    def __init__(self, missing: Sequence[str], case_name: str):
        self.missing = tuple(missing)
        self.case_name = case_name
        super().__init__(f"Missing {' and '.join(self.missing)} for {case_name}")
