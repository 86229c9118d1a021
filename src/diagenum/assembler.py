from dataclasses import dataclass, field
from typing import Any, List, NamedTuple, Optional, Tuple

from diagenum.report import ColorLike, Config, ReportKind
from diagenum.span import Span


class ResolvedLabel(NamedTuple):
    color: ColorLike
    message: str
    span: Span


@dataclass(frozen=True)
class DiagnosticRecord:
    """Everything a single case instance resolves to, ready for rendering."""
    case_name: str
    kind: ReportKind
    code: Optional[int] = None
    config: Optional[Config] = None
    message: Optional[str] = None
    note: Optional[str] = None
    location: Optional[Span] = None
    labels: Tuple[ResolvedLabel, ...] = field(default_factory=tuple)

    def missing_fields(self) -> List[str]:
        missing = []
        if self.location is None:
            missing.append("location")
        if self.message is None:
            missing.append("message")
        return missing

    @property
    def is_renderable(self) -> bool:
        return not self.missing_fields()


def assemble(instance: Any) -> DiagnosticRecord:
    """
    Resolve every accessor of a case instance into one record.

    Performs no I/O and does not check that the record can be rendered.
    """
    return DiagnosticRecord(
        case_name=type(instance).__qualname__,
        kind=instance.kind(),
        code=instance.code(),
        config=instance.config(),
        message=instance.message(),
        note=instance.note(),
        location=instance.location(),
        labels=tuple(instance.labels()),
    )
