import logging
from typing import Any, Iterable, List, Optional, Protocol, TextIO, Tuple, Union

from diagenum.assembler import DiagnosticRecord, assemble
from diagenum.errors import MissingRequiredField
from diagenum.report import Label, ReportKind, RichReportEngine, Source
from diagenum.span import Span

logger = logging.getLogger(__name__)


class ReportEngine(Protocol):
    """
    Anything that can start a report for a (kind, (display_name, span)) pair.

    The returned builder must support with_message, with_code, with_config,
    with_label, with_note and finish; the finished report must support
    eprint(cache) and write(cache, sink).
    """

    def build(self, kind: ReportKind, location: Tuple[str, Span]) -> Any:
        ...


def checked_record(instance: Any) -> DiagnosticRecord:
    record = assemble(instance)
    missing = record.missing_fields()
    if missing:
        raise MissingRequiredField(missing, record.case_name)
    return record


def build_report(instance: Any, display_name: str, *, engine: Optional[ReportEngine] = None):
    """Build the finished report for an instance without writing it."""
    record = checked_record(instance)
    if engine is None:
        engine = RichReportEngine()

    builder = engine.build(record.kind, (display_name, record.location))
    builder = builder.with_message(record.message)
    if record.code is not None:
        builder = builder.with_code(record.code)
    if record.config is not None:
        builder = builder.with_config(record.config)
    # Label order decides the stacking of underlines.
    for color, text, span in record.labels:
        builder = builder.with_label(Label((display_name, span), text, color))
    if record.note is not None:
        builder = builder.with_note(record.note)
    return builder.finish()


def render(
    instance: Any,
    display_name: str,
    source: Union[Source, str],
    *,
    engine: Optional[ReportEngine] = None,
    sink: Optional[TextIO] = None,
) -> None:
    """
    Render an instance against a source buffer.

    Raises MissingRequiredField before touching the engine when the instance
    has no message or no location. Write failures propagate unchanged.
    """
    report = build_report(instance, display_name, engine=engine)
    if isinstance(source, str):
        source = Source(source)
    logger.debug("Rendering %s for %s", type(instance).__qualname__, display_name)
    if sink is None:
        report.eprint((display_name, source))
    else:
        report.write((display_name, source), sink)


class DiagnosticEngine:
    """Renders diagnostics against one source and keeps count of what was emitted."""

    def __init__(
        self,
        display_name: str,
        source: Union[Source, str],
        *,
        engine: Optional[ReportEngine] = None,
        sink: Optional[TextIO] = None,
    ):
        self.display_name = display_name
        self.source = source if isinstance(source, Source) else Source(source)
        self.engine = engine
        self.sink = sink
        self.diagnostics: List[Any] = []
        self.errors = 0
        self.warnings = 0

    @property
    def has_errors(self) -> bool:
        return self.errors > 0

    def emit(self, instance: Any) -> None:
        render(instance, self.display_name, self.source, engine=self.engine, sink=self.sink)
        self.diagnostics.append(instance)
        kind = instance.kind()
        if kind is ReportKind.ERROR:
            self.errors += 1
        elif kind is ReportKind.WARNING:
            self.warnings += 1

    def emit_all(self, instances: Iterable[Any]) -> None:
        for instance in instances:
            self.emit(instance)
