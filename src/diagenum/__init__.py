from diagenum.assembler import DiagnosticRecord, ResolvedLabel, assemble
from diagenum.compiler import (
    Case,
    CaseDescriptor,
    DiagnosticEnum,
    Schema,
    Shape,
    TupleCase,
    compile_schema,
)
from diagenum.errors import DiagenumError, MissingRequiredField, SchemaError
from diagenum.renderer import DiagnosticEngine, ReportEngine, build_report, render
from diagenum.report import (
    CharSet,
    Config,
    IndexType,
    Label,
    Report,
    ReportBuilder,
    ReportKind,
    RichReportEngine,
    Source,
)
from diagenum.schema import colored, here, label, message, note, report
from diagenum.span import Span

__version__ = "0.1.0"

__all__ = [
    "Case",
    "CaseDescriptor",
    "CharSet",
    "Config",
    "DiagenumError",
    "DiagnosticEngine",
    "DiagnosticEnum",
    "DiagnosticRecord",
    "IndexType",
    "Label",
    "MissingRequiredField",
    "Report",
    "ReportBuilder",
    "ReportEngine",
    "ReportKind",
    "ResolvedLabel",
    "RichReportEngine",
    "Schema",
    "SchemaError",
    "Shape",
    "Source",
    "Span",
    "TupleCase",
    "assemble",
    "build_report",
    "colored",
    "compile_schema",
    "here",
    "label",
    "message",
    "note",
    "render",
    "report",
]
