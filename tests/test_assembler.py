from diagenum import ReportKind, Span, assemble
from diagenum.assembler import DiagnosticRecord, ResolvedLabel

from sample_errors import MyError


def test_assemble_named_case():
    err = MyError.TestNamed(it=1, span=range(31, 33), more_span=range(9, 12))
    record = assemble(err)

    assert record == DiagnosticRecord(
        case_name="MyError.TestNamed",
        kind=ReportKind.WARNING,
        code=3,
        config=None,
        message="Test named: 1",
        note="Test!!!",
        location=Span(31, 33),
        labels=(
            ResolvedLabel("green", "span 1", Span(31, 33)),
            ResolvedLabel("yellow", "more span 1", Span(9, 12)),
        ),
    )
    assert record.is_renderable
    assert record.missing_fields() == []


def test_assemble_does_not_enforce_render_invariant():
    record = MyError.Test().assemble()

    assert record.kind is ReportKind.ERROR
    assert record.labels == ()
    assert not record.is_renderable
    assert record.missing_fields() == ["location", "message"]


def test_assemble_reports_single_missing_field():
    record = MyError.WarnOnly(span=Span(0, 2)).assemble()
    assert record.missing_fields() == ["message"]


def test_assemble_is_recomputed_each_call():
    err = MyError.TestUnnamed(1, Span(0, 1), 2)
    first = err.assemble()
    second = err.assemble()
    assert first == second
    assert first is not second
