import errno
import io

from diagenum import (
    Config,
    DiagnosticEngine,
    IndexType,
    Label,
    MissingRequiredField,
    ReportKind,
    RichReportEngine,
    Source,
    Span,
    build_report,
    render,
)

from sample_errors import SOURCE, LegacyError, MyError


class RecordingReport:
    def __init__(self, calls):
        self.calls = calls

    def eprint(self, cache):
        self.calls.append(("eprint", cache))

    def write(self, cache, sink):
        self.calls.append(("write", cache, sink))


class RecordingBuilder:
    def __init__(self, calls):
        self.calls = calls

    def with_message(self, message):
        self.calls.append(("with_message", message))
        return self

    def with_code(self, code):
        self.calls.append(("with_code", code))
        return self

    def with_config(self, config):
        self.calls.append(("with_config", config))
        return self

    def with_label(self, label):
        self.calls.append(("with_label", label))
        return self

    def with_note(self, note):
        self.calls.append(("with_note", note))
        return self

    def finish(self):
        self.calls.append(("finish",))
        return RecordingReport(self.calls)


class RecordingEngine:
    def __init__(self):
        self.calls = []

    def build(self, kind, location):
        self.calls.append(("build", kind, location))
        return RecordingBuilder(self.calls)


class BrokenSink:
    def write(self, text):
        raise OSError(errno.EIO, "sink closed")

    def flush(self):
        pass


def test_render_drives_the_engine_in_order():
    engine = RecordingEngine()
    err = MyError.TestNamed(it=1, span=range(31, 33), more_span=range(9, 12))
    sink = io.StringIO()

    render(err, "test.rs", SOURCE, engine=engine, sink=sink)

    assert engine.calls[:-1] == [
        ("build", ReportKind.WARNING, ("test.rs", Span(31, 33))),
        ("with_message", "Test named: 1"),
        ("with_code", 3),
        ("with_label", Label(("test.rs", Span(31, 33)), "span 1", "green")),
        ("with_label", Label(("test.rs", Span(9, 12)), "more span 1", "yellow")),
        ("with_note", "Test!!!"),
        ("finish",),
    ]
    name, (display_name, source), written_to = engine.calls[-1]
    assert name == "write"
    assert display_name == "test.rs"
    assert isinstance(source, Source)
    assert source.text == SOURCE
    assert written_to is sink


def test_render_passes_config_and_defaults_to_stderr():
    engine = RecordingEngine()
    err = LegacyError.Mismatch(expected="int", found="str", at=(5, 8))
    source = Source(SOURCE)

    err.render("test.rs", source, engine=engine)

    assert ("with_config", Config(index_type=IndexType.CHAR)) in engine.calls
    assert not any(call[0] == "with_code" for call in engine.calls)
    assert not any(call[0] == "with_note" for call in engine.calls)
    assert engine.calls[-1] == ("eprint", ("test.rs", source))


def test_render_without_message_or_location_never_reaches_engine():
    for err in (MyError.Test(), MyError.WarnOnly(span=Span(0, 1))):
        engine = RecordingEngine()
        try:
            render(err, "test.rs", SOURCE, engine=engine)
            assert False, "render should refuse incomplete diagnostics"
        except MissingRequiredField as e:
            assert "message" in e.missing
        assert engine.calls == []


def test_missing_required_field_names_everything_absent():
    try:
        MyError.Test().render("test.rs", SOURCE, engine=RecordingEngine())
        assert False, "render should refuse incomplete diagnostics"
    except MissingRequiredField as e:
        assert e.missing == ("location", "message")
        assert e.case_name == "MyError.Test"
        assert str(e) == "Missing location and message for MyError.Test"


def test_build_report_without_writing():
    engine = RecordingEngine()
    report = build_report(MyError.TestUnnamed(5, Span(31, 33), 7), "test.rs", engine=engine)

    assert isinstance(report, RecordingReport)
    assert engine.calls[-1] == ("finish",)
    assert not any(call[0] in ("write", "eprint") for call in engine.calls)


def test_instance_report_uses_rich_engine():
    err = MyError.TestUnnamed(5, Span(31, 33), 7)
    report = err.report("test.rs", engine=RichReportEngine(Config(color=False)))

    assert report.kind is ReportKind.ERROR
    assert report.message == "Test unnamed: 5 and 7"
    assert report.location == ("test.rs", Span(31, 33))
    assert [label.message for label in report.labels] == ["span 5"]


def test_sink_failures_propagate_unchanged():
    err = MyError.TestNamed(it=1, span=range(31, 33), more_span=range(9, 12))
    engine = RichReportEngine(Config(color=False))
    try:
        render(err, "test.rs", SOURCE, engine=engine, sink=BrokenSink())
        assert False, "sink failure should propagate"
    except OSError as e:
        assert e.errno == errno.EIO


def test_diagnostic_engine_counts_emitted_diagnostics():
    sink = io.StringIO()
    diagnostics = DiagnosticEngine(
        "test.rs", SOURCE, engine=RichReportEngine(Config(color=False)), sink=sink
    )

    diagnostics.emit(MyError.TestNamed(it=1, span=range(31, 33), more_span=range(9, 12)))
    assert not diagnostics.has_errors
    assert diagnostics.warnings == 1

    diagnostics.emit_all([
        MyError.TestUnnamed(5, Span(31, 33), 7),
        LegacyError.MissingSemicolon(at=Span(35, 36)),
    ])
    assert diagnostics.has_errors
    assert diagnostics.errors == 2
    assert len(diagnostics.diagnostics) == 3
    assert sink.getvalue().count("Error:") == 2


def test_diagnostic_engine_does_not_record_refused_diagnostics():
    diagnostics = DiagnosticEngine("test.rs", SOURCE, engine=RecordingEngine())
    try:
        diagnostics.emit(MyError.Test())
        assert False, "emit should propagate MissingRequiredField"
    except MissingRequiredField:
        pass
    assert diagnostics.diagnostics == []
    assert not diagnostics.has_errors
