from rich.console import Console
from typer.testing import CliRunner

import diagenum.main as cli
from diagenum.main import app

runner = CliRunner()
# Keep table cells and error messages on one line.
cli.console = Console(width=250, highlight=False)


def test_check_valid_union():
    result = runner.invoke(app, ["check", "sample_errors:MyError"])
    assert result.exit_code == 0
    assert "MyError: 5 case(s) OK" in result.output


def test_check_strict_rejects_irregular_union():
    assert runner.invoke(app, ["check", "loose_errors:LooseError"]).exit_code == 0

    result = runner.invoke(app, ["check", "--strict", "loose_errors:LooseError"])
    assert result.exit_code == 1
    assert "color has no effect without a label" in result.output


def test_check_reports_definition_errors():
    result = runner.invoke(app, ["check", "broken_errors:BrokenError"])
    assert result.exit_code == 1
    assert "cannot hold a span" in result.output


def test_check_rejects_non_unions():
    result = runner.invoke(app, ["check", "sample_errors:SOURCE"])
    assert result.exit_code == 1
    assert "is not a diagnostic union" in result.output


def test_bad_targets_are_usage_errors():
    assert runner.invoke(app, ["check", "sample_errors"]).exit_code == 2
    assert runner.invoke(app, ["check", "sample_errors:Nope"]).exit_code == 2
    assert runner.invoke(app, ["check", "no_such_module:Union"]).exit_code == 2


def test_inspect_lists_every_case():
    result = runner.invoke(app, ["inspect", "sample_errors:MyError"])
    assert result.exit_code == 0
    for name in ("Test", "TestNamed", "TestUnnamed", "WarnOnly", "Unterminated"):
        assert name in result.output
    assert "'Test named: {}' <- it" in result.output
    assert "Warning" in result.output
    assert "span: 'span {}' <- it (green)" in result.output


def test_verbose_flag_enables_debug_logging():
    result = runner.invoke(app, ["--verbose", "check", "sample_errors:LegacyError"])
    assert result.exit_code == 0
