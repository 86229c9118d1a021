import importlib.util
from pathlib import Path

import test_compiler
import test_settings
import test_span

RUNNER = Path(__file__).resolve().parents[1] / "run_tests.py"


def load_runner():
    spec = importlib.util.spec_from_file_location("run_tests", RUNNER)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_runner_separates_fixture_tests():
    runner = load_runner()

    tests, skipped = runner.collect(test_compiler)
    assert test_compiler.test_duplicate_annotations_are_logged in skipped
    assert test_compiler.test_named_case_resolves_every_accessor in tests
    assert not set(tests) & set(skipped)

    tests, skipped = runner.collect(test_settings)
    assert [t.__name__ for t in skipped] == [
        "test_config_default_reads_environment",
        "test_settings_validate_ranges",
    ]

    tests, skipped = runner.collect(test_span)
    assert skipped == []
    assert len(tests) == 5
