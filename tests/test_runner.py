from __future__ import annotations

import json
from pathlib import Path

import pytest

from vouch import runner
from vouch.analysis.matchers import CustomMatcherCache
from vouch.analysis.scope_engine import AssertionsInTestsCheck
from vouch.config import CheckSettings
from vouch.report import OutputFormat, parse_format, render
from vouch.exceptions import ConfigError

PASSING = """
def test_ok():
    assert True
"""

FAILING = """
def test_missing():
    compute()
"""


def test_run_collects_findings_in_path_order(write_module, tmp_path: Path) -> None:
    write_module("tests/test_b.py", FAILING)
    write_module("tests/test_a.py", FAILING)
    write_module("tests/test_ok.py", PASSING)
    result = runner.run_check([tmp_path / "tests"], project_root=tmp_path)
    assert result.units == 3
    assert [finding.location.path for finding in result.findings] == [
        "tests/test_a.py",
        "tests/test_b.py",
    ]
    assert result.failures == []
    assert result.exit_code == runner.EXIT_FINDINGS


def test_parse_failure_does_not_stop_other_units(write_module, tmp_path: Path) -> None:
    write_module("tests/test_broken.py", "def test_a(:\n")
    write_module("tests/test_ok.py", PASSING)
    result = runner.run_check([tmp_path], project_root=tmp_path)
    assert result.units == 2
    assert result.findings == []
    (failure,) = result.failures
    assert failure.path == "tests/test_broken.py"
    assert failure.stage == "parse"
    assert failure.error.startswith("SyntaxError")
    assert result.exit_code == runner.EXIT_FAILURES


def test_analysis_crash_is_recorded(
    write_module, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    write_module("tests/test_a.py", PASSING)

    def explode(self, unit):
        raise RuntimeError("boom")

    monkeypatch.setattr(AssertionsInTestsCheck, "check", explode)
    result = runner.run_check([tmp_path], project_root=tmp_path)
    (failure,) = result.failures
    assert failure.stage == "analyze"
    assert failure.error == "RuntimeError: boom"


def test_thread_pool_matches_serial_run(write_module, tmp_path: Path) -> None:
    for index in range(6):
        write_module(f"tests/test_{index}.py", FAILING if index % 2 else PASSING)
    serial = runner.run_check([tmp_path], project_root=tmp_path)
    pooled = runner.run_check([tmp_path], project_root=tmp_path, jobs=4)
    assert pooled.findings == serial.findings
    assert len(pooled.findings) == 3


def test_custom_configuration_compiled_once_per_run(write_module, tmp_path: Path) -> None:
    source = """
    from pkg import Helper

    def test_custom():
        Helper.ensure_valid()
    """
    for index in range(3):
        write_module(f"tests/test_{index}.py", source)
    cache = CustomMatcherCache()
    settings = CheckSettings(custom_assertion_methods="pkg.Helper#ensure*")
    result = runner.run_check(
        [tmp_path], settings, project_root=tmp_path, jobs=3, cache=cache
    )
    assert result.findings == []
    assert cache.compilations == 1


def test_render_text_and_json(write_module, tmp_path: Path) -> None:
    write_module("tests/test_a.py", FAILING)
    write_module("tests/test_broken.py", "def test_a(:\n")
    result = runner.run_check([tmp_path], project_root=tmp_path)
    text = render(result, OutputFormat.TEXT).splitlines()
    assert text[0] == (
        "tests/test_a.py:2:5: Add at least one assertion to this test case. [test_missing]"
    )
    assert text[1].startswith("tests/test_broken.py: parse failed: SyntaxError")
    payload = json.loads(render(result, parse_format("JSON")))
    assert payload["findings"] == [
        {
            "column": 5,
            "line": 2,
            "message": "Add at least one assertion to this test case.",
            "path": "tests/test_a.py",
            "test": "test_missing",
        }
    ]
    assert payload["failures"][0]["stage"] == "parse"


def test_unknown_format_is_config_error() -> None:
    with pytest.raises(ConfigError):
        parse_format("xml")


def test_deeply_nested_module_is_a_parse_failure(write_module, tmp_path: Path) -> None:
    write_module("tests/test_deep.py", "x = " + "+".join(["1"] * 5000) + "\n")
    write_module("tests/test_ok.py", PASSING)
    result = runner.run_check([tmp_path], project_root=tmp_path)
    assert result.units == 2
    (failure,) = result.failures
    assert failure.path == "tests/test_deep.py"
    assert failure.stage == "parse"
    assert failure.error.split(":")[0] in {"RecursionError", "SyntaxError"}
    assert result.findings == []
