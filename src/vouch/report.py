from __future__ import annotations

import json
from enum import StrEnum

from vouch.analysis.symbols import Finding
from vouch.exceptions import ConfigError
from vouch.invariants import never
from vouch.runner import RunResult, UnitFailure


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


def parse_format(value: str) -> OutputFormat:
    try:
        return OutputFormat(value.strip().lower())
    except ValueError:
        choices = ", ".join(fmt.value for fmt in OutputFormat)
        raise ConfigError(f"unknown output format {value!r} (expected one of: {choices})") from None


def finding_payload(finding: Finding) -> dict[str, object]:
    return {
        "path": finding.location.path,
        "line": finding.location.line,
        "column": finding.location.column,
        "message": finding.message,
        "test": finding.test_name,
    }


def failure_payload(failure: UnitFailure) -> dict[str, object]:
    return {"path": failure.path, "stage": failure.stage, "error": failure.error}


def render_text(result: RunResult) -> str:
    lines = [finding.render() for finding in result.findings]
    lines.extend(failure.render() for failure in result.failures)
    return "\n".join(lines)


def render_json(result: RunResult) -> str:
    payload = {
        "findings": [finding_payload(finding) for finding in result.findings],
        "failures": [failure_payload(failure) for failure in result.failures],
    }
    return json.dumps(payload, indent=2, sort_keys=True)


def render(result: RunResult, output_format: OutputFormat) -> str:
    match output_format:
        case OutputFormat.TEXT:
            return render_text(result)
        case OutputFormat.JSON:
            return render_json(result)
        case _:
            never("unknown output format", output_format=str(output_format))
