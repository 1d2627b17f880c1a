"""Run driver: expand paths, analyze each test module, collect the results.

Every file is its own failure domain. A module that cannot be read or
parsed, or whose analysis crashes, becomes a :class:`UnitFailure` and the
remaining modules are still analyzed.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Literal

from vouch.analysis.matchers import CUSTOM_MATCHERS, CustomMatcherCache
from vouch.analysis.scope_engine import AssertionsInTestsCheck
from vouch.analysis.symbols import Finding
from vouch.config import CheckSettings
from vouch.ingest.python_ingest import display_path, ingest_python_file, iter_test_paths

logger = logging.getLogger(__name__)

Stage = Literal["parse", "analyze"]

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_FAILURES = 2


@dataclass(frozen=True)
class UnitFailure:
    path: str
    stage: Stage
    error: str

    def render(self) -> str:
        return f"{self.path}: {self.stage} failed: {self.error}"


@dataclass
class UnitOutcome:
    path: str
    findings: list[Finding] = field(default_factory=list)
    failure: UnitFailure | None = None


@dataclass
class RunResult:
    findings: list[Finding] = field(default_factory=list)
    failures: list[UnitFailure] = field(default_factory=list)
    units: int = 0

    @property
    def exit_code(self) -> int:
        if self.failures:
            return EXIT_FAILURES
        if self.findings:
            return EXIT_FINDINGS
        return EXIT_OK


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def analyze_file(
    path: Path,
    check: AssertionsInTestsCheck,
    *,
    project_root: Path | None = None,
) -> UnitOutcome:
    shown = display_path(path, project_root)
    try:
        unit = ingest_python_file(path, project_root=project_root)
    except (SyntaxError, ValueError, OSError, RecursionError) as exc:
        logger.warning("Skipping %s: unable to parse: %s", shown, exc)
        return UnitOutcome(shown, failure=UnitFailure(shown, "parse", _describe(exc)))
    try:
        findings = check.check(unit)
    except Exception as exc:
        logger.exception("Analysis of %s failed", shown)
        return UnitOutcome(shown, failure=UnitFailure(shown, "analyze", _describe(exc)))
    logger.debug("%s: %d test(s) without assertions", shown, len(findings))
    return UnitOutcome(shown, findings=findings)


def build_check(
    settings: CheckSettings,
    *,
    cache: CustomMatcherCache = CUSTOM_MATCHERS,
) -> AssertionsInTestsCheck:
    return AssertionsInTestsCheck(
        custom_matchers=cache.get(settings.custom_assertion_methods),
        conventions=settings.conventions,
    )


def run_check(
    paths: Iterable[Path],
    settings: CheckSettings | None = None,
    *,
    project_root: Path | None = None,
    jobs: int = 1,
    cache: CustomMatcherCache = CUSTOM_MATCHERS,
) -> RunResult:
    """Analyze every test module under ``paths``.

    With ``jobs`` above one the modules are analyzed on a thread pool; each
    unit owns its scope stack and memo, and only the compiled matcher sets
    are shared. Results keep the sorted path order either way.
    """
    settings = settings or CheckSettings()
    targets = iter_test_paths(
        paths,
        patterns=settings.test_file_patterns,
        exclude_dirs=settings.exclude,
    )
    check = build_check(settings, cache=cache)
    logger.info("Analyzing %d test module(s)", len(targets))

    def analyze(path: Path) -> UnitOutcome:
        return analyze_file(path, check, project_root=project_root)

    if jobs > 1 and len(targets) > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
            outcomes = list(executor.map(analyze, targets))
    else:
        outcomes = [analyze(path) for path in targets]

    result = RunResult(units=len(outcomes))
    for outcome in outcomes:
        result.findings.extend(outcome.findings)
        if outcome.failure is not None:
            result.failures.append(outcome.failure)
    result.findings.sort(
        key=lambda finding: (
            finding.location.path,
            finding.location.line,
            finding.location.column,
        )
    )
    return result
