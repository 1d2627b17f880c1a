"""Walk an analysis unit and report tests that never assert.

Each function declaration gets its own scope frame. Only calls made while a
frame is on top of the stack can mark that frame as asserting, so assertions
in a nested callback stay with the callback and never satisfy the test that
declares it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from vouch.analysis.assertion_table import BUILTIN_ASSERTION_MATCHERS
from vouch.analysis.assertions import AssertionClassifier
from vouch.analysis.matchers import MatcherSet
from vouch.analysis.nodes import (
    AnalysisUnit,
    AssertStatement,
    Construction,
    FunctionDecl,
    Invocation,
    Node,
    Reference,
    TypeDecl,
)
from vouch.analysis.symbols import CollectingSink, Finding, FindingSink, Symbol
from vouch.analysis.test_classifier import TestConventions, UnitTestClassifier
from vouch.invariants import never

MISSING_ASSERTION_MESSAGE = "Add at least one assertion to this test case."


@dataclass
class ScopeFrame:
    is_test: bool
    has_assertion: bool = False


class _UnitWalk:
    def __init__(
        self,
        classifier: AssertionClassifier,
        tests: UnitTestClassifier,
        sink: FindingSink,
    ) -> None:
        self.classifier = classifier
        self.tests = tests
        self.sink = sink
        self.stack: list[ScopeFrame] = []

    def run(self, nodes: Iterable[Node]) -> None:
        self.stack.append(ScopeFrame(is_test=False))
        self._visit_all(nodes)
        self.stack.pop()

    def _visit_all(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            self._visit(node)

    def _visit(self, node: Node) -> None:
        match node:
            case FunctionDecl() as decl:
                self._visit_function(decl)
            case TypeDecl(body=body):
                self._visit_all(body)
            case Invocation(name=name, symbol=symbol, children=children):
                self._visit_all(children)
                self._visit_call(name, symbol)
            case Reference(name=name, symbol=symbol, children=children):
                self._visit_all(children)
                self._visit_call(name, symbol)
            case Construction(symbol=symbol, children=children):
                self._visit_all(children)
                self._visit_call(None, symbol)
            case AssertStatement(children=children):
                self._visit_all(children)
                if self._should_check():
                    self.stack[-1].has_assertion = True
            case _:
                never("unknown node kind", node=type(node).__name__)

    def _visit_function(self, decl: FunctionDecl) -> None:
        if decl.is_abstract:
            return
        is_test = self.tests.is_test_function(decl)
        self.stack.append(ScopeFrame(is_test=is_test))
        self._visit_all(decl.body)
        frame = self.stack.pop()
        if frame.is_test and not self.tests.expect_assertion(decl) and not frame.has_assertion:
            self.sink.report(decl.location, MISSING_ASSERTION_MESSAGE, test_name=decl.qualname)

    def _visit_call(self, name: str | None, symbol: Symbol) -> None:
        if self._should_check() and self.classifier.is_assertion(name, symbol):
            self.stack[-1].has_assertion = True

    def _should_check(self) -> bool:
        top = self.stack[-1]
        return top.is_test and not top.has_assertion


class AssertionsInTestsCheck:
    """Report test functions that contain no assertion.

    One instance serves a whole run: the matcher sets are shared, while the
    scope stack and helper memo are rebuilt for every unit.
    """

    def __init__(
        self,
        *,
        custom_matchers: MatcherSet | None = None,
        conventions: TestConventions | None = None,
        builtin_matchers: MatcherSet = BUILTIN_ASSERTION_MATCHERS,
    ) -> None:
        self.custom_matchers = custom_matchers or MatcherSet()
        self.conventions = conventions or TestConventions()
        self.builtin_matchers = builtin_matchers

    def scan_unit(self, unit: AnalysisUnit, sink: FindingSink) -> AssertionClassifier:
        classifier = AssertionClassifier(
            unit.resolution,
            custom_matchers=self.custom_matchers,
            builtin_matchers=self.builtin_matchers,
        )
        tests = UnitTestClassifier(unit.resolution, self.conventions)
        _UnitWalk(classifier, tests, sink).run(unit.nodes)
        return classifier

    def check(self, unit: AnalysisUnit) -> list[Finding]:
        sink = CollectingSink()
        self.scan_unit(unit, sink)
        return sink.findings
