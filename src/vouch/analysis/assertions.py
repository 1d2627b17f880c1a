"""Decide whether a call site verifies something.

A call is an assertion when its name looks like one, when it hits a known
assertion entry point (built in or configured), or when it calls a function
declared in the same unit whose body itself contains an assertion. The last
case is answered by :class:`LocalMethodMemo`, which inspects each helper body
at most once per unit.
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum
from typing import Iterable

from vouch.analysis.assertion_table import BUILTIN_ASSERTION_MATCHERS
from vouch.analysis.matchers import MatcherSet
from vouch.analysis.nodes import (
    AssertStatement,
    Construction,
    FunctionDecl,
    Invocation,
    Node,
    Reference,
    TypeDecl,
)
from vouch.analysis.symbols import Symbol, SymbolResolution
from vouch.invariants import never

logger = logging.getLogger(__name__)

ASSERTION_METHODS_PATTERN = re.compile(r"(assert|verify|fail|should|check|expect).*")


def matches_assertion_name(name: str | None) -> bool:
    return name is not None and ASSERTION_METHODS_PATTERN.fullmatch(name) is not None


class MemoState(StrEnum):
    PENDING = "pending"
    TRUE = "true"
    FALSE = "false"


class LocalMethodMemo:
    """Symbol-keyed cache of "does this declaration assert".

    A symbol whose computation is still running is ``PENDING``; looking it up
    again (self or mutual recursion) answers ``False`` without traversing.
    """

    def __init__(self, classifier: AssertionClassifier) -> None:
        self._classifier = classifier
        self._states: dict[Symbol, MemoState] = {}
        self.traversals = 0

    def state(self, symbol: Symbol) -> MemoState | None:
        return self._states.get(symbol)

    def has_local_assertion(self, symbol: Symbol) -> bool:
        state = self._states.get(symbol)
        if state is not None:
            return state is MemoState.TRUE
        declaration = self._classifier.resolution.declaration(symbol)
        if declaration is None or declaration.is_abstract:
            self._states[symbol] = MemoState.FALSE
            return False
        self._states[symbol] = MemoState.PENDING
        self.traversals += 1
        found = self._contains_assertion(declaration.body)
        self._states[symbol] = MemoState.TRUE if found else MemoState.FALSE
        logger.debug("helper %s contains assertion: %s", symbol.key, found)
        return found

    def clear(self) -> None:
        self._states.clear()

    def _contains_assertion(self, nodes: Iterable[Node]) -> bool:
        for node in nodes:
            match node:
                case FunctionDecl(body=body) | TypeDecl(body=body):
                    if self._contains_assertion(body):
                        return True
                case AssertStatement():
                    return True
                case Invocation(name=name, symbol=symbol, children=children):
                    if self._contains_assertion(children):
                        return True
                    if self._classifier.is_assertion(name, symbol):
                        return True
                case Reference(name=name, symbol=symbol, children=children):
                    if self._contains_assertion(children):
                        return True
                    if self._classifier.is_assertion(name, symbol):
                        return True
                case Construction(symbol=symbol, children=children):
                    if self._contains_assertion(children):
                        return True
                    if self._classifier.is_assertion(None, symbol):
                        return True
                case _:
                    never("unknown node kind in helper body", node=type(node).__name__)
        return False


class AssertionClassifier:
    def __init__(
        self,
        resolution: SymbolResolution,
        *,
        custom_matchers: MatcherSet | None = None,
        builtin_matchers: MatcherSet = BUILTIN_ASSERTION_MATCHERS,
    ) -> None:
        self.resolution = resolution
        self.custom_matchers = custom_matchers or MatcherSet()
        self.builtin_matchers = builtin_matchers
        self.memo = LocalMethodMemo(self)

    def is_assertion(self, call_name: str | None, symbol: Symbol) -> bool:
        if matches_assertion_name(call_name):
            return True
        if self.builtin_matchers.any_match(symbol, self.resolution):
            return True
        if self.custom_matchers.any_match(symbol, self.resolution):
            return True
        if not symbol.is_resolved:
            return False
        return self.memo.has_local_assertion(symbol)
