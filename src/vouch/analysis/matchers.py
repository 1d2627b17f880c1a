"""Call matchers, matcher sets and the custom matcher compiler."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from vouch.analysis.criteria import (
    ExactName,
    ExactType,
    NameCriterion,
    PrefixName,
    TypeCriterion,
)
from vouch.analysis.symbols import Symbol, SymbolResolution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallMatcher:
    type_criterion: TypeCriterion
    name_criterion: NameCriterion

    def matches(self, symbol: Symbol, resolution: SymbolResolution) -> bool:
        return self.name_criterion.matches(symbol.name) and self.type_criterion.matches(
            symbol, resolution
        )


@dataclass(frozen=True)
class MatcherSet:
    matchers: tuple[CallMatcher, ...] = ()

    @classmethod
    def of(cls, *matchers: CallMatcher) -> MatcherSet:
        return cls(tuple(matchers))

    def any_match(self, symbol: Symbol, resolution: SymbolResolution) -> bool:
        return any(matcher.matches(symbol, resolution) for matcher in self.matchers)

    def __len__(self) -> int:
        return len(self.matchers)


def method(
    type_criterion: TypeCriterion | str,
    name_criterion: NameCriterion | str,
) -> CallMatcher:
    if isinstance(type_criterion, str):
        type_criterion = ExactType(type_criterion)
    if isinstance(name_criterion, str):
        name_criterion = ExactName(name_criterion)
    return CallMatcher(type_criterion, name_criterion)


def _entry_matcher(entry: str) -> CallMatcher | None:
    parts = entry.split("#")
    if len(parts) != 2:
        return None
    type_name = parts[0].strip()
    method_name = parts[1].strip()
    if not type_name or not method_name:
        return None
    if method_name.endswith("*"):
        return method(type_name, PrefixName(method_name[:-1]))
    return method(type_name, ExactName(method_name))


def compile_custom_matchers(spec: str) -> MatcherSet:
    """Compile ``Type#method`` entries separated by commas.

    A trailing ``*`` on the method name matches by prefix. Malformed entries
    are logged and dropped; compilation itself never fails.
    """
    if not spec.strip():
        return MatcherSet()
    matchers: list[CallMatcher] = []
    for entry in spec.split(","):
        matcher = _entry_matcher(entry)
        if matcher is None:
            logger.warning(
                "Unable to create a corresponding matcher for custom assertion method, "
                "please check the format of the following symbol: '%s'",
                entry,
            )
            continue
        matchers.append(matcher)
    return MatcherSet(tuple(matchers))


def join_custom_entries(entries: Iterable[str]) -> str:
    return ",".join(entry for entry in entries)


class CustomMatcherCache:
    """Compile each configuration string once per run.

    Worker threads share the cache; the lock guards the first compilation so
    two units asking at the same time get the same matcher set.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._compiled: dict[str, MatcherSet] = {}
        self.compilations = 0

    def get(self, spec: str) -> MatcherSet:
        compiled = self._compiled.get(spec)
        if compiled is not None:
            return compiled
        with self._lock:
            compiled = self._compiled.get(spec)
            if compiled is None:
                compiled = compile_custom_matchers(spec)
                self.compilations += 1
                self._compiled[spec] = compiled
        return compiled


CUSTOM_MATCHERS = CustomMatcherCache()
