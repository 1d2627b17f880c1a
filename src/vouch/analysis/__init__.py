"""Assertion coverage analysis for test declarations."""

from .assertions import AssertionClassifier, LocalMethodMemo, matches_assertion_name
from .matchers import CUSTOM_MATCHERS, CallMatcher, MatcherSet, compile_custom_matchers
from .nodes import AnalysisUnit
from .scope_engine import MISSING_ASSERTION_MESSAGE, AssertionsInTestsCheck
from .symbols import CollectingSink, Finding, Location, Symbol, SymbolKind, SymbolResolution
from .test_classifier import TestConventions, UnitTestClassifier

__all__ = [
    "AnalysisUnit",
    "AssertionClassifier",
    "AssertionsInTestsCheck",
    "CUSTOM_MATCHERS",
    "CallMatcher",
    "CollectingSink",
    "Finding",
    "LocalMethodMemo",
    "Location",
    "MISSING_ASSERTION_MESSAGE",
    "MatcherSet",
    "Symbol",
    "SymbolKind",
    "SymbolResolution",
    "TestConventions",
    "UnitTestClassifier",
    "compile_custom_matchers",
    "matches_assertion_name",
]
