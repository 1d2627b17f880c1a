"""Known assertion entry points of common Python testing libraries."""

from __future__ import annotations

from vouch.analysis.criteria import ANY_NAME, ExactType, PrefixName, SubtypeOf
from vouch.analysis.matchers import MatcherSet, method
from vouch.analysis.symbols import CONSTRUCTOR_NAME

_REQUESTS_RESPONSE = ExactType("requests.Response")
_HTTPX_RESPONSE = ExactType("httpx.Response")

BUILTIN_ASSERTION_MATCHERS = MatcherSet.of(
    # unittest
    method(SubtypeOf("unittest.TestCase"), PrefixName("assert")),
    method(SubtypeOf("unittest.TestCase"), PrefixName("fail")),
    method(SubtypeOf("unittest.mock.NonCallableMock"), PrefixName("assert_")),
    # pytest
    method("pytest", "raises"),
    method("pytest", "warns"),
    method("pytest", "deprecated_call"),
    method("pytest", "fail"),
    # numeric libraries
    method(ExactType("numpy.testing"), ANY_NAME),
    method(ExactType("pandas.testing"), ANY_NAME),
    method(ExactType("torch.testing"), ANY_NAME),
    # hamcrest / assertpy
    method("hamcrest", "assert_that"),
    method(SubtypeOf("assertpy.assertpy.AssertionBuilder"), ANY_NAME),
    method("assertpy", "soft_assertions"),
    # response validation
    method(_REQUESTS_RESPONSE, "raise_for_status"),
    method(_HTTPX_RESPONSE, "raise_for_status"),
    # verification constructors
    method("testfixtures", "compare"),
    method("testfixtures.ShouldRaise", CONSTRUCTOR_NAME),
    method("testfixtures.ShouldWarn", CONSTRUCTOR_NAME),
    method("builtins.AssertionError", CONSTRUCTOR_NAME),
)
