from __future__ import annotations

from vouch.analysis.nodes import FunctionDecl, TypeDecl
from vouch.analysis.test_classifier import TestConventions, UnitTestClassifier

from tests.source_helpers import lower


def _decls(source: str, conventions: TestConventions | None = None):
    unit = lower(source)
    classifier = UnitTestClassifier(unit.resolution, conventions)
    found: dict[str, FunctionDecl] = {}
    pending = list(unit.nodes)
    while pending:
        node = pending.pop()
        match node:
            case FunctionDecl(body=body):
                found[node.qualname] = node
                pending.extend(body)
            case TypeDecl(body=body):
                pending.extend(body)
    return classifier, found


def test_known_framework_bases_are_test_cases() -> None:
    classifier, decls = _decls(
        """
        from django.test import TestCase
        from twisted.trial import unittest

        class ViewTests(TestCase):
            def test_index(self):
                pass

            def helper(self):
                pass

        class TrialTests(unittest.TestCase):
            def test_deferred(self):
                pass
        """,
        TestConventions(pytest_collection=False),
    )
    assert classifier.is_test_function(decls["ViewTests.test_index"])
    assert not classifier.is_test_function(decls["ViewTests.helper"])
    assert classifier.is_test_function(decls["TrialTests.test_deferred"])


def test_configured_marker_and_expected_keyword() -> None:
    conventions = TestConventions(
        test_markers=("pkg.scenario",),
        pytest_collection=False,
    )
    classifier, decls = _decls(
        """
        from pkg import scenario

        @scenario(expected="ValueError")
        def parses_bad_input():
            pass

        @scenario("smoke")
        def smoke():
            pass

        def plain():
            pass
        """,
        conventions,
    )
    assert classifier.is_test_function(decls["parses_bad_input"])
    assert classifier.expect_assertion(decls["parses_bad_input"])
    assert classifier.is_test_function(decls["smoke"])
    assert not classifier.expect_assertion(decls["smoke"])
    assert not classifier.is_test_function(decls["plain"])


def test_custom_base_type() -> None:
    conventions = TestConventions(test_base_types=("pkg.Spec",), pytest_collection=False)
    classifier, decls = _decls(
        """
        from pkg import Spec

        class LoginSpec(Spec):
            def test_login(self):
                pass
        """,
        conventions,
    )
    assert classifier.is_test_function(decls["LoginSpec.test_login"])


def test_nested_functions_are_not_collected() -> None:
    classifier, decls = _decls(
        """
        def test_outer():
            def test_inner():
                pass
        """
    )
    assert classifier.is_test_function(decls["test_outer"])
    assert not classifier.is_test_function(decls["test_outer.test_inner"])


def test_static_and_nested_test_classes() -> None:
    classifier, decls = _decls(
        """
        class TestOuter:
            @staticmethod
            def test_static():
                pass

            class TestInner:
                def test_deep(self):
                    pass
        """
    )
    assert classifier.is_test_function(decls["TestOuter.test_static"])
    assert classifier.is_test_function(decls["TestOuter.TestInner.test_deep"])
