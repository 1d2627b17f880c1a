from __future__ import annotations

from vouch.analysis.scope_engine import (
    MISSING_ASSERTION_MESSAGE,
    AssertionsInTestsCheck,
)
from vouch.analysis.symbols import CollectingSink, Location
from vouch.analysis.test_classifier import TestConventions

from tests.source_helpers import SAMPLE_PATH, check_source, flagged, lower


def test_empty_test_reports_one_finding_at_function_name() -> None:
    findings = check_source(
        """
        def test_nothing():
            pass
        """
    )
    assert len(findings) == 1
    finding = findings[0]
    assert finding.location == Location(path=SAMPLE_PATH, line=2, column=5)
    assert finding.message == MISSING_ASSERTION_MESSAGE
    assert finding.test_name == "test_nothing"
    assert finding.render() == (
        "tests/test_sample.py:2:5: Add at least one assertion to this test case. [test_nothing]"
    )


def test_unittest_assertion_satisfies_test() -> None:
    findings = check_source(
        """
        import unittest

        class SampleTest(unittest.TestCase):
            def test_equal(self):
                self.assertEqual(1, 1)

            def test_empty(self):
                compute()
        """
    )
    assert flagged(findings) == ["SampleTest.test_empty"]
    assert findings[0].location.line == 8
    assert findings[0].location.column == 9


def test_fluent_assertion_chain_satisfies_test() -> None:
    findings = check_source(
        """
        from assertpy import assert_that

        def test_fluent():
            assert_that(5).is_less_than(3)
        """
    )
    assert findings == []


def test_assert_statement_satisfies_test() -> None:
    findings = check_source(
        """
        def test_plain():
            assert compute() == 2
        """
    )
    assert findings == []


def test_expected_exception_marker_exempts_test() -> None:
    findings = check_source(
        """
        import pytest

        @pytest.mark.xfail(raises=ValueError)
        def test_parses():
            int("nope")

        @pytest.mark.xfail(reason="flaky")
        def test_flaky():
            int("1")
        """
    )
    assert flagged(findings) == ["test_flaky"]


def test_pytest_raises_and_assertion_error_count() -> None:
    findings = check_source(
        """
        import pytest

        def test_raises():
            with pytest.raises(ValueError):
                int("x")

        def test_manual():
            if compute() != 2:
                raise AssertionError("mismatch")
        """
    )
    assert findings == []


def test_helper_delegation_one_level() -> None:
    findings = check_source(
        """
        def ensure_positive(value):
            assert value > 0

        def test_helper():
            ensure_positive(3)
        """
    )
    assert findings == []


def test_helper_delegation_two_levels() -> None:
    findings = check_source(
        """
        def inner(value):
            assert value

        def outer(value):
            inner(value)

        def test_two_levels():
            outer(1)
        """
    )
    assert findings == []


def test_helper_without_assertion_is_not_evidence() -> None:
    findings = check_source(
        """
        def build(value):
            return [value]

        def test_builds():
            build(1)
        """
    )
    assert flagged(findings) == ["test_builds"]


def test_imported_helper_is_opaque() -> None:
    findings = check_source(
        """
        from tests.helpers import ensure_positive

        def test_imported():
            ensure_positive(3)
        """
    )
    assert flagged(findings) == ["test_imported"]


def test_method_reference_to_assertion_counts() -> None:
    findings = check_source(
        """
        import unittest

        class MapTest(unittest.TestCase):
            def test_all_true(self):
                list(map(self.assertTrue, [1, 2]))
        """
    )
    assert findings == []


def test_private_helper_method_on_test_case() -> None:
    findings = check_source(
        """
        import unittest

        class TotalTest(unittest.TestCase):
            def _total_is(self, total):
                self.assertEqual(total, 3)

            def test_total(self):
                self._total_is(3)
        """
    )
    assert findings == []


def test_assertion_inside_nested_callback_does_not_count() -> None:
    findings = check_source(
        """
        def run(callback):
            callback()

        def test_callback():
            def callback():
                assert True
            run(callback)
        """
    )
    assert flagged(findings) == ["test_callback"]


def test_lambda_body_counts_for_enclosing_test() -> None:
    findings = check_source(
        """
        def test_lambda():
            list(map(lambda v: assert_valid(v), [1]))
        """
    )
    assert findings == []


def test_data_attribute_named_like_assertion_is_not_evidence() -> None:
    findings = check_source(
        """
        import unittest

        class DataTest(unittest.TestCase):
            def setUp(self):
                self.expected = 3

            def test_uses_expected(self):
                compute(self.expected)
        """
    )
    assert flagged(findings) == ["DataTest.test_uses_expected"]


def test_custom_matcher_marks_helper_as_assertion() -> None:
    source = """
        from pkg import Helper

        def test_custom():
            Helper.ensure_valid()
        """
    assert flagged(check_source(source)) == ["test_custom"]
    assert check_source(source, custom="pkg.Helper#ensure*") == []


def test_abstract_test_is_skipped() -> None:
    findings = check_source(
        """
        import abc
        import unittest

        class ContractTest(unittest.TestCase):
            @abc.abstractmethod
            def test_contract(self):
                ...
        """
    )
    assert findings == []


def test_marker_inherited_through_override_chain() -> None:
    findings = check_source(
        """
        from nose.tools import istest

        class Base:
            @istest
            def scenario(self):
                assert True

        class Derived(Base):
            def scenario(self):
                compute()
        """
    )
    assert flagged(findings) == ["Derived.scenario"]


def test_pytest_collection_rules() -> None:
    source = """
        import pytest

        def test_module_level():
            compute()

        @pytest.fixture
        def test_data():
            return 1

        class TestThing:
            def test_method(self):
                compute()

        class TestWithInit:
            def __init__(self):
                self.value = 1

            def test_ignored(self):
                compute()
        """
    assert flagged(check_source(source)) == ["test_module_level", "TestThing.test_method"]
    assert check_source(source, conventions=TestConventions(pytest_collection=False)) == []


def test_second_classification_is_memo_hit() -> None:
    unit = lower(
        """
        def ensure_positive(value):
            assert value > 0

        def test_first():
            ensure_positive(1)

        def test_second():
            ensure_positive(2)
        """
    )
    sink = CollectingSink()
    classifier = AssertionsInTestsCheck().scan_unit(unit, sink)
    assert sink.findings == []
    assert classifier.memo.traversals == 1
    assert unit.resolution.declaration_lookups == 1


def test_recursive_helpers_terminate() -> None:
    findings = check_source(
        """
        def loop(n):
            if n:
                loop(n - 1)

        def ping(n):
            if n:
                pong(n - 1)

        def pong(n):
            assert n >= 0
            ping(n)

        def test_loop():
            loop(3)

        def test_ping():
            ping(3)
        """
    )
    assert flagged(findings) == ["test_loop"]


def test_async_test_functions_are_checked() -> None:
    findings = check_source(
        """
        async def test_async():
            await fetch()
        """
    )
    assert flagged(findings) == ["test_async"]
    assert findings[0].location.column == 11


def test_nested_helper_called_directly_counts() -> None:
    findings = check_source(
        """
        def test_direct():
            def helper():
                assert compute() == 2
            helper()
        """
    )
    assert findings == []


def test_imported_values_are_not_assertion_evidence() -> None:
    findings = check_source(
        """
        import numpy as np
        from tests.data import expected_rows, checkpoint_dir

        def test_loads():
            load(expected_rows)
            save(checkpoint_dir)

        def test_numeric(actual, desired):
            list(map(np.testing.assert_allclose, actual, desired))
        """
    )
    assert flagged(findings) == ["test_loads"]
