"""Tests for formulagrid.calc error sentinels, coercion and aggregates."""

from __future__ import annotations

import math

import pytest

from formulagrid.calc._functions import (
    ERROR_CODES,
    CellError,
    FunctionRegistry,
    as_error,
    get_numeric_value,
    is_error,
)


class TestCellError:
    def test_singletons(self) -> None:
        assert CellError.of("#REF!") is CellError.REF
        assert CellError.of("#div/0!") is CellError.DIV0

    def test_equal_to_code_string(self) -> None:
        assert CellError.REF == "#REF!"
        assert CellError.NUM == "#NUM!"
        assert CellError.NAME != "#REF!"

    def test_str_and_repr(self) -> None:
        assert str(CellError.DIV0) == "#DIV/0!"
        assert repr(CellError.ERROR) == "#ERROR"

    def test_hash_matches_code(self) -> None:
        assert CellError.REF in {"#REF!"}

    def test_closed_set(self) -> None:
        assert ERROR_CODES == {"#ERROR", "#REF!", "#DIV/0!", "#NUM!", "#NAME?"}

    def test_as_error_accepts_plain_strings(self) -> None:
        assert as_error("#REF!") is CellError.REF
        assert as_error(CellError.NUM) is CellError.NUM

    def test_as_error_rejects_other_values(self) -> None:
        assert as_error("#hello") is None
        assert as_error("REF!") is None
        assert as_error(3) is None
        assert as_error(None) is None

    def test_is_error(self) -> None:
        assert is_error("#NAME?")
        assert not is_error("text")


class TestGetNumericValue:
    def test_numbers_pass_through(self) -> None:
        assert get_numeric_value(3) == 3
        assert get_numeric_value(2.5) == 2.5
        assert get_numeric_value(0) == 0

    def test_non_finite_numbers(self) -> None:
        assert get_numeric_value(math.inf) is None
        assert get_numeric_value(math.nan) is None

    def test_numeric_strings(self) -> None:
        assert get_numeric_value("42") == 42
        assert isinstance(get_numeric_value("42"), int)
        assert get_numeric_value(" 1.5 ") == 1.5
        assert get_numeric_value("-7") == -7
        assert get_numeric_value("1e3") == 1000.0

    def test_blank_strings(self) -> None:
        assert get_numeric_value("") is None
        assert get_numeric_value("   ") is None

    def test_text(self) -> None:
        assert get_numeric_value("abc") is None
        assert get_numeric_value("12abc") is None

    def test_non_finite_strings(self) -> None:
        assert get_numeric_value("inf") is None
        assert get_numeric_value("nan") is None

    def test_integer_past_float_range(self) -> None:
        assert get_numeric_value(10**400) is None
        assert get_numeric_value(-(10**400)) is None
        assert get_numeric_value(10**300) == 10**300

    def test_underscore_digits_are_text(self) -> None:
        assert get_numeric_value("1_000") is None

    def test_non_ascii_digits_are_text(self) -> None:
        assert get_numeric_value("\u0661\u0662") is None
        assert get_numeric_value("\uff11") is None

    def test_other_types(self) -> None:
        assert get_numeric_value(None) is None
        assert get_numeric_value(True) is None
        assert get_numeric_value([1]) is None
        assert get_numeric_value(CellError.REF) is None


class TestAggregates:
    @pytest.fixture
    def registry(self) -> FunctionRegistry:
        return FunctionRegistry()

    def test_sum(self, registry: FunctionRegistry) -> None:
        assert registry.call("SUM", [1, 2, 3]) == 6

    def test_sum_empty(self, registry: FunctionRegistry) -> None:
        assert registry.call("SUM", []) == 0

    def test_average(self, registry: FunctionRegistry) -> None:
        assert registry.call("AVERAGE", [1, 2, 3]) == 2

    def test_mean_is_average(self, registry: FunctionRegistry) -> None:
        assert registry.call("MEAN", [2, 4]) == 3

    def test_average_empty(self, registry: FunctionRegistry) -> None:
        assert registry.call("AVERAGE", []) == "#DIV/0!"
        assert registry.call("MEAN", []) is CellError.DIV0

    def test_median_odd(self, registry: FunctionRegistry) -> None:
        assert registry.call("MEDIAN", [3, 1, 2]) == 2

    def test_median_even(self, registry: FunctionRegistry) -> None:
        assert registry.call("MEDIAN", [4, 1, 3, 2]) == 2.5

    def test_median_empty(self, registry: FunctionRegistry) -> None:
        assert registry.call("MEDIAN", []) is CellError.NUM

    def test_unknown_name(self, registry: FunctionRegistry) -> None:
        assert registry.call("MODE", [1]) is CellError.NAME


class TestFunctionRegistry:
    def test_builtins(self) -> None:
        reg = FunctionRegistry()
        assert reg.supported_functions == {"SUM", "AVERAGE", "MEAN", "MEDIAN"}

    def test_case_insensitive(self) -> None:
        reg = FunctionRegistry()
        assert reg.has("sum")
        assert reg.get("Median") is not None

    def test_register(self) -> None:
        reg = FunctionRegistry()
        reg.register("max", lambda values: max(values) if values else 0)
        assert reg.has("MAX")
        assert reg.call("MAX", [1, 5, 2]) == 5

    def test_registries_are_independent(self) -> None:
        a = FunctionRegistry()
        a.register("MAX", max)
        assert not FunctionRegistry().has("MAX")
