"""
Tests for the arithmetic expression parser and evaluator.
"""

import math

import pytest

from rollsmith.core.errors import ErrorCode, EvaluationError, FormulaError
from rollsmith.dice.expression import (
    MATH_FUNCTIONS,
    Binary,
    Constant,
    Opaque,
    Token,
    TokenKind,
    call_math_function,
    evaluate_tokens,
    format_number,
    parse_tokens,
)


def num(value):
    return Token(TokenKind.NUMBER, value)


def op(value):
    return Token(TokenKind.OPERATOR, value)


class TestPrecedence:
    """Test operator precedence and associativity."""

    def test_multiplication_before_addition(self):
        """Test 2 + 3 * 4."""
        assert evaluate_tokens([num(2), op('+'), num(3), op('*'), num(4)]) == 14

    def test_power_is_right_associative(self):
        """Test 2 ** 3 ** 2."""
        assert evaluate_tokens([num(2), op('**'), num(3), op('**'), num(2)]) == 512

    def test_subtraction_is_left_associative(self):
        """Test 10 - 4 - 3."""
        assert evaluate_tokens([num(10), op('-'), num(4), op('-'), num(3)]) == 3

    def test_unary_minus(self):
        """Test -3 + 5."""
        assert evaluate_tokens([op('-'), num(3), op('+'), num(5)]) == 2

    def test_comparison_then_equality(self):
        """Test 3 > 2 == 1."""
        assert evaluate_tokens([num(3), op('>'), num(2), op('=='), num(1)]) == 1

    def test_nested_ternary(self):
        """Test 0 ? 1 : 0 ? 2 : 3."""
        tokens = [num(0), op('?'), num(1), op(':'), num(0), op('?'), num(2), op(':'), num(3)]
        assert evaluate_tokens(tokens) == 3

    def test_power_binds_tighter_than_unary_minus(self):
        """Test -2 ** 2 and 2 ** -1."""
        assert evaluate_tokens([op('-'), num(2), op('**'), num(2)]) == -4
        assert evaluate_tokens([num(2), op('**'), op('-'), num(1)]) == 0.5

    def test_repeated_unary(self):
        """Test 1 - - 1 and !!3."""
        assert evaluate_tokens([num(1), op('-'), op('-'), num(1)]) == 2
        assert evaluate_tokens([op('!'), op('!'), num(3)]) == 1

    def test_opaque_leaves_keep_their_place(self):
        """Test 1 + 1d6 * 2 groups the die with the product."""
        tokens = [num(1), op('+'), Token(TokenKind.OPAQUE, '1d6'), op('*'), num(2)]
        assert parse_tokens(tokens) == Binary('+', Constant(1), Binary('*', Opaque('1d6'), Constant(2)))


class TestOperators:
    """Test operator semantics."""

    def test_logical_operators_return_operands(self):
        """Test && and || return one of their operands."""
        assert evaluate_tokens([num(True), op('&&'), num(5)]) == 5
        assert evaluate_tokens([num(0), op('||'), num(3)]) == 3
        assert evaluate_tokens([num(0), op('&&'), num(3)]) == 0

    def test_not(self):
        """Test logical not."""
        assert evaluate_tokens([op('!'), num(0)]) == 1
        assert evaluate_tokens([op('!'), num(4)]) == 0

    def test_modulo(self):
        """Test modulo keeps the dividend's sign."""
        assert evaluate_tokens([num(10), op('%'), num(4)]) == 2
        assert evaluate_tokens([op('-'), num(7), op('%'), num(3)]) == -1

    def test_division_by_zero(self):
        """Test division by zero raises with its own code."""
        with pytest.raises(EvaluationError) as exc:
            evaluate_tokens([num(1), op('/'), num(0)])
        assert exc.value.code == ErrorCode.DIVISION_BY_ZERO

    def test_short_circuit_skips_right_side(self):
        """Test the right side of a short-circuited && is never evaluated."""
        tokens = [num(0), op('&&'), Token(TokenKind.OPAQUE, '1d6')]
        assert evaluate_tokens(tokens) == 0

    def test_opaque_leaf_cannot_be_evaluated(self):
        """Test opaque leaves raise an unresolved term error."""
        with pytest.raises(EvaluationError) as exc:
            evaluate_tokens([Token(TokenKind.OPAQUE, 'foo'), op('+'), num(1)])
        assert exc.value.code == ErrorCode.UNRESOLVED_TERM


class TestParseErrors:
    """Test malformed token sequences."""

    def test_empty_is_zero(self):
        """Test an empty sequence totals zero."""
        assert evaluate_tokens([]) == 0

    def test_dangling_operator(self):
        """Test a trailing operator is rejected."""
        with pytest.raises(FormulaError):
            evaluate_tokens([num(1), op('+')])

    def test_missing_operator(self):
        """Test adjacent values are rejected."""
        with pytest.raises(FormulaError):
            evaluate_tokens([num(1), num(2)])

    def test_ternary_without_colon(self):
        """Test ? without : is rejected."""
        with pytest.raises(FormulaError):
            evaluate_tokens([num(1), op('?'), num(2)])


class TestMathTable:
    """Test the read-only math function table."""

    def test_table_is_read_only(self):
        """Test functions cannot be added at runtime."""
        with pytest.raises(TypeError):
            MATH_FUNCTIONS['eval'] = eval

    def test_round_half_up(self):
        """Test round() rounds halves toward positive infinity."""
        assert call_math_function('round', [2.5]) == 3
        assert call_math_function('round', [-2.5]) == -2

    def test_min_max_clamp(self):
        """Test variadic and clamping functions."""
        assert call_math_function('max', [1, 7, 3]) == 7
        assert call_math_function('min', [4, 2]) == 2
        assert call_math_function('clamp', [12, 0, 10]) == 10

    def test_domain_error(self):
        """Test math domain errors become evaluation errors."""
        with pytest.raises(EvaluationError):
            call_math_function('sqrt', [-1])

    def test_unknown_function(self):
        """Test unknown names are rejected."""
        with pytest.raises(FormulaError):
            call_math_function('system', [])


def test_format_number():
    """Test numbers render the way formulas write them."""
    assert format_number(2.0) == '2'
    assert format_number(0.5) == '0.5'
    assert format_number(-3) == '-3'
    assert format_number(True) == 'true'
    assert format_number(math.nan) == 'NaN'
    assert format_number(-math.inf) == '-Infinity'


class TestResultBounds:
    """Test integer results are kept to a printable size."""

    def test_huge_power(self):
        """Test 10 ** 5000 is refused before it is computed."""
        with pytest.raises(EvaluationError) as exc:
            evaluate_tokens([num(10), op('**'), num(5000)])
        assert exc.value.code == ErrorCode.RESULT_TOO_LARGE

    def test_growing_products(self):
        """Test chained products stop once they outgrow the limit."""
        big = 10 ** 300
        with pytest.raises(EvaluationError) as exc:
            evaluate_tokens([num(big), op('*'), num(big), op('*'), num(big), op('*'), num(big)])
        assert exc.value.code == ErrorCode.RESULT_TOO_LARGE

    def test_large_results_within_limit(self):
        """Test big but bounded powers still evaluate."""
        assert evaluate_tokens([num(2), op('**'), num(1000)]) == 2 ** 1000
        assert evaluate_tokens([num(-1), op('**'), num(10 ** 9)]) == 1
        assert evaluate_tokens([num(2.0), op('**'), num(0.5)]) == pytest.approx(math.sqrt(2))
