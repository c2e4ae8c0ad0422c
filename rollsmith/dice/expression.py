"""
Arithmetic expression parser and evaluator.

Roll totals are computed by building a small expression tree from the totals
of a roll's terms and the operators between them, then evaluating it. The
same tree is used by the formula simplifier, which keeps randomness-producing
terms as opaque leaves and folds everything else.

The operator grammar is a pyparsing infix grammar; math functions and
constants come from an explicit read-only table and nothing is resolved
through global lookup.
"""

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Sequence, Union

import pyparsing as pp

from rollsmith.core.errors import ErrorCode, EvaluationError, FormulaError

pp.ParserElement.enable_packrat()


def _js_round(value: float) -> float:
    return math.floor(value + 0.5)


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def _clamped(value: float, minimum: float, maximum: float) -> float:
    return min(max(value, minimum), maximum)


MATH_FUNCTIONS: Mapping[str, Callable[..., Any]] = MappingProxyType({
    'abs': abs,
    'ceil': math.ceil,
    'floor': math.floor,
    'round': _js_round,
    'trunc': math.trunc,
    'sign': _sign,
    'sqrt': math.sqrt,
    'cbrt': lambda value: math.copysign(abs(value) ** (1 / 3), value),
    'exp': math.exp,
    'log': math.log,
    'log2': math.log2,
    'log10': math.log10,
    'pow': math.pow,
    'hypot': math.hypot,
    'min': min,
    'max': max,
    'clamp': _clamped,
    'clamped': _clamped,
})

MATH_CONSTANTS: Mapping[str, float] = MappingProxyType({
    'PI': math.pi,
    'E': math.e,
})

Number = Union[int, float]


def format_number(value: Any) -> str:
    """Render a number the way formulas write it (2.0 -> "2", nan -> "NaN")."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        if math.isnan(value):
            return 'NaN'
        if math.isinf(value):
            return 'Infinity' if value > 0 else '-Infinity'
        if value.is_integer():
            return str(int(value))
    return str(value)


def to_number(value: Any) -> Number:
    """Coerce a term total into a number for arithmetic."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return 0
    raise EvaluationError(f"Value {value!r} is not numeric")


def normalize_number(value: Number) -> Number:
    """Collapse integral floats to int so totals print and compare cleanly."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# ========== Tokens ==========

class TokenKind(Enum):
    NUMBER = "number"
    OPERATOR = "operator"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any


# ========== Tree nodes ==========

@dataclass(frozen=True)
class Constant:
    value: Any


@dataclass(frozen=True)
class Opaque:
    """A leaf whose value is unknown (dice, unresolved calls)."""
    text: str


@dataclass(frozen=True)
class Unary:
    operator: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    operator: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Ternary:
    condition: Any
    if_true: Any
    if_false: Any


Node = Union[Constant, Opaque, Unary, Binary, Ternary]

BINARY_PRECEDENCE = {
    '||': 1,
    '&&': 2,
    '==': 3, '!=': 3, '===': 3, '!==': 3,
    '<': 4, '<=': 4, '>': 4, '>=': 4,
    '+': 5, '-': 5,
    '*': 6, '/': 6, '%': 6,
    '**': 8,
}
RIGHT_ASSOCIATIVE = {'**'}
UNARY_OPERATORS = ('!', '-', '+')
UNARY_PRECEDENCE = 7
TERNARY_PRECEDENCE = 0


# ========== Grammar ==========
#
# Token sequences are rendered as text with one ``$n`` slot per operand, so
# the grammar only has to deal with operators:
#
#     slot    ::= "$" digit+
#     power   ::= slot ["**" unary]
#     unary   ::= ("!" | "-" | "+") unary | power
#     binary  ::= unary (op unary)*          one level per BINARY_PRECEDENCE
#     ternary ::= binary ["?" ternary ":" ternary]
#
# ``**`` binds tighter than unary minus on its left but accepts a signed
# right operand, so ``-2 ** 2`` is -4 and ``2 ** -1`` is 0.5.

def _slot_index(tokens) -> int:
    return int(tokens[0][1:])


def _power_node(tokens):
    if len(tokens) == 1:
        return tokens[0]
    return Binary('**', tokens[0], tokens[2])


def _unary_node(tokens):
    return Unary(tokens[0], tokens[1])


def _binary_node(tokens):
    items = tokens[0]
    node = items[0]
    for index in range(1, len(items), 2):
        node = Binary(items[index], node, items[index + 1])
    return node


def _ternary_node(tokens):
    condition, _, if_true, _, if_false = tokens[0]
    return Ternary(condition, if_true, if_false)


def _expression_grammar() -> pp.ParserElement:
    slot = pp.Regex(r'\$\d+').set_parse_action(_slot_index)

    unary = pp.Forward()
    power = (slot + pp.Opt(pp.Literal('**') + unary)).set_parse_action(_power_node)
    unary <<= (pp.one_of(UNARY_OPERATORS) + unary).set_parse_action(_unary_node) | power

    levels: Dict[int, List[str]] = {}
    for operator, precedence in BINARY_PRECEDENCE.items():
        if operator not in RIGHT_ASSOCIATIVE:
            levels.setdefault(precedence, []).append(operator)

    operators = [
        (pp.one_of(levels[precedence]), 2, pp.OpAssoc.LEFT, _binary_node)
        for precedence in sorted(levels, reverse=True)
    ]
    operators.append(((pp.Literal('?'), pp.Literal(':')), 3, pp.OpAssoc.RIGHT, _ternary_node))
    return pp.infix_notation(unary, operators)


EXPRESSION = _expression_grammar()


def _bind(node: Any, leaves: Sequence[Node]) -> Node:
    """Replace slot indices in a parsed tree with their operand leaves."""
    if isinstance(node, int):
        return leaves[node]
    if isinstance(node, Unary):
        return Unary(node.operator, _bind(node.operand, leaves))
    if isinstance(node, Binary):
        return Binary(node.operator, _bind(node.left, leaves), _bind(node.right, leaves))
    return Ternary(
        _bind(node.condition, leaves),
        _bind(node.if_true, leaves),
        _bind(node.if_false, leaves),
    )


def _describe(tokens: Sequence[Token]) -> str:
    parts = []
    for token in tokens:
        if token.kind is TokenKind.NUMBER:
            parts.append(format_number(token.value) if isinstance(token.value, (int, float)) else repr(token.value))
        else:
            parts.append(str(token.value))
    return ' '.join(parts)


def parse_tokens(tokens: Sequence[Token]) -> Node:
    """
    Parse a token sequence into an expression tree.

    Raises:
        FormulaError: If the operators and operands do not form an expression
    """
    if not tokens:
        return Constant(0)

    leaves: List[Node] = []
    parts = []
    for token in tokens:
        if token.kind is TokenKind.OPERATOR:
            parts.append(token.value)
            continue
        parts.append(f"${len(leaves)}")
        leaves.append(Constant(token.value) if token.kind is TokenKind.NUMBER else Opaque(token.value))

    try:
        result = EXPRESSION.parse_string(' '.join(parts), parse_all=True)
    except pp.ParseBaseException as e:
        raise FormulaError(f"Malformed expression {_describe(tokens)!r}: {e.msg}") from e
    return _bind(result[0], leaves)


# ========== Evaluation ==========

def truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def apply_unary(operator: str, value: Any) -> Any:
    if operator == '!':
        return int(not truthy(value))
    number = to_number(value)
    return -number if operator == '-' else +number


# Integer results past float range cannot be rendered or serialized usefully
MAX_INTEGER_BITS = 1024


def _bounded(value: Any) -> Any:
    if isinstance(value, int) and value.bit_length() > MAX_INTEGER_BITS:
        raise EvaluationError(
            f"Result exceeds {MAX_INTEGER_BITS} bits",
            ErrorCode.RESULT_TOO_LARGE,
        )
    return value


def _check_power(base: Number, exponent: Number) -> None:
    """Refuse integer powers whose result is certainly too large, before computing them."""
    if not isinstance(base, int) or not isinstance(exponent, int):
        return
    if exponent > 0 and abs(base) > 1 and exponent * (abs(base).bit_length() - 1) > MAX_INTEGER_BITS:
        raise EvaluationError(
            f"{base} ** {exponent} exceeds {MAX_INTEGER_BITS} bits",
            ErrorCode.RESULT_TOO_LARGE,
        )


def apply_binary(operator: str, left: Any, right: Any) -> Any:
    """Apply a binary operator with formula semantics."""
    if operator == '&&':
        return right if truthy(left) else left
    if operator == '||':
        return left if truthy(left) else right

    if operator in ('==', '==='):
        return int(_loose(left) == _loose(right))
    if operator in ('!=', '!=='):
        return int(_loose(left) != _loose(right))

    a = to_number(left)
    b = to_number(right)
    try:
        if operator == '+':
            return _bounded(a + b)
        if operator == '-':
            return _bounded(a - b)
        if operator == '*':
            return _bounded(a * b)
        if operator == '/':
            if b == 0:
                raise EvaluationError("Division by zero", ErrorCode.DIVISION_BY_ZERO)
            return a / b
        if operator == '%':
            if b == 0:
                raise EvaluationError("Modulo by zero", ErrorCode.DIVISION_BY_ZERO)
            return math.fmod(a, b)
        if operator == '**':
            _check_power(a, b)
            result = a ** b
            if isinstance(result, complex):
                raise EvaluationError(f"{a} ** {b} has no real result")
            return _bounded(result)
        if operator == '<':
            return int(a < b)
        if operator == '<=':
            return int(a <= b)
        if operator == '>':
            return int(a > b)
        if operator == '>=':
            return int(a >= b)
    except (OverflowError, ZeroDivisionError) as e:
        raise EvaluationError(f"Arithmetic failure: {a} {operator} {b}: {e}") from e
    raise FormulaError(f"Unknown operator {operator!r}")


def _loose(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    return value


def evaluate(node: Node) -> Any:
    """Evaluate an expression tree. Opaque leaves cannot be evaluated."""
    if isinstance(node, Constant):
        return node.value
    if isinstance(node, Opaque):
        raise EvaluationError(f"Cannot evaluate {node.text!r}", ErrorCode.UNRESOLVED_TERM)
    if isinstance(node, Unary):
        return apply_unary(node.operator, evaluate(node.operand))
    if isinstance(node, Binary):
        left = evaluate(node.left)
        # Short circuit before touching the right side
        if node.operator == '&&' and not truthy(left):
            return left
        if node.operator == '||' and truthy(left):
            return left
        return apply_binary(node.operator, left, evaluate(node.right))
    if isinstance(node, Ternary):
        if truthy(evaluate(node.condition)):
            return evaluate(node.if_true)
        return evaluate(node.if_false)
    raise EvaluationError(f"Unknown expression node {node!r}")


def evaluate_tokens(tokens: List[Token]) -> Any:
    """Parse and evaluate a token sequence in one step."""
    return evaluate(parse_tokens(tokens))


def call_math_function(name: str, args: Sequence[Any]) -> Number:
    """Call a function from the read-only math table."""
    function = MATH_FUNCTIONS.get(name)
    if function is None:
        raise FormulaError(f"Unknown math function {name!r}")
    try:
        return function(*(to_number(arg) for arg in args))
    except (TypeError, ValueError, OverflowError) as e:
        raise EvaluationError(f"{name}() failed: {e}") from e


__all__ = [
    'MATH_FUNCTIONS',
    'MATH_CONSTANTS',
    'MAX_INTEGER_BITS',
    'TokenKind',
    'Token',
    'Constant',
    'Opaque',
    'Unary',
    'Binary',
    'Ternary',
    'BINARY_PRECEDENCE',
    'UNARY_PRECEDENCE',
    'format_number',
    'to_number',
    'normalize_number',
    'parse_tokens',
    'evaluate',
    'evaluate_tokens',
    'truthy',
    'apply_unary',
    'apply_binary',
    'call_math_function',
]
