"""
String-level formula helpers.

simplify_formula reduces a formula to the simplest equivalent text that can
be known without rolling: data is substituted, flavor stripped, constants
folded, and conditionals with known conditions resolved. Dice and anything
else random stay symbolic.

Example:
    simplify_formula("1d8-1+32+3-2*2")                     # "1d8 + 30"
    simplify_formula("ceil(@hd / 5)d6", {"hd": 10})        # "2d6"
    simplify_formula("2 <= 4 ? 1 : floor(2 / 11 + 1)d6")   # "1"
"""

import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

from rollsmith.core.errors import EvaluationError, RollError
from .expression import (
    BINARY_PRECEDENCE,
    UNARY_PRECEDENCE,
    Binary,
    Constant,
    Opaque,
    Ternary,
    Token,
    TokenKind,
    Unary,
    apply_binary,
    apply_unary,
    format_number,
    parse_tokens,
    truthy,
)
from .functions.base import FunctionTerm
from .terms import OperatorTerm, RollTerm
from .tokenizer import replace_formula_data

logger = logging.getLogger(__name__)

FLAIR_PATTERN = re.compile(r'\[[^\]]*\]')
WHITESPACE_PATTERN = re.compile(r'\s+')
NUMERIC_PATTERN = re.compile(r'^-?(?:\d+(?:\.\d*)?|\.\d+)$')


def unflair(formula: str) -> str:
    """Strip ``[flavor]`` annotations."""
    return FLAIR_PATTERN.sub('', formula)


def compress(formula: str) -> str:
    """Strip all whitespace."""
    return WHITESPACE_PATTERN.sub('', formula)


def _parse(formula: str) -> List[RollTerm]:
    from .roll import Roll
    return Roll.parse(formula)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, bool))


def _term_token(term: RollTerm, strict: bool) -> Token:
    if isinstance(term, OperatorTerm):
        return Token(TokenKind.OPERATOR, term.operator)

    if term.is_deterministic:
        try:
            term.evaluate()
        except RollError:
            if strict:
                raise
            return Token(TokenKind.OPAQUE, compress(unflair(term.formula)))
        if _is_number(term.total):
            return Token(TokenKind.NUMBER, term.total)

    if isinstance(term, FunctionTerm):
        simpler = unflair(term.simplify)
        if simpler != unflair(term.formula):
            simpler = simplify_formula(simpler, strict=strict)
            if NUMERIC_PATTERN.match(simpler):
                value = float(simpler)
                return Token(TokenKind.NUMBER, int(value) if value.is_integer() else value)
            if len(_parse(simpler)) > 1:
                return Token(TokenKind.OPAQUE, f"({simpler})")
            return Token(TokenKind.OPAQUE, simpler)

    return Token(TokenKind.OPAQUE, compress(unflair(term.formula)))


# ========== Folding ==========

def _fold(node, strict: bool):
    """Fold every subtree that does not depend on an opaque leaf."""
    try:
        return _fold_node(node, strict)
    except RollError:
        if strict:
            raise
        return node


def _fold_node(node, strict: bool):
    if isinstance(node, (Constant, Opaque)):
        return node

    if isinstance(node, Unary):
        operand = _fold(node.operand, strict)
        if isinstance(operand, Constant):
            return Constant(apply_unary(node.operator, operand.value))
        return Unary(node.operator, operand)

    if isinstance(node, Binary):
        left = _fold(node.left, strict)
        if isinstance(left, Constant):
            if node.operator == '&&' and not truthy(left.value):
                return left
            if node.operator == '||' and truthy(left.value):
                return left
        right = _fold(node.right, strict)
        if isinstance(left, Constant) and isinstance(right, Constant):
            return Constant(apply_binary(node.operator, left.value, right.value))
        return Binary(node.operator, left, right)

    if isinstance(node, Ternary):
        condition = _fold(node.condition, strict)
        if isinstance(condition, Constant):
            chosen = node.if_true if truthy(condition.value) else node.if_false
            return _fold(chosen, strict)
        return Ternary(condition, _fold(node.if_true, strict), _fold(node.if_false, strict))

    return node


def _flatten(node, negative: bool = False) -> List[Tuple[bool, Any]]:
    """Split an additive chain into signed operands."""
    if isinstance(node, Binary) and node.operator in ('+', '-'):
        right_negative = negative if node.operator == '+' else not negative
        return _flatten(node.left, negative) + _flatten(node.right, right_negative)
    if isinstance(node, Unary) and node.operator in ('+', '-'):
        return _flatten(node.operand, negative if node.operator == '+' else not negative)
    return [(negative, node)]


def _combine_constants(items: List[Tuple[bool, Any]]) -> List[Tuple[bool, Any]]:
    """Sum constants into one operand at the position of the first."""
    constants = [(neg, n) for neg, n in items if isinstance(n, Constant) and _is_number(n.value)]
    if len(constants) == len(items):
        return items

    total = 0
    for negative, node in constants:
        total = apply_binary('-' if negative else '+', total, node.value)

    combined = []
    placed = False
    for negative, node in items:
        if isinstance(node, Constant) and _is_number(node.value):
            if not placed and total != 0:
                combined.append((total < 0, Constant(abs(total))))
            placed = True
            continue
        combined.append((negative, node))
    return combined


# ========== Rendering ==========

def _precedence(node) -> int:
    if isinstance(node, Binary):
        return BINARY_PRECEDENCE[node.operator]
    if isinstance(node, Ternary):
        return -1
    if isinstance(node, Unary):
        return UNARY_PRECEDENCE
    return 99


def _render(node, min_precedence: int = -1) -> str:
    if isinstance(node, Constant):
        text = format_number(node.value) if _is_number(node.value) else f'"{node.value}"'
    elif isinstance(node, Opaque):
        text = node.text
    elif isinstance(node, Unary):
        text = f"{node.operator}{_render(node.operand, UNARY_PRECEDENCE)}"
    elif isinstance(node, Ternary):
        text = (f"{_render(node.condition, 0)} ? {_render(node.if_true)}"
                f" : {_render(node.if_false)}")
    elif node.operator in ('+', '-'):
        text = _render_chain(_flatten(node))
    else:
        precedence = BINARY_PRECEDENCE[node.operator]
        text = (f"{_render(node.left, precedence)} {node.operator} "
                f"{_render(node.right, precedence + 1)}")

    if _precedence(node) < min_precedence:
        return f"({text})"
    return text


def _render_chain(items: List[Tuple[bool, Any]]) -> str:
    parts = []
    for index, (negative, node) in enumerate(items):
        operand = _render(node, BINARY_PRECEDENCE['+'] + 1)
        if index == 0:
            parts.append(f"-{operand}" if negative else operand)
        else:
            parts.append(f" {'-' if negative else '+'} {operand}")
    return ''.join(parts)


def _simplify(substituted: str, strict: bool) -> str:
    tokens = [_term_token(term, strict) for term in _parse(unflair(substituted))]
    node = _fold(parse_tokens(tokens), strict)

    if isinstance(node, Constant):
        return _render(node)

    items = _combine_constants(_flatten(node))
    if not items:
        return '0'
    if len(items) == 1 and not items[0][0]:
        return _render(items[0][1])
    return _render_chain(items)


def simplify_formula(formula: str, data: Optional[Mapping[str, Any]] = None,
                     strict: bool = True) -> str:
    """
    Simplify a formula without rolling anything.

    Args:
        formula: Roll formula
        data: Roll data for ``@path`` references; never modified
        strict: Raise on formulas that cannot be parsed or folded. When False,
            the data-substituted formula is returned unchanged instead.

    Returns:
        Simplified formula; applying it again returns the same text

    Raises:
        FormulaError: If strict and the formula cannot be parsed
        EvaluationError: If strict and a constant part cannot be evaluated
    """
    substituted = str(formula)
    try:
        substituted, _ = replace_formula_data(substituted, data)
        return _simplify(substituted, strict)
    except RollError as e:
        if strict:
            raise
        logger.debug(f"Could not simplify {formula!r}: {e}")
    except ValueError as e:
        # int <-> str conversion refuses numbers of several thousand digits
        if strict:
            raise EvaluationError(f"Could not simplify {formula!r}: {e}") from e
        logger.debug(f"Could not simplify {formula!r}: {e}")
    return substituted.strip()


__all__ = ['unflair', 'compress', 'simplify_formula']
