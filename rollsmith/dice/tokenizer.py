"""
Formula tokenizer.

Turns a formula string into a flat sequence of roll terms. The lexical
grammar is built with pyparsing and recognises:
- Numbers (``2``, ``1.5``, ``.5``)
- Dice with keep/drop modifiers (``1d20``, ``3d20kh``, ``4d6dl1``)
- Operators (``+ - * / % ** == != < <= > >= && || ! ? :``)
- Parenthetical groups (``(1d6 + 2)``)
- Calls with comma separated arguments, routed through the function
  registry (``if(...)``, ``sizeRoll(...)``) or the math table (``max(1d6, 4)``)
- Quoted strings, ``true``/``false`` and ``null``
- ``[flavor]`` suffixes, emitted as fragments for the simplifier to attach

The grammar only produces lexemes; terms are built from them afterwards so
that nested groups and call arguments are parsed with the caller's registry.

``@path`` references are substituted by replace_formula_data before tokenizing.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

import pyparsing as pp

from rollsmith.core.errors import FormulaError
from .expression import MATH_CONSTANTS, MATH_FUNCTIONS, format_number
from .terms import (
    BooleanTerm,
    Die,
    MathTerm,
    NullTerm,
    NumericTerm,
    OperatorTerm,
    ParentheticalTerm,
    RealStringTerm,
    RollTerm,
    StringTerm,
)

DATA_PATTERN = re.compile(r'@([a-zA-Z0-9_\-]+(?:\.[a-zA-Z0-9_\-]+)*)')
FLAVOR_PATTERN = re.compile(r'\[([^\]]*)\]')

OPERATORS = ('**', '===', '!==', '==', '!=', '>=', '<=', '&&', '||',
             '-', '+', '*', '/', '%', '<', '>', '?', ':', '!')


# ========== Data substitution ==========

def resolve_data_path(data: Mapping[str, Any], path: str) -> Any:
    """Look up a dotted path in nested data. Missing keys resolve to None."""
    current: Any = data
    for part in path.split('.'):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current


def replace_formula_data(formula: str, data: Optional[Mapping[str, Any]] = None) -> Tuple[str, bool]:
    """
    Substitute ``@path`` references with values from data.

    Args:
        formula: Formula text
        data: Roll data; never modified

    Returns:
        Tuple of (substituted formula, warning) where warning is True if any
        reference resolved to a missing or null value and was replaced with 0
    """
    data = data or {}
    warning = False

    def substitute(match: re.Match) -> str:
        nonlocal warning
        value = resolve_data_path(data, match.group(1))
        if value is None or isinstance(value, (Mapping, list, tuple)):
            warning = True
            return '0'
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, (int, float)):
            return format_number(value)
        return str(value)

    return DATA_PATTERN.sub(substitute, formula), warning


# ========== Grammar ==========

@dataclass(frozen=True)
class Lexeme:
    """One lexical unit of a formula, before it becomes a term."""
    kind: str
    text: str
    parts: Tuple[Any, ...] = ()


def _lexeme(kind: str):
    return lambda tokens: Lexeme(kind, tokens[0])


def _dice_lexeme(tokens) -> Lexeme:
    return Lexeme('dice', tokens[0], (tokens['count'], tokens['faces'], tokens['modifiers']))


def _call_lexeme(tokens) -> Lexeme:
    return Lexeme('call', tokens[0], (tokens['name'], _argument_list(tokens['args'])))


def _argument_list(args) -> Tuple[str, ...]:
    args = tuple(arg.strip() for arg in args)
    # f() has no arguments rather than one empty one
    if args == ('',):
        return ()
    return args


FLAVOR = pp.Regex(r'\[[^\]]*\]')
QUOTED = pp.QuotedString('"') | pp.QuotedString("'")
NESTED = pp.nested_expr('(', ')', ignore_expr=pp.quoted_string | FLAVOR)
MODIFIER = pp.Regex(r'(?:kh|kl|dh|dl|k|d)\d*')

# One call argument: anything up to a top-level comma or closing parenthesis
ARGUMENT = pp.original_text_for(pp.OneOrMore(
    pp.quoted_string | FLAVOR | NESTED | pp.CharsNotIn('()[],"\'')
))
ARGUMENTS = pp.DelimitedList(pp.Opt(ARGUMENT, default=''))

IDENTIFIER = pp.Word(pp.alphas + '_', pp.alphanums + '_')


def _formula_grammar() -> pp.ParserElement:
    flavor = FLAVOR.copy().set_parse_action(_lexeme('flavor'))
    quoted = QUOTED.copy().set_parse_action(_lexeme('string'))
    group = pp.original_text_for(NESTED).add_parse_action(
        lambda tokens: Lexeme('group', tokens[0][1:-1])
    )
    dice = pp.Regex(
        r'(?P<count>\d*)[dD](?P<faces>\d+)(?P<modifiers>(?:(?:kh|kl|dh|dl|k|d)\d*)*)(?![A-Za-z0-9_])'
    ).set_parse_action(_dice_lexeme)
    number = pp.Regex(r'\d+(?:\.\d+)?|\.\d+').set_parse_action(_lexeme('number'))
    call = pp.original_text_for(
        IDENTIFIER('name') + pp.Suppress('(') + pp.Group(ARGUMENTS)('args') + pp.Suppress(')'),
        as_string=False,
    ).add_parse_action(_call_lexeme)
    name = IDENTIFIER.copy().set_parse_action(_lexeme('name'))
    operator = pp.one_of(OPERATORS).set_parse_action(_lexeme('operator'))

    lexeme = flavor | quoted | group | dice | number | call | name | operator
    return pp.ZeroOrMore(lexeme)


FORMULA = _formula_grammar()


def _syntax_error(formula: str, error: pp.ParseBaseException) -> FormulaError:
    rest = formula[error.loc:].lstrip()
    if rest.startswith('(') or formula.count('(') != formula.count(')'):
        return FormulaError(f"Unbalanced parentheses in formula {formula!r}")
    if not rest:
        return FormulaError(f"Unexpected end of formula {formula!r}")
    position = len(formula) - len(rest)
    return FormulaError(f"Unexpected {rest[:1]!r} at position {position} in formula {formula!r}")


def split_arguments(text: str) -> List[str]:
    """Split call arguments on top-level commas."""
    try:
        args = ARGUMENTS.parse_string(text, parse_all=True)
    except pp.ParseBaseException as e:
        raise _syntax_error(text, e) from e
    return list(_argument_list(args))


def parse_argument(text: str, allow_empty: bool = False) -> Optional[RollTerm]:
    """
    Parse one function argument into a single term.

    Multi-term arguments are wrapped in an implicit parenthetical group.

    Raises:
        FormulaError: If the argument is empty and empty arguments are not allowed
    """
    from .roll import Roll

    text = text.strip()
    if not text:
        if allow_empty:
            return None
        raise FormulaError("Empty function argument")

    terms = Roll.parse(text)
    if not terms:
        if allow_empty:
            return None
        raise FormulaError(f"Function argument {text!r} has no terms")
    if len(terms) == 1:
        return terms[0]
    return ParentheticalTerm.from_terms(terms, implicit=True)


# ========== Tokenizer ==========

def _is_value(term: Optional[RollTerm]) -> bool:
    return term is not None and not isinstance(term, OperatorTerm)


def _number(text: str) -> Any:
    try:
        return float(text) if '.' in text else int(text)
    except ValueError as e:
        raise FormulaError(f"Number {text[:20]}... is too long") from e


def _build_term(lexeme: Lexeme, previous: Optional[RollTerm], registry) -> RollTerm:
    kind = lexeme.kind

    if kind == 'flavor':
        return StringTerm(lexeme.text)
    if kind == 'string':
        return RealStringTerm(lexeme.text)
    if kind == 'group':
        return ParentheticalTerm.from_formula(lexeme.text)
    if kind == 'number':
        return NumericTerm(_number(lexeme.text))
    if kind == 'operator':
        return OperatorTerm(lexeme.text)

    if kind == 'dice':
        count, faces, modifiers = lexeme.parts
        if not count and _is_value(previous):
            # Count supplied by the preceding term, e.g. ceil(@level / 2)d6
            return StringTerm(lexeme.text)
        return Die(
            number=_number(count) if count else 1,
            faces=_number(faces),
            modifiers=[match[0] for match in MODIFIER.search_string(modifiers)],
        )

    if kind == 'call':
        name, args = lexeme.parts
        definition = registry.find(name)
        if definition is not None:
            return definition.construct(list(args))
        if name in MATH_FUNCTIONS:
            return MathTerm(name, [parse_argument(arg) for arg in args])
        return StringTerm(lexeme.text)

    if lexeme.text in ('true', 'false'):
        return BooleanTerm(lexeme.text == 'true')
    if lexeme.text == 'null':
        return NullTerm()
    if lexeme.text in MATH_CONSTANTS:
        return NumericTerm(MATH_CONSTANTS[lexeme.text])
    return StringTerm(lexeme.text)


def tokenize(formula: str, registry=None) -> List[RollTerm]:
    """
    Tokenize a formula into terms.

    Args:
        formula: Formula text with data references already substituted
        registry: Function term registry; defaults to the shared registry

    Returns:
        Flat list of terms, not yet simplified

    Raises:
        FormulaError: On unbalanced parentheses, stray commas or unknown characters
    """
    if registry is None:
        from .functions.registry import get_function_registry
        registry = get_function_registry()

    try:
        lexemes = FORMULA.parse_string(formula, parse_all=True)
    except pp.ParseBaseException as e:
        raise _syntax_error(formula, e) from e

    terms: List[RollTerm] = []
    for lexeme in lexemes:
        previous = terms[-1] if terms else None
        terms.append(_build_term(lexeme, previous, registry))
    return terms


def classify_string_term(text: str) -> Optional[RollTerm]:
    """
    Reclassify a string fragment into a single concrete term.

    Returns:
        The term (flavor attached) or None if the fragment does not form
        exactly one recognisable term
    """
    from .simplifier import merge_fragments

    try:
        terms = merge_fragments(tokenize(text))
    except FormulaError:
        return None

    if len(terms) == 1 and not isinstance(terms[0], StringTerm):
        return terms[0]
    return None


__all__ = [
    'Lexeme',
    'replace_formula_data',
    'resolve_data_path',
    'split_arguments',
    'parse_argument',
    'tokenize',
    'classify_string_term',
]
