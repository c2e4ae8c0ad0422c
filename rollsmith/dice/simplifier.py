"""
Post-parse term simplification.

The tokenizer leaves behind string fragments wherever a formula glues terms
together (``ceil(@hd / 5)d6``, ``1d6[fire]``). This pass merges them back
into well-formed terms and trims dangling operators so the result is always
safe to evaluate.
"""

import logging
from typing import List

from .expression import format_number
from .terms import OperatorTerm, RollTerm, StringTerm
from .tokenizer import FLAVOR_PATTERN, classify_string_term

logger = logging.getLogger(__name__)


def _fragment_text(term: RollTerm) -> str:
    """Text a term contributes when merged into a string fragment."""
    if term.is_deterministic:
        term.evaluate()
        return format_number(term.total)
    return term.formula


def _flavor_text(term: RollTerm):
    if isinstance(term, StringTerm):
        match = FLAVOR_PATTERN.fullmatch(term.term)
        if match:
            return match.group(1)
    return None


def merge_fragments(terms: List[RollTerm]) -> List[RollTerm]:
    """
    Merge string fragments with their neighbours.

    - ``[text]`` directly after a non-operator, non-fragment term becomes its flavor
    - A non-operator term after a fragment is appended to the fragment
    - A fragment directly after a non-operator term absorbs that term's value
    """
    merged: List[RollTerm] = []

    for term in terms:
        prior = merged[-1] if merged else None

        if prior is None or isinstance(prior, OperatorTerm):
            merged.append(term)
            continue

        flavor = _flavor_text(term)
        if flavor is not None and not isinstance(prior, StringTerm):
            prior.flavor = flavor
            continue

        if isinstance(prior, StringTerm) and not isinstance(term, OperatorTerm):
            merged[-1] = StringTerm(prior.term + _fragment_text(term), options=prior.options)
            continue

        if isinstance(term, StringTerm):
            merged[-1] = StringTerm(_fragment_text(prior) + term.term, options=term.options)
            continue

        merged.append(term)

    return merged


def _reclassify(term: RollTerm) -> RollTerm:
    if not isinstance(term, StringTerm):
        return term
    classified = classify_string_term(term.term)
    if classified is None:
        logger.debug(f"Leaving unresolved fragment {term.term!r}")
        return term
    if term.flavor and not classified.flavor:
        classified.flavor = term.flavor
    return classified


def simplify_terms(terms: List[RollTerm]) -> List[RollTerm]:
    """
    Simplify a flat term sequence.

    Merges fragments, reclassifies what is left, then drops leading
    operators other than unary minus and any trailing operators. Applying it
    to its own output changes nothing.
    """
    simplified = [_reclassify(term) for term in merge_fragments(terms)]

    while simplified and isinstance(simplified[0], OperatorTerm) and simplified[0].operator != '-':
        simplified.pop(0)
    while simplified and isinstance(simplified[-1], OperatorTerm):
        simplified.pop()

    return simplified


__all__ = ['merge_fragments', 'simplify_terms']
