"""
Base class for callable function terms.

Function terms look like calls in a formula (``if(...)``, ``lookup(...)``)
but take other terms as arguments. Arguments are resolved left to right
before the function computes its own total; parenthetical arguments are
reduced to plain numbers first.
"""

from typing import Any, Dict, List, Optional, Sequence

from rollsmith.core.errors import ArityError
from ..evaluation import EvaluationSteps
from ..terms import Die, NumericTerm, RollTerm, argument_formula
from ..tokenizer import parse_argument


class FunctionTerm(RollTerm):
    """
    A callable term taking argument terms.

    Subclasses set:
        function_name: Identifier matched in formulas
        max_args: Extra arguments beyond this are dropped (None for unbounded)
        min_args: Fewer arguments raise ArityError
        allow_empty_args: Whether ``f(a, , b)`` style gaps are accepted
    """

    function_name = ''
    max_args: Optional[int] = None
    min_args = 0
    allow_empty_args = False

    def __init__(self, terms: Optional[Sequence[Optional[RollTerm]]] = None,
                 options: Optional[Dict[str, Any]] = None):
        super().__init__(options)
        terms = list(terms or [])
        if self.max_args is not None and len(terms) > self.max_args:
            terms = terms[:self.max_args]
        if len(terms) < self.min_args:
            raise ArityError(
                f"{self.function_name}() requires at least {self.min_args} arguments, "
                f"got {len(terms)}"
            )
        self.terms: List[Optional[RollTerm]] = terms

    @classmethod
    def match_term(cls, identifier: str) -> bool:
        """Whether a call identifier refers to this function."""
        return identifier == cls.function_name

    @classmethod
    def from_arguments(cls, args: Sequence[str]) -> 'FunctionTerm':
        """Build the term from raw argument strings."""
        if cls.max_args is not None:
            args = list(args)[:cls.max_args]
        return cls([parse_argument(arg, allow_empty=cls.allow_empty_args) for arg in args])

    @property
    def expression(self) -> str:
        return f"{self.function_name}({', '.join(argument_formula(t) for t in self.terms)})"

    @property
    def is_deterministic(self) -> bool:
        return all(t.is_deterministic for t in self.terms if t is not None)

    @property
    def dice(self) -> List[Die]:
        dice = []
        for term in self.terms:
            if term is not None:
                dice.extend(term.dice)
        return dice

    @property
    def simplify(self) -> str:
        """Simplest formula known without rolling; the full formula by default."""
        return self.formula

    def _resolve_arguments(self, minimize: bool, maximize: bool,
                           indices: Optional[Sequence[int]] = None) -> EvaluationSteps:
        """
        Evaluate arguments left to right.

        Only the listed indices (all when None) are touched. Intermediate
        arguments are reduced to numeric terms carrying their options and
        the dice they rolled.
        """
        if indices is None:
            indices = range(len(self.terms))
        for index in indices:
            term = self.terms[index]
            if term is None:
                continue
            if term.is_intermediate and not term.evaluated:
                yield from term.evaluation_steps(minimize, maximize)
                self.terms[index] = NumericTerm.resolved(term.total, term.options, term.dice)
            else:
                yield from term.evaluation_steps(minimize, maximize)

    def _serialize(self) -> Dict[str, Any]:
        return {'terms': [t.to_dict() if t is not None else None for t in self.terms]}

    @classmethod
    def _deserialize(cls, data):
        term = cls.__new__(cls)
        RollTerm.__init__(term, data.get('options'))
        term.terms = [RollTerm.from_dict(t) for t in data.get('terms', [])]
        return term


__all__ = ['FunctionTerm']
