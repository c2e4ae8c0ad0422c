"""
if(condition, ifTrue?)
"""

from typing import Any

from .base import FunctionTerm
from ..terms import argument_formula


class IfTerm(FunctionTerm):
    """
    Conditional term.

    Totals ``ifTrue`` (default 1) when the condition is truthy, else 0.

    Examples:
        if(true, 5)  -> 5
        if(3 > 2)    -> 1
        if(1 > 3)    -> 0
    """

    function_name = 'if'
    max_args = 2
    min_args = 1

    @property
    def condition(self):
        return self.terms[0] if self.terms else None

    @property
    def if_true(self):
        return self.terms[1] if len(self.terms) > 1 else None

    @property
    def total(self) -> Any:
        if not self._evaluated:
            return None
        if self.condition is None or not self.condition.total:
            return 0
        if self.if_true is None:
            return 1
        return self.if_true.total

    @property
    def expression(self) -> str:
        args = [argument_formula(t) for t in self.terms]
        if len(args) == 2 and args[1] == '1':
            args.pop()
        return f"if({', '.join(args)})"

    @property
    def simplify(self) -> str:
        condition = self.condition
        if condition is None or not condition.is_deterministic:
            return self.formula
        condition.evaluate()
        if not condition.total:
            return '0'
        return self.if_true.formula if self.if_true is not None else '1'

    def _evaluate(self, minimize, maximize):
        yield from self._resolve_arguments(minimize, maximize)
        if self.if_true is not None and self.flavor and not self.if_true.flavor:
            self.if_true.flavor = self.flavor
