"""
ifelse(condition, ifTrue?, ifFalse?)
"""

from typing import Any, Optional

from .base import FunctionTerm
from ..terms import RollTerm, argument_formula


class IfElseTerm(FunctionTerm):
    """
    Ternary conditional term.

    Defaults: ``ifTrue`` 1, ``ifFalse`` 0. After evaluation only the taken
    branch is kept; the untaken one is discarded and serializes as null.
    Flavor set on the call is copied onto the taken branch.

    Examples:
        ifelse(true)              -> 1
        ifelse(3 > 6, 100, 5)     -> 5
        ifelse(@boo == 2, 10)     -> 0 (boo = 3)
    """

    function_name = 'ifelse'
    max_args = 3
    min_args = 1
    allow_empty_args = True

    def __init__(self, terms=None, options=None):
        super().__init__(terms, options)
        while len(self.terms) < 3:
            self.terms.append(None)
        self._state: Optional[bool] = None

    @property
    def condition(self) -> Optional[RollTerm]:
        return self.terms[0]

    @property
    def taken_branch(self) -> Optional[RollTerm]:
        if self._state is None:
            return None
        return self.terms[1] if self._state else self.terms[2]

    @property
    def total(self) -> Any:
        if not self._evaluated:
            return None
        branch = self.taken_branch
        if branch is not None:
            return branch.total
        return 1 if self._state else 0

    @property
    def expression(self) -> str:
        condition = argument_formula(self.condition)
        args = [
            condition,
            argument_formula(self.terms[1], '1'),
            argument_formula(self.terms[2], '0'),
        ]
        # Omit default values
        if args[2] == '0':
            args.pop()
            if args[1] == '1':
                args.pop()
        return f"ifelse({', '.join(args)})"

    @property
    def simplify(self) -> str:
        condition = self.condition
        if condition is None or not condition.is_deterministic:
            return self.formula
        condition.evaluate()
        branch = self.terms[1] if condition.total else self.terms[2]
        if branch is not None:
            return branch.formula
        return '1' if condition.total else '0'

    def _evaluate(self, minimize, maximize):
        yield from self._resolve_arguments(minimize, maximize, indices=[0])
        self._state = bool(self.condition.total) if self.condition is not None else False

        index = 1 if self._state else 2
        untaken = 2 if self._state else 1
        self.terms[untaken] = None

        yield from self._resolve_arguments(minimize, maximize, indices=[index])
        branch = self.terms[index]
        if branch is not None and self.flavor and not branch.flavor:
            branch.flavor = self.flavor

    def _serialize(self):
        data = super()._serialize()
        data['state'] = self._state
        return data

    @classmethod
    def _deserialize(cls, data):
        term = super()._deserialize(data)
        while len(term.terms) < 3:
            term.terms.append(None)
        term._state = data.get('state')
        return term
