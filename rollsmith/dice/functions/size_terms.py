"""
sizeRoll(count, faces, delta?, initialSize?) and sizeReach(size?, reach?, stature?)

Both build an internal sub-roll from the size tables in sizing.py; the
sub-roll provides their total and dice.
"""

from typing import Any, Dict, List, Optional

from .base import FunctionTerm
from ..sizing import SizeDie, size_reach, size_roll
from ..terms import Die, NumericTerm, RollTerm


def _size_die_term(size_die: SizeDie, flavor: str = '') -> RollTerm:
    options = {'flavor': flavor} if flavor else None
    if size_die.faces == 1:
        return NumericTerm(size_die.count, options)
    return Die(size_die.count, size_die.faces, options=options)


class _SubRollTerm(FunctionTerm):
    """Function term whose result is an internal sub-roll."""

    def __init__(self, terms=None, options=None, roll=None):
        super().__init__(terms, options)
        self.roll = roll

    @property
    def total(self) -> Any:
        if not self._evaluated or self.roll is None:
            return None
        return self.roll.total

    @property
    def dice(self) -> List[Die]:
        return self.roll.dice if self.roll is not None else []

    def _build_terms(self) -> List[RollTerm]:
        raise NotImplementedError

    def _evaluate(self, minimize, maximize):
        from ..roll import Roll

        yield from self._resolve_arguments(minimize, maximize)
        if self.roll is None:
            self.roll = Roll.from_terms(self._build_terms())
        if self.flavor:
            self.roll.options.setdefault('flavor', self.flavor)
        if not self.roll.evaluated:
            yield from self.roll.evaluation_steps(minimize, maximize)

    def _serialize(self) -> Dict[str, Any]:
        data = super()._serialize()
        data['roll'] = self.roll.to_dict() if self.roll is not None else None
        return data

    @classmethod
    def _deserialize(cls, data):
        from ..roll import Roll

        term = super()._deserialize(data)
        term.roll = Roll.from_dict(data['roll']) if data.get('roll') else None
        return term


class SizeRollTerm(_SubRollTerm):
    """
    Damage dice scaled by size.

    Always non-deterministic, since the scaled result is live dice.

    Examples:
        sizeRoll(1, 6, 1)        -> 1d8
        sizeRoll(3, 6, -1, "M")  -> 2d8
    """

    function_name = 'sizeRoll'
    max_args = 4
    min_args = 2

    @property
    def is_deterministic(self) -> bool:
        return False

    @property
    def simplify(self) -> str:
        if self.roll is not None:
            return self.roll.formula
        arguments = [t for t in self.terms if t is not None]
        if not all(t.is_deterministic for t in arguments):
            return self.formula
        for term in arguments:
            term.evaluate()
        return size_roll(*(t.total for t in arguments)).formula

    def _build_terms(self) -> List[RollTerm]:
        size_die = size_roll(*(t.total for t in self.terms))
        return [_size_die_term(size_die, self.flavor)]


class SizeReachTerm(_SubRollTerm):
    """
    Natural reach distance for a size.

    Examples:
        sizeReach()            -> 5
        sizeReach("L", 1)      -> 20
        sizeReach(6, 0, "long") -> 10
    """

    function_name = 'sizeReach'
    max_args = 3

    @property
    def is_deterministic(self) -> bool:
        if not all(t.is_deterministic for t in self.terms if t is not None):
            return False
        return self.roll is None or not self.roll.dice

    @property
    def simplify(self) -> str:
        if self.roll is not None:
            return self.roll.formula
        if not self.is_deterministic:
            return self.formula
        for term in self.terms:
            term.evaluate()
        return str(size_reach(*(t.total for t in self.terms)))

    def _build_terms(self) -> List[RollTerm]:
        options = {'flavor': self.flavor} if self.flavor else None
        return [NumericTerm(size_reach(*(t.total for t in self.terms)), options)]
