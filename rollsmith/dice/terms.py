"""
Roll terms.

A parsed formula is a flat sequence of terms: numbers, operators, dice,
parenthetical groups, math calls, function terms and the occasional string
fragment the tokenizer could not resolve. Every term exposes the same
surface (total, expression, formula, flavor, is_deterministic, dice) and
evaluates through one generator, ``_evaluate``, that yields die requests.
"""

import math
import re
from typing import Any, Dict, List, Optional, Type

from rollsmith.core.errors import ErrorCode, EvaluationError, FormulaError, SerializationError
from .evaluation import EvaluationMode, EvaluationSteps, run
from .expression import call_math_function, format_number, normalize_number
from .randomness import DieRequest


class RollTerm:
    """
    Base class for every term in a roll.

    Attributes:
        options: Free-form term options; ``flavor`` is the only one the engine reads
        is_intermediate: True for terms that must be reduced to a number before
            a function term can consume them
    """

    is_intermediate = False

    # Class name -> term class, used to restore serialized terms
    _registry: Dict[str, Type['RollTerm']] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        RollTerm._registry[cls.__name__] = cls

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self.options: Dict[str, Any] = dict(options or {})
        self._evaluated = False

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    @property
    def flavor(self) -> str:
        return self.options.get('flavor') or ''

    @flavor.setter
    def flavor(self, value: str):
        self.options['flavor'] = value

    @property
    def total(self) -> Any:
        """Numeric result, None until evaluated."""
        return None

    @property
    def expression(self) -> str:
        raise NotImplementedError

    @property
    def formula(self) -> str:
        """Expression plus the bracketed flavor suffix."""
        if self.flavor:
            return f"{self.expression}[{self.flavor}]"
        return self.expression

    @property
    def is_deterministic(self) -> bool:
        return True

    @property
    def dice(self) -> List['Die']:
        return []

    def evaluate(self, minimize: bool = False, maximize: bool = False) -> 'RollTerm':
        """Evaluate synchronously. Evaluating an evaluated term is a no-op."""
        run(self.evaluation_steps(minimize, maximize), EvaluationMode.SYNC)
        return self

    async def evaluate_async(self, minimize: bool = False, maximize: bool = False) -> 'RollTerm':
        """Evaluate, awaiting each die resolution."""
        await run(self.evaluation_steps(minimize, maximize), EvaluationMode.ASYNC)
        return self

    def evaluation_steps(self, minimize: bool = False, maximize: bool = False) -> EvaluationSteps:
        """Evaluation generator shared by both modes; skips evaluated terms."""
        if self._evaluated:
            return
        yield from self._evaluate(minimize, maximize)
        self._evaluated = True

    def _evaluate(self, minimize: bool, maximize: bool) -> EvaluationSteps:
        yield from ()

    # ========== Serialization ==========

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain data with a class discriminator."""
        data = {
            'class': type(self).__name__,
            'options': dict(self.options),
            'evaluated': self._evaluated,
        }
        data.update(self._serialize())
        return data

    def _serialize(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def _deserialize(cls, data: Dict[str, Any]) -> 'RollTerm':
        return cls(options=data.get('options'))

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> Optional['RollTerm']:
        """
        Restore a term from plain data.

        Raises:
            SerializationError: If the data is malformed or names an unknown class
        """
        if data is None:
            return None

        import jsonschema
        from .schemas import TERM_SCHEMA

        try:
            jsonschema.validate(data, TERM_SCHEMA)
        except jsonschema.ValidationError as e:
            raise SerializationError(f"Invalid term data: {e.message}") from e

        term_class = RollTerm._registry.get(data['class'])
        if term_class is None:
            raise SerializationError(f"Unknown term class: {data['class']}")

        term = term_class._deserialize(data)
        term.options = dict(data.get('options') or {})
        term._evaluated = data.get('evaluated', False)
        return term

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.formula!r})"


def argument_formula(term: Optional[RollTerm], default: str = '0') -> str:
    """Formula of a function argument; implicit groups render without parentheses."""
    if term is None:
        return default
    if isinstance(term, ParentheticalTerm) and term.implicit:
        return term.roll.formula
    return term.formula


class NumericTerm(RollTerm):
    """
    A plain number.

    Numbers standing in for a reduced group keep the dice that group rolled,
    so tooltips still show them.
    """

    def __init__(self, number: Any = 0, options: Optional[Dict[str, Any]] = None,
                 rolled: Optional[List['Die']] = None):
        super().__init__(options)
        self.number = normalize_number(number) if isinstance(number, (int, float)) else number
        self.rolled: List['Die'] = list(rolled or [])

    @classmethod
    def resolved(cls, number: Any, options: Optional[Dict[str, Any]] = None,
                 rolled: Optional[List['Die']] = None) -> 'NumericTerm':
        """Create an already-evaluated numeric term."""
        term = cls(number, options, rolled)
        term._evaluated = True
        return term

    @property
    def total(self) -> Any:
        return self.number if self._evaluated else None

    @property
    def expression(self) -> str:
        return format_number(self.number)

    @property
    def dice(self) -> List['Die']:
        return list(self.rolled)

    def _serialize(self) -> Dict[str, Any]:
        data = {'number': self.number}
        if self.rolled:
            data['rolled'] = [die.to_dict() for die in self.rolled]
        return data

    @classmethod
    def _deserialize(cls, data):
        rolled = [RollTerm.from_dict(die) for die in data.get('rolled', [])]
        return cls(data.get('number', 0), rolled=rolled)


class OperatorTerm(RollTerm):
    """An arithmetic, comparison, logical or conditional operator."""

    def __init__(self, operator: str = '+', options: Optional[Dict[str, Any]] = None):
        super().__init__(options)
        self.operator = operator

    @property
    def expression(self) -> str:
        return self.operator

    @property
    def formula(self) -> str:
        return self.operator

    def _serialize(self) -> Dict[str, Any]:
        return {'operator': self.operator}

    @classmethod
    def _deserialize(cls, data):
        return cls(data.get('operator', '+'))


class Die(RollTerm):
    """
    A pool of identical dice, e.g. ``3d20kh``.

    Modifiers:
        kh[n] / k[n]: keep highest n (default 1)
        kl[n]: keep lowest n
        dh[n]: drop highest n
        dl[n] / d[n]: drop lowest n
    """

    MODIFIER_PATTERN = re.compile(r'(kh|kl|dh|dl|k|d)(\d*)')
    MAX_DICE = 1000

    def __init__(
        self,
        number: int = 1,
        faces: int = 6,
        modifiers: Optional[List[str]] = None,
        results: Optional[List[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None
    ):
        super().__init__(options)
        for value in (number, faces):
            if isinstance(value, float) and not math.isfinite(value):
                raise FormulaError(f"Dice need a finite count and faces, got {value}")
        if int(number) != number or number < 0:
            raise FormulaError(f"Die count must be a non-negative integer, got {number}")
        if number > self.MAX_DICE:
            raise FormulaError(f"Cannot roll more than {self.MAX_DICE} dice at once, got {number}")
        if int(faces) != faces or faces < 1:
            raise FormulaError(f"Die faces must be a positive integer, got {faces}")
        self.number = int(number)
        self.faces = int(faces)
        self.modifiers = list(modifiers or [])
        for modifier in self.modifiers:
            if not self.MODIFIER_PATTERN.fullmatch(modifier):
                raise FormulaError(f"Unsupported dice modifier {modifier!r}")
        self.results: List[Dict[str, Any]] = list(results or [])

    @property
    def total(self) -> Optional[int]:
        if not self._evaluated:
            return None
        return sum(r['result'] for r in self.results if r['active'])

    @property
    def values(self) -> List[int]:
        """Active results in roll order."""
        return [r['result'] for r in self.results if r['active']]

    @property
    def expression(self) -> str:
        return f"{self.number}d{self.faces}{''.join(self.modifiers)}"

    @property
    def is_deterministic(self) -> bool:
        return False

    @property
    def dice(self) -> List['Die']:
        return [self]

    def _evaluate(self, minimize, maximize):
        self.results = []
        for _ in range(self.number):
            value = yield DieRequest(self.faces, minimize=minimize, maximize=maximize)
            self.results.append({'result': value, 'active': True})
        for modifier in self.modifiers:
            self._apply_modifier(modifier)

    def _apply_modifier(self, modifier: str):
        kind, amount = self.MODIFIER_PATTERN.fullmatch(modifier).groups()
        count = int(amount) if amount else 1

        active = sorted((r for r in self.results if r['active']), key=lambda r: r['result'])
        size = len(active)

        if kind in ('kh', 'k'):
            discard = active[:max(0, size - count)]
        elif kind == 'kl':
            discard = active[count:]
        elif kind == 'dh':
            discard = active[max(0, size - count):] if count else []
        else:
            discard = active[:count]

        for result in discard:
            result['active'] = False
            result['discarded'] = True

    def _serialize(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'faces': self.faces,
            'modifiers': list(self.modifiers),
            'results': [dict(r) for r in self.results],
        }

    @classmethod
    def _deserialize(cls, data):
        return cls(
            number=data.get('number', 1),
            faces=data.get('faces', 6),
            modifiers=data.get('modifiers'),
            results=data.get('results'),
        )


class ParentheticalTerm(RollTerm):
    """
    A group holding its own sub-roll, e.g. ``(1d6 + 2)``.

    Implicit groups wrap multi-term function arguments and render without
    parentheses inside the call.
    """

    is_intermediate = True

    def __init__(self, roll=None, options: Optional[Dict[str, Any]] = None, implicit: bool = False):
        super().__init__(options)
        if roll is None:
            from .roll import Roll
            roll = Roll.from_terms([])
        self.roll = roll
        self.implicit = implicit

    @classmethod
    def from_terms(cls, terms: List[RollTerm], implicit: bool = False) -> 'ParentheticalTerm':
        from .roll import Roll
        return cls(Roll.from_terms(terms), implicit=implicit)

    @classmethod
    def from_formula(cls, formula: str, implicit: bool = False) -> 'ParentheticalTerm':
        from .roll import Roll
        return cls.from_terms(Roll.parse(formula), implicit=implicit)

    @property
    def total(self) -> Any:
        return self.roll.total if self._evaluated else None

    @property
    def expression(self) -> str:
        return f"({self.roll.formula})"

    @property
    def is_deterministic(self) -> bool:
        return self.roll.is_deterministic

    @property
    def dice(self) -> List[Die]:
        return self.roll.dice

    def _evaluate(self, minimize, maximize):
        if not self.roll.evaluated:
            yield from self.roll.evaluation_steps(minimize, maximize)

    def _serialize(self) -> Dict[str, Any]:
        return {'roll': self.roll.to_dict(), 'implicit': self.implicit}

    @classmethod
    def _deserialize(cls, data):
        from .roll import Roll
        return cls(Roll.from_dict(data['roll']), implicit=data.get('implicit', False))


class StringTerm(RollTerm):
    """
    An unresolved text fragment.

    The simplifier merges or reclassifies these; any that survive make the
    roll fail at evaluation time.
    """

    def __init__(self, term: str = '', options: Optional[Dict[str, Any]] = None):
        super().__init__(options)
        self.term = term

    @property
    def expression(self) -> str:
        return self.term

    @property
    def is_deterministic(self) -> bool:
        return False

    def _evaluate(self, minimize, maximize):
        raise EvaluationError(
            f"Unresolved StringTerm {self.term!r} requested for evaluation",
            ErrorCode.UNRESOLVED_TERM
        )
        yield from ()

    def _serialize(self) -> Dict[str, Any]:
        return {'term': self.term}

    @classmethod
    def _deserialize(cls, data):
        return cls(data.get('term', ''))


class RealStringTerm(RollTerm):
    """A quoted string literal, e.g. the size letter in ``sizeRoll(1, 6, 1, "S")``."""

    def __init__(self, term: str = '', options: Optional[Dict[str, Any]] = None):
        super().__init__(options)
        self.term = term

    @property
    def total(self) -> Optional[str]:
        return self.term if self._evaluated else None

    @property
    def expression(self) -> str:
        return f'"{self.term}"'

    def _serialize(self) -> Dict[str, Any]:
        return {'term': self.term}

    @classmethod
    def _deserialize(cls, data):
        return cls(data.get('term', ''))


class BooleanTerm(RollTerm):
    """``true`` or ``false``."""

    def __init__(self, value: bool = False, options: Optional[Dict[str, Any]] = None):
        super().__init__(options)
        self.value = bool(value)

    @property
    def total(self) -> Optional[bool]:
        return self.value if self._evaluated else None

    @property
    def expression(self) -> str:
        return 'true' if self.value else 'false'

    def _serialize(self) -> Dict[str, Any]:
        return {'value': self.value}

    @classmethod
    def _deserialize(cls, data):
        return cls(data.get('value', False))


class NullTerm(RollTerm):
    """``null``, which totals to zero."""

    @property
    def total(self) -> Optional[int]:
        return 0 if self._evaluated else None

    @property
    def expression(self) -> str:
        return 'null'


class MathTerm(RollTerm):
    """A call into the math table, e.g. ``max(1d6, 4)`` or ``floor(@level / 2)``."""

    def __init__(
        self,
        fn: str = 'abs',
        terms: Optional[List[RollTerm]] = None,
        options: Optional[Dict[str, Any]] = None,
        result: Any = None
    ):
        super().__init__(options)
        self.fn = fn
        self.terms: List[RollTerm] = list(terms or [])
        self._result = result

    @property
    def total(self) -> Any:
        return self._result if self._evaluated else None

    @property
    def expression(self) -> str:
        return f"{self.fn}({', '.join(argument_formula(t) for t in self.terms)})"

    @property
    def is_deterministic(self) -> bool:
        return all(t.is_deterministic for t in self.terms)

    @property
    def dice(self) -> List[Die]:
        dice = []
        for term in self.terms:
            dice.extend(term.dice)
        return dice

    def _evaluate(self, minimize, maximize):
        for term in self.terms:
            yield from term.evaluation_steps(minimize, maximize)
        result = call_math_function(self.fn, [t.total for t in self.terms])
        self._result = normalize_number(result) if isinstance(result, (int, float)) else result

    def _serialize(self) -> Dict[str, Any]:
        return {
            'fn': self.fn,
            'terms': [t.to_dict() for t in self.terms],
            'result': self._result,
        }

    @classmethod
    def _deserialize(cls, data):
        return cls(
            fn=data.get('fn', 'abs'),
            terms=[RollTerm.from_dict(t) for t in data.get('terms', [])],
            result=data.get('result'),
        )


__all__ = [
    'RollTerm',
    'argument_formula',
    'NumericTerm',
    'OperatorTerm',
    'Die',
    'ParentheticalTerm',
    'StringTerm',
    'RealStringTerm',
    'BooleanTerm',
    'NullTerm',
    'MathTerm',
]
