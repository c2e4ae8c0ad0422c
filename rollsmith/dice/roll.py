"""
The Roll container.

A Roll owns a simplified term sequence parsed from a formula, an options
dict and a read-only data context used to resolve ``@path`` references.
Its total is only available once it has been evaluated, and an evaluated
roll cannot be evaluated again.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Type

from rollsmith.core.errors import EvaluationError, FormulaError, RollStateError, SerializationError
from .evaluation import EvaluationMode, EvaluationSteps, run
from .expression import Token, TokenKind, evaluate_tokens, normalize_number
from .simplifier import simplify_terms
from .terms import Die, NumericTerm, OperatorTerm, RollTerm
from .tokenizer import replace_formula_data, tokenize


class Roll:
    """
    An evaluable dice formula.

    Example:
        roll = Roll("1d20 + @mod", {"mod": 3}).evaluate()
        print(roll.formula)  # 1d20 + 3
        print(roll.total)    # 4..23

    Attributes:
        terms: Simplified term sequence
        data: Data context; never modified
        options: Roll options (flavor and subclass settings)
        warning: True if a data reference resolved to nothing and was replaced with 0
        err: Error attached by the safe evaluation wrapper, if any
    """

    # Class name -> roll class, used to restore serialized rolls
    _registry: Dict[str, Type['Roll']] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        Roll._registry[cls.__name__] = cls

    def __init__(
        self,
        formula: str = '0',
        data: Optional[Mapping[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        *,
        terms: Optional[List[RollTerm]] = None
    ):
        self.data = data if data is not None else {}
        self.options: Dict[str, Any] = dict(options or {})
        self.warning = False
        self.err = None
        self._total: Any = None
        self._evaluated = False

        if terms is None:
            if not isinstance(formula, str):
                raise FormulaError(f"Formula must be a string, got {type(formula).__name__}")
            substituted, self.warning = replace_formula_data(formula, self.data)
            terms = self.parse(substituted)
        self.terms: List[RollTerm] = list(terms)

    # ========== Construction ==========

    @classmethod
    def parse(cls, formula: str) -> List[RollTerm]:
        """Tokenize and simplify a formula into terms."""
        return simplify_terms(tokenize(formula))

    @classmethod
    def from_terms(cls, terms: List[RollTerm], options: Optional[Dict[str, Any]] = None) -> 'Roll':
        """
        Build a roll from existing terms.

        If every term is already evaluated the roll is marked evaluated too.
        """
        roll = cls(terms=terms, options=options)
        if terms and all(t.evaluated or isinstance(t, OperatorTerm) for t in terms):
            roll._total = roll._compute_total()
            roll._evaluated = True
        return roll

    @staticmethod
    def get_formula(terms: List[RollTerm]) -> str:
        """Render terms back into a reparsable formula."""
        parts = []
        for index, term in enumerate(terms):
            if isinstance(term, OperatorTerm):
                prior = terms[index - 1] if index else None
                if prior is None or isinstance(prior, OperatorTerm):
                    parts.append(term.operator)
                else:
                    parts.append(f" {term.operator} ")
            else:
                parts.append(term.formula)
        return re.sub(r'\s+', ' ', ''.join(parts)).strip()

    # ========== Properties ==========

    @property
    def formula(self) -> str:
        return self.get_formula(self.terms)

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    @property
    def total(self) -> Any:
        """Numeric total, None until evaluated."""
        return self._total if self._evaluated else None

    @property
    def flavor(self) -> str:
        return self.options.get('flavor') or ''

    @property
    def dice(self) -> List[Die]:
        dice = []
        for term in self.terms:
            dice.extend(term.dice)
        return dice

    @property
    def is_deterministic(self) -> bool:
        return all(t.is_deterministic for t in self.terms if not isinstance(t, OperatorTerm))

    # ========== Evaluation ==========

    def evaluate(self, minimize: bool = False, maximize: bool = False) -> 'Roll':
        """
        Evaluate every term, resolving dice immediately.

        Raises:
            RollStateError: If the roll was already evaluated
            EvaluationError: If a term cannot be evaluated
        """
        self._start(EvaluationMode.SYNC, minimize, maximize)
        self._after_evaluate()
        return self

    async def evaluate_async(self, minimize: bool = False, maximize: bool = False) -> 'Roll':
        """Evaluate every term, awaiting each die resolution."""
        await self._start(EvaluationMode.ASYNC, minimize, maximize)
        self._after_evaluate()
        return self

    def _start(self, mode: EvaluationMode, minimize: bool, maximize: bool):
        """Check state and run the hooks, then drive evaluation in the given mode."""
        self._check_not_evaluated()
        self._before_evaluate()
        return run(self.evaluation_steps(minimize, maximize), mode)

    def evaluation_steps(self, minimize: bool = False, maximize: bool = False) -> EvaluationSteps:
        """Evaluation generator: terms left to right, then the total."""
        for term in self.terms:
            if not term.evaluated:
                yield from term.evaluation_steps(minimize, maximize)
        self._total = self._compute_total()
        self._evaluated = True

    def _check_not_evaluated(self):
        if self._evaluated:
            raise RollStateError(
                f"The {type(self).__name__} has already been evaluated and is now immutable"
            )

    def _before_evaluate(self):
        pass

    def _after_evaluate(self):
        pass

    def _compute_total(self) -> Any:
        if not self.terms:
            return 0

        tokens = []
        for term in self.terms:
            if isinstance(term, OperatorTerm):
                tokens.append(Token(TokenKind.OPERATOR, term.operator))
            else:
                tokens.append(Token(TokenKind.NUMBER, term.total))

        value = evaluate_tokens(tokens)
        if isinstance(value, bool):
            value = int(value)
        if value is None:
            value = 0
        if not isinstance(value, (int, float)):
            raise EvaluationError(f"Formula {self.formula!r} does not produce a numeric total")
        return normalize_number(value)

    # ========== Safe evaluation ==========

    @classmethod
    def safe_roll(cls, formula: str, data: Optional[Mapping[str, Any]] = None,
                  context: Optional[str] = None, **kwargs) -> 'Roll':
        """Construct and evaluate without ever raising. See rollsmith.dice.safe."""
        from .safe import safe_roll
        return safe_roll(formula, data, context, roll_class=cls, **kwargs)

    @classmethod
    async def safe_roll_async(cls, formula: str, data: Optional[Mapping[str, Any]] = None,
                              context: Optional[str] = None, **kwargs) -> 'Roll':
        """Asynchronous counterpart of safe_roll."""
        from .safe import safe_roll_async
        return await safe_roll_async(formula, data, context, roll_class=cls, **kwargs)

    # ========== Presentation ==========

    def get_tooltip_data(self) -> Dict[str, Any]:
        """
        Data for rendering a roll breakdown.

        Returns:
            Dict with formula, total, flavor, dice parts and numeric parts.
            Numeric parts following a ``-`` operator are negated.
        """
        parts = []
        for die in self.dice:
            parts.append({
                'formula': die.expression,
                'flavor': die.flavor,
                'total': die.total,
                'rolls': [
                    {'result': r['result'], 'active': r['active']}
                    for r in die.results
                ],
            })

        numeric_parts = []
        negate = False
        for term in self.terms:
            if isinstance(term, OperatorTerm):
                negate = term.operator == '-'
                continue
            if isinstance(term, NumericTerm) and term.total is not None:
                numeric_parts.append({
                    'flavor': term.flavor,
                    'total': -term.total if negate else term.total,
                })
            negate = False

        return {
            'formula': self.formula,
            'total': self.total,
            'flavor': self.flavor,
            'parts': parts,
            'numeric_parts': numeric_parts,
        }

    # ========== Serialization ==========

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain data with a class discriminator."""
        return {
            'class': type(self).__name__,
            'formula': self.formula,
            'terms': [t.to_dict() for t in self.terms],
            'total': self.total,
            'evaluated': self._evaluated,
            'options': dict(self.options),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Roll':
        """
        Restore a roll from plain data.

        Restored rolls keep their evaluated state and cannot be rolled again.

        Raises:
            SerializationError: If the data is malformed or names an unknown class
        """
        import jsonschema
        from .schemas import ROLL_SCHEMA

        try:
            jsonschema.validate(data, ROLL_SCHEMA)
        except jsonschema.ValidationError as e:
            raise SerializationError(f"Invalid roll data: {e.message}") from e

        roll_class = Roll._registry.get(data['class'])
        if roll_class is None:
            raise SerializationError(f"Unknown roll class: {data['class']}")

        terms = [RollTerm.from_dict(t) for t in data['terms']]
        return roll_class._restore(data, terms)

    @classmethod
    def _restore(cls, data: Dict[str, Any], terms: List[RollTerm]) -> 'Roll':
        roll = cls(terms=terms, options=data.get('options'))
        roll._total = data.get('total')
        roll._evaluated = data.get('evaluated', False)
        return roll

    @staticmethod
    def from_json(text: str) -> 'Roll':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid roll JSON: {e}") from e
        return Roll.from_dict(data)

    def __repr__(self) -> str:
        if self._evaluated:
            return f"{type(self).__name__}({self.formula!r}, total={self.total})"
        return f"{type(self).__name__}({self.formula!r})"


Roll._registry[Roll.__name__] = Roll


__all__ = ['Roll']
