"""
Checked rolls: attacks, skill checks and saving throws.

A CheckRoll is a Roll whose first term is the check die (normally 1d20). It
adds bonus injection, a static result override ("take 10/20"), critical,
fumble, natural 20/1 and misfire detection, and a chat projection.

Lifecycle:
    CONSTRUCTED -> BONUS_APPLIED -> EVALUATED -> STATIC_OVERRIDE_APPLIED

No state can be entered twice. A prompt may change the bonus, the check
die or the static roll while the roll is CONSTRUCTED; a cancelled prompt
means no roll is produced at all.
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from rollsmith.core.config import get_config
from rollsmith.core.errors import FormulaError, RollOptionsError, RollStateError
from .roll import Roll
from .schemas import CHECK_OPTIONS_SCHEMA
from .terms import Die, NumericTerm, OperatorTerm, RollTerm
from .tokenizer import replace_formula_data

logger = logging.getLogger(__name__)


class StaticRoll(IntEnum):
    """Standard static results."""
    TEN = 10
    TWENTY = 20


class CheckRollState(Enum):
    CONSTRUCTED = "constructed"
    BONUS_APPLIED = "bonus_applied"
    EVALUATED = "evaluated"
    STATIC_OVERRIDE_APPLIED = "static_override_applied"


@dataclass
class CheckRollPrompt:
    """
    Data a check prompt (dialog, chat command, API call) hands back.

    Attributes:
        bonus: Extra formula fragment, replaces the roll's bonus when set
        d20: Replacement check die (``2d20kh``) or a static number (``15``)
        static_roll: Take 10/20 choice; ignored when d20 is a number
        cancelled: The prompt was dismissed, so nothing is rolled
    """
    bonus: str = ''
    d20: str = ''
    static_roll: Optional[int] = None
    cancelled: bool = False


class CheckRoll(Roll):
    """
    A d20 check.

    Example:
        roll = CheckRoll("1d20 + 5", options={"bonus": "2[Morale]"}).evaluate()
        roll.formula   # "1d20 + 5 + 2[Morale]"
        roll.is_crit   # True on a natural 20
    """

    STATIC_ROLL = StaticRoll

    def __init__(
        self,
        formula: str = '1d20',
        data: Optional[Mapping[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        *,
        terms: Optional[List[RollTerm]] = None
    ):
        merged = self.default_options()
        merged.update(options or {})
        self._validate_options(merged)

        super().__init__(formula, data, merged, terms=terms)
        self.state = CheckRollState.CONSTRUCTED
        self._ensure_check_die()

    @staticmethod
    def default_options() -> Dict[str, Any]:
        config = get_config()
        return {
            'critical': config.critical,
            'fumble': config.fumble,
            'misfire': config.misfire,
            'flavor': '',
            'static_roll': None,
            'bonus': '',
        }

    @staticmethod
    def _validate_options(options: Dict[str, Any]):
        import jsonschema

        try:
            jsonschema.validate(options, CHECK_OPTIONS_SCHEMA)
        except jsonschema.ValidationError as e:
            raise RollOptionsError(f"Invalid check roll options: {e.message}") from e

    def _ensure_check_die(self):
        first = self.terms[0] if self.terms else None
        if isinstance(first, Die):
            return
        # A leading number is the static roll; the check die is synthesized
        if isinstance(first, NumericTerm) and self.options['static_roll'] is None:
            self.options['static_roll'] = first.number
            self.terms[0] = Die(1, 20)
            return
        raise FormulaError(f"Invalid check roll formula provided: {self.formula!r}")

    # ========== Properties ==========

    @property
    def check_die(self) -> Optional[Die]:
        first = self.terms[0] if self.terms else None
        return first if isinstance(first, Die) else None

    @property
    def static_roll(self) -> Optional[float]:
        return self.options.get('static_roll')

    @property
    def bonus_terms(self) -> List[RollTerm]:
        """Terms the bonus will add, including the joining operator."""
        bonus = self.options.get('bonus')
        if not bonus:
            return []
        substituted, warning = replace_formula_data(str(bonus), self.data)
        self.warning = self.warning or warning
        terms = self.parse(substituted)
        if terms and not isinstance(terms[0], OperatorTerm):
            terms.insert(0, OperatorTerm('+'))
        return terms

    @property
    def formula(self) -> str:
        """Includes the pending bonus while the roll is unevaluated."""
        if self.state is CheckRollState.CONSTRUCTED and self.options.get('bonus'):
            return self.get_formula(self.terms + self.bonus_terms)
        return self.get_formula(self.terms)

    @property
    def natural(self) -> Optional[int]:
        """The check die total, None until evaluated."""
        if not self._evaluated or self.check_die is None:
            return None
        return self.check_die.total

    @property
    def is_crit(self) -> Optional[bool]:
        if self.natural is None:
            return None
        return self.natural >= self.options['critical']

    @property
    def is_fumble(self) -> Optional[bool]:
        if self.natural is None:
            return None
        return self.natural <= self.options['fumble']

    @property
    def is_nat20(self) -> Optional[bool]:
        if self.natural is None:
            return None
        return self.natural == 20

    @property
    def is_nat1(self) -> Optional[bool]:
        if self.natural is None:
            return None
        return self.natural == 1

    @property
    def is_misfire(self) -> Optional[bool]:
        if self.natural is None:
            return None
        return self.natural <= self.options['misfire']

    # ========== Prompt ==========

    def apply_prompt(self, prompt: CheckRollPrompt) -> Optional['CheckRoll']:
        """
        Apply a prompt response.

        Returns:
            This roll, or None if the prompt was cancelled

        Raises:
            RollStateError: If the roll is no longer CONSTRUCTED
        """
        if prompt.cancelled:
            logger.debug("Check roll prompt cancelled, nothing will be rolled")
            return None
        if self.state is not CheckRollState.CONSTRUCTED:
            raise RollStateError(f"Cannot apply a prompt to a roll in state {self.state.value}")

        if prompt.bonus:
            self.options['bonus'] = prompt.bonus

        if prompt.d20:
            substituted, _ = replace_formula_data(prompt.d20, self.data)
            base_terms = self.parse(substituted)
            first = base_terms[0] if base_terms else None
            if isinstance(first, NumericTerm):
                # A typed number overrides any take 10/20 choice
                self.options['static_roll'] = first.number
            elif isinstance(first, Die):
                self.terms = base_terms + self.terms[1:]
                if prompt.static_roll is not None:
                    self.options['static_roll'] = prompt.static_roll
            else:
                raise FormulaError(f"Invalid check die provided: {prompt.d20!r}")
        elif prompt.static_roll is not None:
            self.options['static_roll'] = prompt.static_roll

        return self

    # ========== Evaluation ==========

    def _before_evaluate(self):
        if self.state is not CheckRollState.CONSTRUCTED:
            raise RollStateError(f"Cannot evaluate a check roll in state {self.state.value}")
        self._apply_bonus()

    def _after_evaluate(self):
        self.state = CheckRollState.EVALUATED
        if self.static_roll is not None and self.static_roll >= 0:
            self._apply_static_roll()

    def _apply_bonus(self):
        if self.state is not CheckRollState.CONSTRUCTED:
            raise RollStateError("Bonus has already been applied")
        self.terms = self.terms + self.bonus_terms
        self.state = CheckRollState.BONUS_APPLIED

    def _apply_static_roll(self):
        """Force the check die's active result, shifting the total in place."""
        if self.state is not CheckRollState.EVALUATED:
            raise RollStateError("Roll must be evaluated before applying static roll")

        die = self.check_die
        static = self.static_roll
        diff = static - die.total

        active = next((r for r in die.results if r['active']), die.results[0] if die.results else None)
        if active is not None:
            active['result'] = static
        self._total = self._total + diff

        self.options['flavor'] = f"{self.options.get('flavor') or ''} (Take {static:g})".strip()
        self.state = CheckRollState.STATIC_OVERRIDE_APPLIED

    # ========== Presentation ==========

    def to_chat_data(self) -> Dict[str, Any]:
        """Data a chat card needs to render this check."""
        return {
            'formula': self.formula,
            'total': self.total,
            'flavor': self.flavor,
            'is_crit': self.is_crit,
            'is_fumble': self.is_fumble,
            'is_nat20': self.is_nat20,
            'is_nat1': self.is_nat1,
            'is_misfire': self.is_misfire,
            'static_roll': self.static_roll,
            'tooltip': self.get_tooltip_data(),
        }

    # ========== Serialization ==========

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['state'] = self.state.value
        return data

    @classmethod
    def _restore(cls, data, terms):
        roll = super()._restore(data, terms)
        roll.state = CheckRollState(data.get('state', CheckRollState.EVALUATED.value))
        return roll


def _run_prompt(roll: CheckRoll, prompt: Optional[Callable[[CheckRoll], Optional[CheckRollPrompt]]]):
    if prompt is None:
        return roll
    response = prompt(roll)
    if response is None:
        return roll
    return roll.apply_prompt(response)


def check_roll(
    dice: str = '1d20',
    parts: Sequence[str] = (),
    data: Optional[Mapping[str, Any]] = None,
    options: Optional[Dict[str, Any]] = None,
    prompt: Optional[Callable[[CheckRoll], Optional[CheckRollPrompt]]] = None,
    minimize: bool = False,
    maximize: bool = False
) -> Optional[CheckRoll]:
    """
    Build and evaluate a check roll.

    Args:
        dice: Check die formula
        parts: Additional formula parts, joined with ``+``
        data: Roll data
        options: Check roll options (bonus, static_roll, flavor, thresholds)
        prompt: Optional callback returning a CheckRollPrompt; returning None
            keeps the roll as built

    Returns:
        The evaluated roll, or None if the prompt was cancelled

    Example:
        roll = check_roll(dice="2d20kh", parts=["@bab[BAB]"], data={"bab": 6},
                          options={"bonus": "2[Good Behavior]"})
    """
    formula = ' + '.join([dice, *parts])
    roll = _run_prompt(CheckRoll(formula, data, options), prompt)
    if roll is None:
        return None
    return roll.evaluate(minimize=minimize, maximize=maximize)


async def check_roll_async(
    dice: str = '1d20',
    parts: Sequence[str] = (),
    data: Optional[Mapping[str, Any]] = None,
    options: Optional[Dict[str, Any]] = None,
    prompt: Optional[Callable[[CheckRoll], Optional[CheckRollPrompt]]] = None,
    minimize: bool = False,
    maximize: bool = False
) -> Optional[CheckRoll]:
    """Asynchronous counterpart of check_roll."""
    formula = ' + '.join([dice, *parts])
    roll = _run_prompt(CheckRoll(formula, data, options), prompt)
    if roll is None:
        return None
    return await roll.evaluate_async(minimize=minimize, maximize=maximize)


__all__ = [
    'StaticRoll',
    'CheckRollState',
    'CheckRollPrompt',
    'CheckRoll',
    'check_roll',
    'check_roll_async',
]
