"""
Damage rolls.

A DamageRoll is a Roll carrying a damage type and a critical classification.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from rollsmith.core.errors import RollOptionsError
from .roll import Roll
from .schemas import DAMAGE_OPTIONS_SCHEMA
from .terms import RollTerm


class DamageRollType(str, Enum):
    """Damage instances with regard to their critical status."""
    NORMAL = "normal"
    CRITICAL = "crit"
    NON_CRITICAL = "nonCrit"


class DamageRoll(Roll):
    """
    A damage formula with a damage type.

    Example:
        roll = DamageRoll("2d6 + 4", options={
            "damage_type": {"values": ["fire"], "custom": ""},
            "type": "crit",
        }).evaluate()
        roll.is_critical  # True
    """

    TYPES = DamageRollType

    def __init__(
        self,
        formula: str = '0',
        data: Optional[Mapping[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        *,
        terms: Optional[List[RollTerm]] = None
    ):
        super().__init__(formula, data, options, terms=terms)
        if self.options.get('damage_type') is None:
            self.options['damage_type'] = {'values': ['untyped'], 'custom': ''}
        if self.options.get('type') is None:
            self.options['type'] = DamageRollType.NORMAL.value
        self._validate_options(self.options)

    @staticmethod
    def _validate_options(options: Dict[str, Any]):
        import jsonschema

        try:
            jsonschema.validate(options, DAMAGE_OPTIONS_SCHEMA)
        except jsonschema.ValidationError as e:
            raise RollOptionsError(f"Invalid damage roll options: {e.message}") from e

    @property
    def damage_type(self) -> Dict[str, Any]:
        return self.options['damage_type']

    @property
    def damage_types(self) -> List[str]:
        """Damage type identifiers plus the custom type, if any."""
        types = list(self.damage_type['values'])
        custom = self.damage_type.get('custom')
        if custom:
            types.extend(part.strip() for part in custom.split(';') if part.strip())
        return types

    @property
    def type(self) -> DamageRollType:
        return DamageRollType(self.options['type'])

    @property
    def is_critical(self) -> bool:
        return self.type is DamageRollType.CRITICAL


__all__ = ['DamageRollType', 'DamageRoll']
