"""
Dice formula engine.

Example:
    from rollsmith.dice import Roll, CheckRoll, simplify_formula

    Roll("2d6 + @mod", {"mod": 3}).evaluate().total
    CheckRoll("1d20 + 5", options={"static_roll": 10}).evaluate().total  # 15
    simplify_formula("sizeRoll(2, 6, 1) + 5 + 2")                        # "3d6 + 7"
"""

from .randomness import DiceRoller, DieRequest, get_roller, set_roller
from .evaluation import EvaluationMode, run, run_async, run_sync
from .terms import (
    RollTerm,
    NumericTerm,
    OperatorTerm,
    Die,
    ParentheticalTerm,
    StringTerm,
    RealStringTerm,
    BooleanTerm,
    NullTerm,
    MathTerm,
)
from .sizing import SizeDie, size_index, size_reach, size_roll
from .tokenizer import replace_formula_data, tokenize
from .simplifier import simplify_terms
from .functions import (
    FunctionTerm,
    IfTerm,
    IfElseTerm,
    LookupTerm,
    SizeReachTerm,
    SizeRollTerm,
    FunctionTermDefinition,
    FunctionTermRegistry,
    get_function_registry,
    reset_function_registry,
)
from .roll import Roll
from .check_roll import CheckRoll, CheckRollPrompt, CheckRollState, StaticRoll, check_roll, check_roll_async
from .damage_roll import DamageRoll, DamageRollType
from .safe import safe_roll, safe_roll_async, safe_total
from .formulas import compress, simplify_formula, unflair

__all__ = [
    'DiceRoller',
    'DieRequest',
    'get_roller',
    'set_roller',
    'EvaluationMode',
    'run',
    'run_async',
    'run_sync',
    'RollTerm',
    'NumericTerm',
    'OperatorTerm',
    'Die',
    'ParentheticalTerm',
    'StringTerm',
    'RealStringTerm',
    'BooleanTerm',
    'NullTerm',
    'MathTerm',
    'SizeDie',
    'size_index',
    'size_reach',
    'size_roll',
    'replace_formula_data',
    'tokenize',
    'simplify_terms',
    'FunctionTerm',
    'IfTerm',
    'IfElseTerm',
    'LookupTerm',
    'SizeReachTerm',
    'SizeRollTerm',
    'FunctionTermDefinition',
    'FunctionTermRegistry',
    'get_function_registry',
    'reset_function_registry',
    'Roll',
    'CheckRoll',
    'CheckRollPrompt',
    'CheckRollState',
    'StaticRoll',
    'check_roll',
    'check_roll_async',
    'DamageRoll',
    'DamageRollType',
    'safe_roll',
    'safe_roll_async',
    'safe_total',
    'compress',
    'simplify_formula',
    'unflair',
]
