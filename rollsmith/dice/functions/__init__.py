"""
Function terms: callable formula terms taking other terms as arguments.

Provides:
- if(condition, ifTrue?)
- ifelse(condition, ifTrue?, ifFalse?)
- lookup(search, value0, value1, ...)
- sizeReach(size?, reach?, stature?)
- sizeRoll(count, faces, delta?, initialSize?)
"""

from .base import FunctionTerm
from .if_term import IfTerm
from .ifelse_term import IfElseTerm
from .lookup_term import LookupTerm
from .size_terms import SizeReachTerm, SizeRollTerm
from .registry import (
    FunctionTermDefinition,
    FunctionTermRegistry,
    core_function_terms,
    get_function_registry,
    reset_function_registry,
)

__all__ = [
    'FunctionTerm',
    'IfTerm',
    'IfElseTerm',
    'LookupTerm',
    'SizeReachTerm',
    'SizeRollTerm',
    'FunctionTermDefinition',
    'FunctionTermRegistry',
    'core_function_terms',
    'get_function_registry',
    'reset_function_registry',
]
