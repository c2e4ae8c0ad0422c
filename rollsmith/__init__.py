"""
rollsmith - dice formula evaluation for tabletop roleplaying.

Parses roll formulas (``1d20 + @abilities.str.mod[Strength]``), substitutes
roll data, evaluates dice synchronously or asynchronously and provides d20
check rolls, damage rolls, size-based dice stepping and formula
simplification.
"""

__version__ = "0.1.0"
