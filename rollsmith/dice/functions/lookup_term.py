"""
lookup(search, value0, value1, ...)
"""

import math
from typing import Any, Dict, List, Optional

from .base import FunctionTerm
from ..terms import Die, RollTerm


class LookupTerm(FunctionTerm):
    """
    Table lookup term.

    The search total is a zero-based offset into the values. Offsets out of
    range (including negative ones) fall back to the first value. Only the
    search and the chosen value are evaluated and serialized.

    Examples:
        lookup(2, 0, 10, 20, 30)   -> 20
        lookup(500, -100, 10, 20)  -> -100
    """

    function_name = 'lookup'
    min_args = 3

    def __init__(self, terms=None, options=None):
        super().__init__(terms, options)
        self._offset: Optional[int] = None

    @property
    def search(self) -> Optional[RollTerm]:
        return self.terms[0]

    @property
    def values(self) -> List[Optional[RollTerm]]:
        return self.terms[1:]

    def _offset_for(self, search_total: Any) -> int:
        try:
            offset = int(search_total)
        except (TypeError, ValueError, OverflowError):
            return 0
        if isinstance(search_total, float) and not math.isfinite(search_total):
            return 0
        offset = max(0, offset)
        if offset >= len(self.values):
            offset = 0
        return offset

    @property
    def lookup_result(self) -> Optional[RollTerm]:
        """The chosen value term, once the search is known."""
        if self._offset is not None:
            return self.values[self._offset]
        if self.search is not None and self.search.evaluated:
            return self.values[self._offset_for(self.search.total)]
        return None

    @property
    def total(self) -> Any:
        if not self._evaluated:
            return None
        result = self.lookup_result
        return result.total if result is not None else None

    @property
    def is_deterministic(self) -> bool:
        if self.search is None or not self.search.is_deterministic:
            return False
        result = self.lookup_result
        if result is None:
            return all(t.is_deterministic for t in self.values if t is not None)
        return result.is_deterministic

    @property
    def dice(self) -> List[Die]:
        result = self.lookup_result
        if result is None:
            return []
        return result.dice

    @property
    def simplify(self) -> str:
        search = self.search
        if search is None or not search.is_deterministic:
            return self.formula
        search.evaluate()
        result = self.values[self._offset_for(search.total)]
        return result.formula if result is not None else '0'

    def _evaluate(self, minimize, maximize):
        yield from self._resolve_arguments(minimize, maximize, indices=[0])
        self._offset = self._offset_for(self.search.total)
        chosen = 1 + self._offset
        yield from self._resolve_arguments(minimize, maximize, indices=[chosen])

        # Untaken values are dropped
        self.terms = [
            term if index in (0, chosen) else None
            for index, term in enumerate(self.terms)
        ]

        result = self.terms[chosen]
        if self.flavor and not result.flavor:
            result.flavor = self.flavor

    def _serialize(self) -> Dict[str, Any]:
        data = super()._serialize()
        data['offset'] = self._offset
        return data

    @classmethod
    def _deserialize(cls, data):
        term = super()._deserialize(data)
        term._offset = data.get('offset')
        return term
