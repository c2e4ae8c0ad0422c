"""
Size-based die and reach scaling.

Damage dice step up and down the published size progression chart when a
creature or weapon changes size category. The chart is authoritative data;
the irregular cases (d4 folding, d10 conversion, counts missing from the
chart) follow the published FAQ rather than a derived formula.

Size categories are indexed 0-8, Fine to Colossal, with Medium at 4.
"""

import logging
import math
from typing import Any, NamedTuple, Optional, Tuple

from rollsmith.core.errors import EvaluationError

logger = logging.getLogger(__name__)

SIZE_DIE_CHART: Tuple[str, ...] = (
    '1', '1d2', '1d3', '1d4', '1d6', '1d8', '1d10',
    '2d6', '2d8', '3d6', '3d8', '4d6', '4d8',
    '6d6', '6d8', '8d6', '8d8', '12d6', '12d8', '16d6', '16d8',
)

# Key -> letter, in size order
SIZE_CHART = {
    'fine': 'F',
    'dim': 'D',
    'tiny': 'T',
    'sm': 'S',
    'med': 'M',
    'lg': 'L',
    'huge': 'H',
    'grg': 'G',
    'col': 'C',
}

MEDIUM = 4
SMALL = 3

# Natural (melee, reach) distances in feet per size
REACH_CHART = {
    'fine': (0, 0),
    'dim': (0, 0),
    'tiny': (0, 5),
    'sm': (5, 10),
    'med': (5, 10),
    'lg': (10, 20),
    'huge': (15, 30),
    'grg': (20, 40),
    'col': (30, 60),
}


class SizeDie(NamedTuple):
    """A die expression produced by size scaling."""
    count: int
    faces: int

    @property
    def formula(self) -> str:
        if self.faces == 1:
            return str(self.count)
        return f"{self.count}d{self.faces}"

    @classmethod
    def parse(cls, formula: str) -> 'SizeDie':
        if 'd' not in formula:
            return cls(int(formula), 1)
        count, faces = formula.split('d')
        return cls(int(count), int(faces))


_CHART = tuple(SizeDie.parse(entry) for entry in SIZE_DIE_CHART)
_D6_INDEX = SIZE_DIE_CHART.index('1d6')
_D8_INDEX = SIZE_DIE_CHART.index('1d8')


def size_index(size: Any) -> int:
    """
    Resolve a size to its 0-8 index.

    Accepts an index, a letter (``"M"``) or a chart key (``"med"``).

    Raises:
        EvaluationError: If the size is not recognised
    """
    if isinstance(size, bool):
        raise EvaluationError(f"Invalid size: {size!r}")
    if isinstance(size, (int, float)):
        if not math.isfinite(size) or int(size) != size or not 0 <= size < len(SIZE_CHART):
            raise EvaluationError(f"Invalid size index: {size!r}")
        return int(size)
    if isinstance(size, str):
        letters = list(SIZE_CHART.values())
        if size.upper() in letters:
            return letters.index(size.upper())
        keys = list(SIZE_CHART)
        if size.lower() in keys:
            return keys.index(size.lower())
    raise EvaluationError(f"Invalid size: {size!r}")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise EvaluationError(f"sizeRoll {name} must be a finite number, got {value!r}")
    return int(value)


def size_roll(count: Any, faces: Any, delta: Any = 0, initial_size: Any = None) -> SizeDie:
    """
    Scale a die expression by a number of size categories.

    Args:
        count: Original number of dice
        faces: Original faces per die
        delta: Size categories to move; positive is larger
        initial_size: Optional starting size (index, letter or key). When
            given, the first categories crossed at or below Medium (going
            down) or Small (going up) move a single chart step.

    Returns:
        The scaled SizeDie. ``SizeDie(1, 1)`` stands for the number 1.

    Raises:
        EvaluationError: If an input is not a finite number or the size is unknown

    Examples:
        size_roll(1, 6, 1) -> 1d8
        size_roll(10, 6, -1) -> 6d8
        size_roll(3, 6, -1, 'M') -> 2d8
    """
    count = _as_int(count, 'count')
    faces = _as_int(faces, 'faces')
    # Walks longer than the chart end at one of its ends
    delta = max(-len(_CHART), min(len(_CHART), _as_int(delta, 'delta')))
    current_size = size_index(initial_size) if initial_size is not None else None

    if delta == 0:
        return SizeDie(count, faces)

    if count > 1:
        if faces == 10:
            # d10 converts to d8 and consumes one category
            if delta < 0:
                delta += 1
                if current_size is not None:
                    current_size -= 1
            else:
                count *= 2
                delta -= 1
                if current_size is not None:
                    current_size += 1
            faces = 8
        elif faces == 4:
            # 2d4=1d8, 3d4=2d6, 4d4=2d8, 5d4=3d6, 6d4=3d8
            faces = 8 if count % 2 == 0 else 6
            count = (count + 1) // 2

    # Each d12 counts as 2d6
    if faces == 12:
        count *= 2
        faces = 6

    die = SizeDie(count, faces)

    if die not in _CHART and faces in (6, 8):
        if faces == 6:
            # Next lowest d6 count, used as d8
            candidates = [entry for entry in _CHART if entry.faces == 6 and entry.count < count]
            shifted = candidates[-1] if candidates else None
        else:
            # Next highest d8 count, used as d6
            candidates = [entry for entry in _CHART if entry.faces == 8 and entry.count > count]
            shifted = candidates[0] if candidates else None
        if shifted is not None:
            die = SizeDie(shifted.count, 8 if shifted.faces == 6 else 6)

    if die not in _CHART:
        logger.warning(f"No size progression for {die.formula}, using it unchanged")
        return die

    index = _CHART.index(die)
    while delta < 0:
        if (current_size is not None and current_size <= MEDIUM) or index <= _D8_INDEX:
            index -= 1
        else:
            index -= 2
        delta += 1
        if current_size is not None:
            current_size -= 1

    while delta > 0:
        if (current_size is not None and current_size <= SMALL) or index <= _D6_INDEX:
            index += 1
        else:
            index += 2
        delta -= 1
        if current_size is not None:
            current_size += 1

    index = max(0, min(len(_CHART) - 1, index))
    return _CHART[index]


def size_reach(size: Any = 'M', reach: Any = False, stature: Any = 'tall') -> int:
    """
    Natural reach distance for a size and stature.

    Args:
        size: Size index, letter or key
        reach: Truthy for reach weapon distance, falsy for melee distance
        stature: ``"tall"``/0 or ``"long"``/1; long creatures larger than
            Medium reach as one size smaller

    Returns:
        Distance in feet
    """
    index = size_index(size)

    if isinstance(stature, str):
        stature = stature.lower()
        if stature not in ('tall', 'long'):
            raise EvaluationError(f"Invalid stature: {stature!r}")
        long = stature == 'long'
    else:
        long = bool(stature)

    if long and index > MEDIUM:
        index -= 1

    melee, reach_distance = REACH_CHART[list(SIZE_CHART)[index]]
    return reach_distance if reach else melee


__all__ = [
    'SIZE_DIE_CHART',
    'SIZE_CHART',
    'REACH_CHART',
    'SizeDie',
    'size_index',
    'size_roll',
    'size_reach',
]
