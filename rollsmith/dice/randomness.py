"""
Randomness source for dice terms.

Every die result in the engine comes from a DiceRoller. Terms never call the
random module themselves; they yield DieRequest objects which the evaluation
driver hands to the active roller.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DieRequest:
    """A request for a single die result."""
    faces: int
    minimize: bool = False   # Force the lowest face (previews)
    maximize: bool = False   # Force the highest face (previews)


class DiceRoller:
    """
    Resolves die requests with a seeded random generator.

    Supports:
    - Seeded random for determinism (testing/replay)
    - Forced minimum/maximum results for previews
    - Blocking and suspending resolution
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize roller.

        Args:
            seed: Random seed for deterministic rolls (testing/replay)
        """
        self.rng = random.Random(seed)
        self.seed = seed

    def roll_die(self, faces: int) -> int:
        """Roll a single die."""
        return self.rng.randint(1, faces)

    def resolve(self, request: DieRequest) -> int:
        """Resolve a die request without suspending."""
        if request.minimize:
            return 1
        if request.maximize:
            return request.faces
        return self.roll_die(request.faces)

    async def resolve_async(self, request: DieRequest) -> int:
        """Resolve a die request, yielding control to the event loop first."""
        await asyncio.sleep(0)
        return self.resolve(request)

    def set_seed(self, seed: int):
        """Change random seed (for testing/replay)."""
        self.seed = seed
        self.rng = random.Random(seed)


_roller: Optional[DiceRoller] = None


def get_roller() -> DiceRoller:
    """Get the shared roller, seeded from configuration on first use."""
    global _roller
    if _roller is None:
        from rollsmith.core.config import get_config
        _roller = DiceRoller(seed=get_config().seed)
    return _roller


def set_roller(roller: Optional[DiceRoller]) -> None:
    """Replace the shared roller. Passing None resets it to the configured default."""
    global _roller
    _roller = roller


__all__ = ['DieRequest', 'DiceRoller', 'get_roller', 'set_roller']
