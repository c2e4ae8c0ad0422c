"""
Evaluation drivers.

Terms and rolls describe their evaluation once, as a generator that yields a
DieRequest whenever it needs randomness and receives the die result back.
The same generator is driven either synchronously or asynchronously; the mode
only changes how each request is resolved.
"""

from enum import Enum
from typing import Any, Generator, Optional

from .randomness import DiceRoller, DieRequest, get_roller

# Generator protocol shared by every term: yields requests, receives results
EvaluationSteps = Generator[DieRequest, int, Any]


class EvaluationMode(Enum):
    """How die requests are resolved."""
    SYNC = "sync"
    ASYNC = "async"


def run_sync(steps: EvaluationSteps, roller: Optional[DiceRoller] = None) -> Any:
    """Drive evaluation steps to completion, resolving every die immediately."""
    roller = roller or get_roller()
    try:
        request = next(steps)
        while True:
            request = steps.send(roller.resolve(request))
    except StopIteration as stop:
        return stop.value


async def run_async(steps: EvaluationSteps, roller: Optional[DiceRoller] = None) -> Any:
    """Drive evaluation steps to completion, awaiting every die resolution."""
    roller = roller or get_roller()
    try:
        request = next(steps)
        while True:
            result = await roller.resolve_async(request)
            request = steps.send(result)
    except StopIteration as stop:
        return stop.value


def run(steps: EvaluationSteps, mode: EvaluationMode = EvaluationMode.SYNC,
        roller: Optional[DiceRoller] = None) -> Any:
    """
    Drive evaluation steps in the requested mode.

    Returns the final value for SYNC and an awaitable for ASYNC.
    """
    if mode is EvaluationMode.ASYNC:
        return run_async(steps, roller)
    return run_sync(steps, roller)


__all__ = ['EvaluationMode', 'EvaluationSteps', 'run', 'run_sync', 'run_async']
