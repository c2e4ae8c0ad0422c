"""
Function term registry.

The tokenizer routes every ``identifier(`` it meets through this registry.
Definitions are queried in registration order; the first whose match
predicate accepts the identifier constructs the term. Other code can
register additional function terms at runtime.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .base import FunctionTerm
from .if_term import IfTerm
from .ifelse_term import IfElseTerm
from .lookup_term import LookupTerm
from .size_terms import SizeReachTerm, SizeRollTerm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionTermDefinition:
    """Descriptor for a callable formula term."""
    name: str
    match: Callable[[str], bool]
    construct: Callable[[Sequence[str]], FunctionTerm]
    description: str = ''

    @classmethod
    def for_class(cls, term_class, description: str = '') -> 'FunctionTermDefinition':
        """Build a definition from a FunctionTerm subclass."""
        return cls(
            name=term_class.function_name,
            match=term_class.match_term,
            construct=term_class.from_arguments,
            description=description or (term_class.__doc__ or '').strip().split('\n')[0],
        )

    def to_dict(self):
        return {'name': self.name, 'description': self.description}


def core_function_terms() -> List[FunctionTermDefinition]:
    """Return the built-in function terms, in matching order."""
    return [
        FunctionTermDefinition.for_class(IfTerm, 'if(condition, ifTrue?) conditional'),
        FunctionTermDefinition.for_class(IfElseTerm, 'ifelse(condition, ifTrue?, ifFalse?) conditional'),
        FunctionTermDefinition.for_class(LookupTerm, 'lookup(search, value0, value1, ...) table lookup'),
        FunctionTermDefinition.for_class(SizeReachTerm, 'sizeReach(size?, reach?, stature?) reach by size'),
        FunctionTermDefinition.for_class(SizeRollTerm, 'sizeRoll(count, faces, delta?, initialSize?) dice by size'),
    ]


class FunctionTermRegistry:
    """
    Ordered registry of function term definitions.

    Example:
        registry = FunctionTermRegistry()
        registry.register(FunctionTermDefinition.for_class(MyTerm))
        definition = registry.find('myterm')
    """

    def __init__(self, definitions: Optional[Sequence[FunctionTermDefinition]] = None):
        self._definitions: List[FunctionTermDefinition] = []
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: FunctionTermDefinition) -> None:
        """
        Append a definition.

        Raises:
            ValueError: If a definition with the same name is registered
        """
        if any(d.name == definition.name for d in self._definitions):
            raise ValueError(f"Function term '{definition.name}' is already registered")
        self._definitions.append(definition)
        logger.debug(f"Registered function term: {definition.name}")

    def unregister(self, name: str) -> bool:
        """Remove a definition by name. Returns False if it was not registered."""
        for index, definition in enumerate(self._definitions):
            if definition.name == name:
                del self._definitions[index]
                return True
        return False

    def find(self, identifier: str) -> Optional[FunctionTermDefinition]:
        """First definition, in registration order, that matches the identifier."""
        for definition in self._definitions:
            if definition.match(identifier):
                return definition
        return None

    def construct(self, identifier: str, args: Sequence[str]) -> Optional[FunctionTerm]:
        """Construct a term for the identifier, or None if nothing matches."""
        definition = self.find(identifier)
        if definition is None:
            return None
        return definition.construct(args)

    @property
    def names(self) -> List[str]:
        return [d.name for d in self._definitions]

    def get_all(self) -> List[FunctionTermDefinition]:
        return list(self._definitions)

    def __contains__(self, identifier: str) -> bool:
        return self.find(identifier) is not None

    def __len__(self) -> int:
        return len(self._definitions)


_registry: Optional[FunctionTermRegistry] = None


def get_function_registry() -> FunctionTermRegistry:
    """Get the shared registry, populated with the core function terms."""
    global _registry
    if _registry is None:
        _registry = FunctionTermRegistry(core_function_terms())
    return _registry


def reset_function_registry() -> None:
    """Restore the shared registry to the core function terms."""
    global _registry
    _registry = None


__all__ = [
    'FunctionTermDefinition',
    'FunctionTermRegistry',
    'core_function_terms',
    'get_function_registry',
    'reset_function_registry',
]
