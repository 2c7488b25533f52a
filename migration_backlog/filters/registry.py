"""
Plugin Registry
Named filters and comparators registered explicitly by the application
"""
import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    Registry of named filter predicates and index comparators

    Supports:
    - Registering a predicate or comparator under a name
    - Resolving a filter/comparator reference by name
    - Listing what is available
    """

    def __init__(self):
        self.filters: Dict[str, Callable] = {}
        self.comparators: Dict[str, Callable] = {}

    def register_filter(self, name: str, predicate: Callable) -> Callable:
        if not callable(predicate):
            raise TypeError(f"Filter '{name}' must be callable")
        if name in self.filters:
            logger.warning(f"Replacing registered filter '{name}'")
        self.filters[name] = predicate
        return predicate

    def register_comparator(self, name: str, comparator: Callable) -> Callable:
        if not callable(comparator):
            raise TypeError(f"Comparator '{name}' must be callable")
        if name in self.comparators:
            logger.warning(f"Replacing registered comparator '{name}'")
        self.comparators[name] = comparator
        return comparator

    def filter(self, name: str):
        """Decorator form of register_filter"""
        def decorator(predicate: Callable) -> Callable:
            return self.register_filter(name, predicate)
        return decorator

    def comparator(self, name: str):
        """Decorator form of register_comparator"""
        def decorator(comparator: Callable) -> Callable:
            return self.register_comparator(name, comparator)
        return decorator

    def get_filter(self, name: str) -> Optional[Callable]:
        return self.filters.get(name)

    def get_comparator(self, name: str) -> Optional[Callable]:
        return self.comparators.get(name)

    def list_available(self) -> Dict[str, List[str]]:
        return {
            "filters": sorted(self.filters),
            "comparators": sorted(self.comparators),
        }
