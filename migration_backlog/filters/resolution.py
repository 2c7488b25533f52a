"""
Filter and Comparator Resolution
Turns user supplied patterns, callables, module files and registered names
into predicates and comparators
"""
import importlib.util
import inspect
import logging
import re
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from ..core.errors import ConfigurationError
from .registry import PluginRegistry

logger = logging.getLogger(__name__)

MODULE_EXTENSION = ".py"
FILTER_EXPORT = "filter"
COMPARATOR_EXPORT = "comparator"

Predicate = Callable[[str], bool]
Comparator = Callable[[str, str], int]


def declared_arity(func: Callable) -> Optional[int]:
    """
    Number of positional parameters without a default

    Returns None when the signature cannot be inspected or when the callable
    takes ``*args``.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None

    arity = 0
    for parameter in signature.parameters.values():
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind == inspect.Parameter.KEYWORD_ONLY and parameter.default is inspect.Parameter.empty:
            return None
        if (parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
                and parameter.default is inspect.Parameter.empty):
            arity += 1
    return arity


def pattern_predicate(pattern: "re.Pattern") -> Predicate:
    def matches(name: str) -> bool:
        return pattern.search(name) is not None
    matches.pattern = pattern
    return matches


def load_module_export(path_like: str, export_name: str) -> Any:
    """Load a Python file and return one of its module level attributes"""
    module_path = Path(path_like)
    if not module_path.is_file():
        raise ConfigurationError(f"Module file not found: {path_like}")

    module_name = f"user_defined_{module_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot load module: {path_like}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ConfigurationError(f"Failed to load module {path_like}: {e}") from e

    logger.info(f"Loaded user defined module: {module_path}")
    return getattr(module, export_name, None)


def _compile_inline_pattern(source: str) -> "re.Pattern":
    try:
        return re.compile(source)
    except re.error as e:
        raise ConfigurationError(f"Invalid filter pattern '{source}': {e}") from e


def _checked_predicate(candidate: Any, origin: str) -> Predicate:
    if not callable(candidate):
        raise ConfigurationError(f"{origin} does not export a predicate")
    if declared_arity(candidate) != 1:
        raise ConfigurationError("predicate must take exactly one argument")
    return candidate


def _checked_comparator(candidate: Any, origin: str) -> Comparator:
    if not callable(candidate):
        raise ConfigurationError(f"{origin} does not export a comparator")
    if declared_arity(candidate) != 2:
        raise ConfigurationError("comparator must be a function that takes 2 arguments")
    return candidate


def resolve_filter(value: Any, registry: Optional[PluginRegistry] = None) -> Predicate:
    """
    Resolve a filter specification into a one argument predicate over names

    Resolution order:
    1. compiled regex -> ``name -> pattern.search(name)``
    2. string ending in ``.py`` -> the module's ``filter`` export
    3. string naming a registered filter -> the registered predicate
    4. any other string -> compiled as an inline regex
    5. callable taking exactly one argument -> used as is
    """
    if isinstance(value, re.Pattern):
        return pattern_predicate(value)

    if isinstance(value, str):
        if value.endswith(MODULE_EXTENSION):
            export = load_module_export(value, FILTER_EXPORT)
            if export is None:
                raise ConfigurationError(f"module {value} does not export a predicate")
            return _checked_predicate(export, f"module {value}")

        if registry is not None and registry.get_filter(value) is not None:
            return _checked_predicate(registry.get_filter(value), f"registered filter '{value}'")

        return pattern_predicate(_compile_inline_pattern(value))

    if callable(value):
        return _checked_predicate(value, "filter")

    raise ConfigurationError("filter must be a pattern, predicate, or module reference")


def resolve_comparator(value: Any, registry: Optional[PluginRegistry] = None) -> Comparator:
    """Resolve a comparator specification into a two argument ordering function"""
    if isinstance(value, str):
        if value.endswith(MODULE_EXTENSION):
            export = load_module_export(value, COMPARATOR_EXPORT)
            if export is None:
                raise ConfigurationError(f"module {value} does not export a comparator")
            return _checked_comparator(export, f"module {value}")

        if registry is not None and registry.get_comparator(value) is not None:
            return _checked_comparator(registry.get_comparator(value), f"registered comparator '{value}'")

        raise ConfigurationError(f"Unknown comparator '{value}'")

    if callable(value):
        return _checked_comparator(value, "comparator")

    raise ConfigurationError("comparator must be a function that takes 2 arguments")
