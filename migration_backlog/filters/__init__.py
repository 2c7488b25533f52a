"""
Filter Pipeline
"""
from .registry import PluginRegistry
from .resolution import (
    declared_arity,
    load_module_export,
    resolve_comparator,
    resolve_filter
)
