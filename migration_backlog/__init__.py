"""
Migration Backlog
Job preparation and a shared, resumable backlog for bulk migrations between document stores
"""

__version__ = "1.0.0"

# Core components
from .core.errors import (
    BacklogError,
    ConfigurationError,
    SourceQueryError,
    StoreUnavailableError
)
from .core.job import Job
from .core.source import (
    BaseSourceClient,
    IndexDescriptor,
    MongoSourceClient,
    SourceSettings,
    create_source_client
)
from .core.store import (
    BACKLOG_HSET_KEY,
    BACKLOG_QUEUE_KEY,
    COMPLETED_KEY,
    BaseQueueStore,
    RedisQueueStore,
    RedisSettings,
    create_queue_store
)

# Configuration management
from .config.manager import (
    BacklogSettings,
    ConfigManager,
    CoordinatorConfig,
    Environment
)

# Filters
from .filters.registry import PluginRegistry
from .filters.resolution import resolve_comparator, resolve_filter

# Orchestration
from .orchestration.manager import Manager, create_manager
from .orchestration.pipeline import InitializationStage, StageMetrics, StagePipeline

__all__ = [
    # Core
    "BacklogError",
    "ConfigurationError",
    "SourceQueryError",
    "StoreUnavailableError",
    "Job",
    "BaseSourceClient",
    "IndexDescriptor",
    "MongoSourceClient",
    "SourceSettings",
    "create_source_client",
    "BACKLOG_HSET_KEY",
    "BACKLOG_QUEUE_KEY",
    "COMPLETED_KEY",
    "BaseQueueStore",
    "RedisQueueStore",
    "RedisSettings",
    "create_queue_store",

    # Configuration
    "BacklogSettings",
    "ConfigManager",
    "CoordinatorConfig",
    "Environment",

    # Filters
    "PluginRegistry",
    "resolve_comparator",
    "resolve_filter",

    # Orchestration
    "Manager",
    "create_manager",
    "InitializationStage",
    "StageMetrics",
    "StagePipeline"
]
