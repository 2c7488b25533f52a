"""
Configuration
"""
from .manager import (
    BacklogSettings,
    ConfigManager,
    CoordinatorConfig,
    Environment
)
