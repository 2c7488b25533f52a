"""
Orchestration
"""
from .manager import Manager, create_manager
from .pipeline import InitializationStage, StageMetrics, StagePipeline
