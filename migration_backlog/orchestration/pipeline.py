"""
Initialization Pipeline
Ordered, fallible stages with per-stage timing
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from collections.abc import Sized
from typing import Any, Awaitable, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class InitializationStage(Enum):
    """Stages of backlog initialization, in execution order"""
    CLEAR_BACKLOG = "clear_backlog"
    PREPARE_JOBS = "prepare_jobs"
    RECONCILE_COMPLETED = "reconcile_completed"
    ENRICH = "enrich"
    ENQUEUE = "enqueue"


@dataclass
class StageMetrics:
    """Timing and outcome of one stage"""
    stage: InitializationStage
    start_time: float
    end_time: float = 0
    items: int = 0
    success: bool = False
    error_message: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


StageStep = Callable[[Any], Awaitable[Any]]


class StagePipeline:
    """
    Runs stages in sequence, feeding each stage the previous stage's result

    The first stage that raises aborts the run; the exception propagates
    unchanged and later stages never start.
    """

    def __init__(self, stages: List[Tuple[InitializationStage, StageStep]]):
        self.stages = stages
        self.metrics: List[StageMetrics] = []

    async def run(self, value: Any = None) -> Any:
        self.metrics = []

        for stage, step in self.stages:
            metrics = StageMetrics(stage=stage, start_time=time.time())
            self.metrics.append(metrics)

            try:
                value = await step(value)
            except Exception as e:
                metrics.end_time = time.time()
                metrics.error_message = str(e)
                logger.error(f"❌ {stage.value}: Failed - {e}")
                raise

            metrics.end_time = time.time()
            metrics.items = len(value) if isinstance(value, Sized) else 0
            metrics.success = True
            logger.info(f"✅ {stage.value}: {metrics.items:,} jobs in {metrics.duration:.2f}s")

        return value
