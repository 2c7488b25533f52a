"""
Backlog Manager
Prepares migration jobs and manages the shared backlog and completed ledger
"""
import functools
import logging
from typing import Any, Callable, Dict, List, Optional

from ..config.manager import CoordinatorConfig
from ..core.job import Job
from ..core.source import BaseSourceClient, IndexDescriptor, IndexNames, create_source_client
from ..core.store import (
    BACKLOG_HSET_KEY,
    BACKLOG_QUEUE_KEY,
    COMPLETED_KEY,
    BaseQueueStore,
    create_queue_store
)
from ..filters.registry import PluginRegistry
from ..filters.resolution import Comparator, Predicate, resolve_comparator, resolve_filter
from .pipeline import InitializationStage, StageMetrics, StagePipeline

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Job, int], Any]


class Manager:
    """
    Prepares and manages migration jobs

    One Manager owns its source client, queue store, filters, comparator and
    running document total. Workers share the backlog through the store only:
    - fetch_job claims a job exactly once (atomic list pop)
    - queue_job never queues the same id twice (atomic hash set)
    - complete_job records finished work in the completed ledger
    """

    def __init__(self,
                 source: BaseSourceClient,
                 store: BaseQueueStore,
                 registry: Optional[PluginRegistry] = None):
        self.source = source
        self.store = store
        self.registry = registry or PluginRegistry()

        self.index_filter: Optional[Predicate] = None
        self.type_filter: Optional[Predicate] = None
        self.index_comparator: Optional[Comparator] = None

        self.total_count = 0
        self.last_run_metrics: List[StageMetrics] = []

    # ------------------------------------------------------------------
    # Filters and comparator
    # ------------------------------------------------------------------
    def set_index_filter(self, index_filter: Any):
        """Set a regex, predicate or module reference selecting the indices to transfer"""
        self.index_filter = resolve_filter(index_filter, self.registry)

    def set_type_filter(self, type_filter: Any):
        """Set a regex, predicate or module reference selecting the types of every index"""
        self.type_filter = resolve_filter(type_filter, self.registry)

    def set_index_comparator(self, comparator: Any):
        """Set the comparator ordering the indices for processing"""
        self.index_comparator = resolve_comparator(comparator, self.registry)

    def reset_filters_and_comparators(self):
        self.index_filter = None
        self.type_filter = None
        self.index_comparator = None

    # ------------------------------------------------------------------
    # Job preparation
    # ------------------------------------------------------------------
    async def get_indices(self, index_names: IndexNames) -> List[IndexDescriptor]:
        """Indices matching the multi-index definition, with their types"""
        return await self.source.get_indices(index_names)

    def filter_indices_and_types(self, all_indices: List[IndexDescriptor]) -> List[IndexDescriptor]:
        """Filter indices, then the types of each surviving index"""
        if self.index_filter is None:
            selected_indices = list(all_indices)
        else:
            selected_indices = [index for index in all_indices if self.index_filter(index.name)]

        result = []
        for index in selected_indices:
            if self.type_filter is None:
                types = list(index.subcollections)
            else:
                types = [name for name in index.subcollections if self.type_filter(name)]

            # Indices with no types left are dropped
            if types:
                result.append(IndexDescriptor(name=index.name, subcollections=types))
        return result

    def sort_indices(self, indices: List[IndexDescriptor]) -> List[IndexDescriptor]:
        if self.index_comparator is None:
            return list(indices)

        comparator = self.index_comparator
        return sorted(indices, key=functools.cmp_to_key(lambda a, b: comparator(a.name, b.name)))

    @staticmethod
    def build_jobs(indices: List[IndexDescriptor]) -> List[Job]:
        """One job per (index, type) pair, in index then type order"""
        return [Job(index.name, subcollection) for index in indices for subcollection in index.subcollections]

    async def prepare_new_jobs(self, index_names: IndexNames) -> List[Job]:
        """Based on the multi-index names provided, prepare the new jobs"""
        logger.info("preparing new jobs")

        indices = await self.get_indices(index_names)
        filtered = self.filter_indices_and_types(indices)
        ordered = self.sort_indices(filtered)
        jobs = self.build_jobs(ordered)

        logger.info(f"Prepared {len(jobs)} jobs from {len(ordered)} of {len(indices)} indices")
        return jobs

    async def add_count_to_jobs(self, jobs: List[Job],
                                progress_callback: Optional[ProgressCallback] = None) -> List[Job]:
        """Count the documents of every job, one query at a time"""
        logger.info("counting docs in existing indices")

        self.total_count = 0
        for job in jobs:
            job.count = await self.source.count(job.collection, job.subcollection)
            self.total_count += job.count

            if progress_callback:
                progress_callback(job, self.total_count)

        logger.info(f"Counted {self.total_count:,} docs in {len(jobs)} jobs")
        return jobs

    def get_total_count(self) -> int:
        return self.total_count

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    async def initialize(self, index_names: IndexNames, ignore_completed: bool = False,
                         progress_callback: Optional[ProgressCallback] = None) -> List[Job]:
        """
        Prepare the backlog for use

        Clears the backlog, prepares jobs, drops (or forgets) completed work,
        counts documents and queues every remaining job. Calls for the same
        backlog must not overlap.
        """
        async def clear_backlog(_):
            await self.clear_backlog_jobs()

        async def prepare_jobs(_):
            return await self.prepare_new_jobs(index_names)

        async def reconcile_completed(jobs):
            return await self._reconcile_completed(jobs, ignore_completed)

        async def enrich(jobs):
            return await self.add_count_to_jobs(jobs, progress_callback)

        async def enqueue(jobs):
            logger.info("Adding jobs to queue")
            for job in jobs:
                await self.queue_job(job)
            return jobs

        pipeline = StagePipeline([
            (InitializationStage.CLEAR_BACKLOG, clear_backlog),
            (InitializationStage.PREPARE_JOBS, prepare_jobs),
            (InitializationStage.RECONCILE_COMPLETED, reconcile_completed),
            (InitializationStage.ENRICH, enrich),
            (InitializationStage.ENQUEUE, enqueue),
        ])

        try:
            return await pipeline.run()
        finally:
            self.last_run_metrics = pipeline.metrics

    async def _reconcile_completed(self, jobs: List[Job], ignore_completed: bool) -> List[Job]:
        if ignore_completed:
            await self.clear_completed_jobs()
            return jobs

        # Exclusion is per index: one completed type skips the whole index
        completed_indices = {job.collection for job in await self.get_completed_jobs()}
        remaining = [job for job in jobs if job.collection not in completed_indices]

        skipped = len(jobs) - len(remaining)
        if skipped:
            logger.info(f"Skipping {skipped} jobs in {len(completed_indices)} completed indices")
        return remaining

    # ------------------------------------------------------------------
    # Backlog and completed ledger
    # ------------------------------------------------------------------
    async def fetch_job(self) -> Optional[Job]:
        """Pop a job off the queue and return it, or None when the backlog is empty"""
        job_id = await self.store.list_pop_front(BACKLOG_QUEUE_KEY)
        if job_id is None:
            return None

        count = await self.store.hash_get(BACKLOG_HSET_KEY, job_id)
        if count is None:
            logger.warning(f"job: {job_id} has no count in the backlog")

        # The hash field goes with the claim, even when the entry is malformed
        try:
            job = Job.from_id(job_id, count)
        finally:
            await self.store.hash_delete(BACKLOG_HSET_KEY, job_id)
        return job

    async def queue_job(self, job: Any):
        """Add a job to the queue, unless it is already there"""
        if not job:
            raise ValueError("job must be provided")
        job = Job.create(job)

        # HSET reports whether the field is new atomically with the write
        number_added = await self.store.hash_set(BACKLOG_HSET_KEY, job.id, job.count)
        if number_added == 0:
            logger.warning(f"job: {job} already in queue")
            return

        await self.store.list_push_back(BACKLOG_QUEUE_KEY, job.id)

    async def complete_job(self, job: Any):
        """Mark a job as completed"""
        job = Job.create(job)
        await self.store.hash_set(COMPLETED_KEY, job.id, job.count)

    async def clear_backlog_jobs(self):
        logger.info("clearing existing backlog")
        await self.store.delete_key(BACKLOG_QUEUE_KEY)
        await self.store.delete_key(BACKLOG_HSET_KEY)

    async def clear_completed_jobs(self):
        logger.info("clearing completed jobs")
        await self.store.delete_key(COMPLETED_KEY)

    async def get_backlog_jobs(self) -> List[Job]:
        """All backlog jobs and their counts"""
        return self._jobs_from_hash(await self.store.hash_get_all(BACKLOG_HSET_KEY))

    async def get_completed_jobs(self) -> List[Job]:
        """All completed jobs and their counts"""
        return self._jobs_from_hash(await self.store.hash_get_all(COMPLETED_KEY))

    async def get_backlog_count(self) -> int:
        """Total docs in backlog"""
        return self._sum_counts(await self.store.hash_values(BACKLOG_HSET_KEY))

    async def get_completed_count(self) -> int:
        """Total docs completed"""
        return self._sum_counts(await self.store.hash_values(COMPLETED_KEY))

    async def get_backlog_length(self) -> int:
        return await self.store.list_length(BACKLOG_QUEUE_KEY)

    @staticmethod
    def _jobs_from_hash(jobs_and_counts: Optional[Dict[str, str]]) -> List[Job]:
        return [Job.from_id(job_id, count) for job_id, count in (jobs_and_counts or {}).items()]

    @staticmethod
    def _sum_counts(counts: Optional[List[str]]) -> int:
        return sum(int(count) for count in (counts or []))


def create_manager(config: CoordinatorConfig, registry: Optional[PluginRegistry] = None) -> Manager:
    """
    Create a manager with the configured source, queue store, filters and comparator

    The source client still has to be connected before preparing jobs.
    """
    manager = Manager(
        source=create_source_client(config.source),
        store=create_queue_store(config.redis),
        registry=registry
    )

    if config.backlog.index_filter:
        manager.set_index_filter(config.backlog.index_filter)
    if config.backlog.type_filter:
        manager.set_type_filter(config.backlog.type_filter)
    if config.backlog.index_comparator:
        manager.set_index_comparator(config.backlog.index_comparator)

    return manager
