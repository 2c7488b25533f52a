#!/usr/bin/env python3
"""
Migration Backlog - Operator Script
Initialize, inspect and clear the shared migration backlog
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from tqdm import tqdm

# Add project to path
sys.path.insert(0, str(Path(__file__).parent))

from migration_backlog import BacklogError, ConfigManager, create_manager

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('backlog_manage.log')
        ]
    )


async def initialize_backlog(manager, index_names, ignore_completed: bool):
    progress_bar = tqdm(desc="Counting documents", unit="job")

    def on_counted(job, total):
        progress_bar.update(1)
        progress_bar.set_postfix(docs=f"{total:,}")

    try:
        jobs = await manager.initialize(index_names, ignore_completed, progress_callback=on_counted)
    finally:
        progress_bar.close()

    logger.info(f"🎉 Backlog initialized with {len(jobs)} jobs ({manager.get_total_count():,} docs)")
    for metrics in manager.last_run_metrics:
        logger.info(f"   • {metrics.stage.value}: {metrics.items:,} in {metrics.duration:.2f}s")


async def print_status(manager):
    backlog_jobs = await manager.get_backlog_jobs()
    completed_jobs = await manager.get_completed_jobs()

    logger.info("📊 Backlog status:")
    logger.info(f"   • Queued jobs: {await manager.get_backlog_length():,}")
    logger.info(f"   • Backlog: {len(backlog_jobs):,} jobs, {await manager.get_backlog_count():,} docs")
    logger.info(f"   • Completed: {len(completed_jobs):,} jobs, {await manager.get_completed_count():,} docs")


async def main():
    parser = argparse.ArgumentParser(description='Migration backlog management')
    parser.add_argument('--config', '-c', default=None,
                        help='Configuration file (.env, .json, .yaml)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    init_parser = subparsers.add_parser('initialize', help='Prepare jobs and fill the backlog')
    init_parser.add_argument('--indices', '-i', default=None,
                             help='Databases to migrate: name, wildcard or comma separated list')
    init_parser.add_argument('--ignore-completed', action='store_true',
                             help='Forget completed work and queue everything again')

    subparsers.add_parser('status', help='Show backlog and completed counts')

    clear_parser = subparsers.add_parser('clear', help='Clear the backlog')
    clear_parser.add_argument('--completed', action='store_true',
                              help='Also clear the completed jobs')

    args = parser.parse_args()

    config = ConfigManager("BACKLOG").load_config(args.config)
    configure_logging(config.log_level)

    manager = create_manager(config)
    try:
        if args.command == 'initialize':
            await manager.source.connect()
            index_names = args.indices or config.backlog.index_names
            ignore_completed = args.ignore_completed or config.backlog.ignore_completed
            await initialize_backlog(manager, index_names, ignore_completed)
        elif args.command == 'status':
            await print_status(manager)
        elif args.command == 'clear':
            await manager.clear_backlog_jobs()
            if args.completed:
                await manager.clear_completed_jobs()

        return 0

    except BacklogError as e:
        logger.error(f"❌ {args.command} failed: {e}")
        return 1

    finally:
        await manager.source.disconnect()
        await manager.store.close()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
