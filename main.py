# main.py

"""
VaultWatch - Document Activity Tracking
"""
import sys
import asyncio
import argparse
import logging

from vaultwatch.db.export import ExportOptions
from vaultwatch.db.store import ActivityStore
from vaultwatch.exceptions import VaultWatchError
from vaultwatch.processing.tracker import ActivityTracker
from vaultwatch.utils.config import load_config
from vaultwatch.utils.file_utils import FileSystemContentReader, FileSystemContentStore, find_files
from vaultwatch.utils.logger import setup_logging
from vaultwatch.utils.scheduler import AsyncioScheduler
from vaultwatch.watchdog.monitor import FileMonitor

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Track editing activity in a notes vault")
    parser.add_argument("--config", help="Path to a YAML or JSON configuration file")
    parser.add_argument("--export", choices=["json", "csv"],
                        help="Write an export of all recorded events and exit")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level, config.log_file, config.log_format)

    vault = config.paths.vault.expanduser()
    if not vault.is_dir():
        logger.error(f"Vault directory not found: {vault}")
        return 1

    store = ActivityStore.from_config(config.database)
    scheduler = AsyncioScheduler()
    tracker = ActivityTracker(
        config,
        store,
        reader=FileSystemContentReader(vault),
        content_store=FileSystemContentStore(vault),
        scheduler=scheduler,
    )

    if args.export:
        try:
            store.initialize()
            path = await tracker.schedule_export(ExportOptions(format=args.export))
        except VaultWatchError as e:
            logger.error(f"Export failed: {e}")
            return 1
        finally:
            store.close()
        print(f"Exported activity to {vault / path}")
        return 0

    print("=" * 60)
    print("VaultWatch - Document Activity Tracking")
    print("=" * 60)
    print(f"Vault: {vault}")
    print(f"Database: {config.database.url}")

    monitor = FileMonitor(config, tracker)

    try:
        tracker.initialize()

        # 1) Seed baselines for existing notes
        patterns = ['*' + ext for ext in config.watchdog.extensions]
        await tracker.load_initial_state(find_files(vault, patterns))

        # 2) Start watching
        if config.watchdog.enabled and not await monitor.start():
            return 1

        # 3) Keep running
        print("\nVaultWatch is running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        pass

    finally:
        # Clean shutdown
        await monitor.stop()
        await tracker.shutdown()
        scheduler.cancel_all()

    return 0


def run():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    run()
