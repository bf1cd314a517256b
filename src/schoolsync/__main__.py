"""
Command line entrypoint for dashboard statistics reconciliation.

Usage:
    python -m schoolsync sync snapshot.json [--user NAME] [--dry-run]
    python -m schoolsync status     # latest run from the sync log
    python -m schoolsync current    # statistics currently stored
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def _sync(path: Path, user: Optional[str], dry_run: bool) -> int:
    from schoolsync.config import get_settings
    from schoolsync.db.engine import get_engine
    from schoolsync.store.sql_store import SqlStatisticsStore
    from schoolsync.sync.audit import record_sync_run
    from schoolsync.sync.engine import ReconciliationEngine
    from schoolsync.sync.errors import SyncError

    settings = get_settings()
    engine = get_engine()
    acting_user = user or settings.default_acting_user

    try:
        snapshot = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        logger.error("Could not load snapshot %s: %s", path, exc)
        return 2

    store = SqlStatisticsStore(engine)
    reconciler = ReconciliationEngine(reader=store, handlers=store.handlers())

    if dry_run:
        try:
            plan = await reconciler.plan(snapshot)
        except SyncError as exc:
            logger.error("%s", exc)
            return 1
        _print_json([{"table": table, "columns": columns} for table, columns in plan])
        return 0

    result = await reconciler.synchronize(snapshot, acting_user=acting_user)
    if settings.persist_audit:
        log = record_sync_run(engine, result, acting_user=acting_user)
        logger.info("Recorded sync run %s (%s)", log.id, log.status)
    _print_json(result.to_dict())
    return 0 if result.success else 1


def _status() -> int:
    from schoolsync.db.engine import get_engine
    from schoolsync.sync.audit import latest_sync_log

    log = latest_sync_log(get_engine())
    if log is None:
        _print_json({"status": "never_run"})
    else:
        _print_json(log.model_dump())
    return 0


async def _current() -> int:
    from schoolsync.db.engine import get_engine
    from schoolsync.store.sql_store import SqlStatisticsStore

    store = SqlStatisticsStore(get_engine())
    _print_json(await store.read_current_statistics())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schoolsync",
        description="Reconcile school dashboard statistics with the database",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Apply a statistics snapshot (JSON file)")
    sync.add_argument("snapshot", type=Path, help="Path to the snapshot JSON")
    sync.add_argument("--user", default=None, help="Acting user for the audit log")
    sync.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the ordered changes without applying them",
    )

    sub.add_parser("status", help="Show the most recent sync run")
    sub.add_parser("current", help="Show the statistics currently stored")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "sync":
        return asyncio.run(_sync(args.snapshot, args.user, args.dry_run))
    if args.command == "status":
        return _status()
    return asyncio.run(_current())


if __name__ == "__main__":
    sys.exit(main())
