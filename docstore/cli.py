"""
DocStore CLI — bootstrap and inspection commands.

Commands:
- docstore init      — Create the metadata tables
- docstore health    — Probe storage and database, print a JSON summary
- docstore allocate  — Allocate a shard path under a base path
- docstore classify  — Show how a file name classifies and whether it is accepted
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from typing import Optional

logger = logging.getLogger("docstore.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="docstore",
        description="DocStore — sharded document storage",
    )
    parser.add_argument(
        "--config", default=None, help="Path to docstore.yaml (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # docstore init
    subparsers.add_parser("init", help="Create metadata tables")

    # docstore health
    subparsers.add_parser("health", help="Probe storage and database")

    # docstore allocate
    allocate_parser = subparsers.add_parser("allocate", help="Allocate a shard path")
    allocate_parser.add_argument("base_path", help="Base path, e.g. Data\\Forms")
    allocate_parser.add_argument("--uuid", dest="unique_id", help="Identifier to shard by (default: random)")

    # docstore classify
    classify_parser = subparsers.add_parser("classify", help="Classify a file name")
    classify_parser.add_argument("filename", help="File name, e.g. report.PDF")

    args = parser.parse_args(argv)

    from docstore.engine.logging import shutdown_logging

    try:
        if args.command == "init":
            return cmd_init(args)
        elif args.command == "health":
            return cmd_health(args)
        elif args.command == "allocate":
            return cmd_allocate(args)
        elif args.command == "classify":
            return cmd_classify(args)
        else:
            parser.print_help()
            return 0
    finally:
        shutdown_logging()


async def _close(gateway) -> None:
    close = getattr(gateway, "close", None)
    if close is not None:
        await close()


def _load(args: argparse.Namespace):
    from docstore.engine.config import load_config
    from docstore.engine.logging import configure_logging, get_log_queue

    config = load_config(getattr(args, "config", None))
    if get_log_queue() is None:
        configure_logging(config.logging)
    return config


def cmd_init(args: argparse.Namespace) -> int:
    """
    Bootstrap the metadata store:
    1. Load config from docstore.yaml
    2. Create all tables (SQLAlchemy metadata.create_all)
    """
    from docstore.db.base import create_tables, dispose_db, init_db
    from docstore.engine.errors import DocStoreConfigError

    try:
        config = _load(args)
    except DocStoreConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    async def _init() -> None:
        init_db(config.database.url, echo=config.database.echo)
        try:
            await create_tables()
        finally:
            await dispose_db()

    try:
        asyncio.run(_init())
    except Exception as e:
        print(f"[ERROR] Table creation failed: {e}")
        return 1
    print(f"[OK] Tables created in {config.database.url}")
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    """Print the health summary. Exit code 1 when anything is unhealthy."""
    from docstore.db.base import dispose_db, get_engine, init_db
    from docstore.engine.errors import DocStoreError
    from docstore.engine.health import HealthCheckService, HealthStatus
    from docstore.storage.factory import build_storage_gateway
    from docstore.storage.service import BinaryStorageService

    try:
        config = _load(args)
        gateway = build_storage_gateway(config.storage)
    except DocStoreError as e:
        print(f"[ERROR] {e.message}")
        return 1

    async def _probe() -> dict:
        service = HealthCheckService()
        service.register_storage_check("storage", BinaryStorageService(gateway))
        init_db(config.database.url)
        service.register_database_check("database", get_engine())
        try:
            return await service.get_summary()
        finally:
            await dispose_db()
            await _close(gateway)

    summary = asyncio.run(_probe())
    print(json.dumps(summary, indent=2))
    return 0 if summary["status"] == HealthStatus.HEALTHY.value else 1


def cmd_allocate(args: argparse.Namespace) -> int:
    """Allocate a shard path (creates the container on the configured backend)."""
    from docstore.engine.errors import DocStoreError
    from docstore.storage.factory import build_storage_gateway
    from docstore.storage.paths import PathAllocator

    try:
        unique_id = uuid.UUID(args.unique_id) if args.unique_id else uuid.uuid4()
    except ValueError:
        print(f"[ERROR] Not a UUID: {args.unique_id}")
        return 1

    try:
        config = _load(args)
        gateway = build_storage_gateway(config.storage)
        allocator = PathAllocator(gateway, max_segments=config.documents.max_path_segments)

        async def _allocate() -> str:
            try:
                return await allocator.allocate(args.base_path, unique_id)
            finally:
                await _close(gateway)

        path = asyncio.run(_allocate())
    except DocStoreError as e:
        print(f"[ERROR] {e.message}")
        return 1

    print(path)
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    from docstore.documents.extensions import classify, dcmi_type_for, extension_of, is_accepted

    extension = extension_of(args.filename)
    category = classify(extension)
    print(json.dumps({
        "filename": args.filename,
        "extension": extension,
        "category": category,
        "accepted": is_accepted(args.filename),
        "dcmi_type": dcmi_type_for(category).value,
    }, indent=2))
    return 0 if category else 1


if __name__ == "__main__":
    sys.exit(main())
