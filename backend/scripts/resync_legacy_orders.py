from __future__ import annotations

import argparse
import asyncio

from order_sync.config import settings
from order_sync.dependencies import build_order_status_service, init_storage
from order_sync.logger import logger
from order_sync.storage.factory import build_storage


async def resync(*, dry_run: bool) -> int:
    storage = build_storage(settings)
    await init_storage(storage)
    service = build_order_status_service(storage)

    statuses = await service.get_synced_order_statuses()
    logger.warning(
        "Legacy orders resync requested",
        extra={
            "storage_backend": settings.STORAGE_BACKEND,
            "synced_orders": len(statuses),
            "dry_run": dry_run,
        },
    )

    try:
        return await service.resync_legacy_orders(dry_run=dry_run)
    finally:
        dispose = getattr(storage, "dispose", None)
        if dispose is not None:
            await dispose()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Re-apply every synced order status to the legacy 'orders' list.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many legacy records would change without writing them.",
    )
    return parser


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    patched = asyncio.run(resync(dry_run=bool(args.dry_run)))
    verb = "would patch" if args.dry_run else "patched"
    print(f"OK: {verb} {patched} legacy order record(s)")


if __name__ == "__main__":
    main()
