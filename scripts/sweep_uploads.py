"""Remove stored profile photos that no user references."""

from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta

from profile_api.database import AsyncSessionLocal, engine
from profile_api.services.storage import (
    DEFAULT_SWEEP_MIN_AGE,
    PhotoStorage,
    find_orphaned_photos,
    get_upload_config,
    sweep_orphaned_photos,
)


async def main(dry_run: bool, min_age: timedelta) -> int:
    storage = PhotoStorage(get_upload_config())
    async with AsyncSessionLocal() as session:
        if dry_run:
            orphans = await find_orphaned_photos(session, storage, min_age)
            for path in orphans:
                print(f"would remove {path}")
            print(f"{len(orphans)} orphaned photo(s)")
        else:
            removed = await sweep_orphaned_photos(session, storage, min_age)
            for path in removed:
                print(f"removed {path}")
            print(f"Removed {len(removed)} orphaned photo(s)")
    await engine.dispose()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List orphaned files without deleting them",
    )
    parser.add_argument(
        "--min-age-minutes",
        type=float,
        default=DEFAULT_SWEEP_MIN_AGE.total_seconds() / 60,
        help="Only consider files last modified at least this many minutes ago (default: %(default)s)",
    )
    args = parser.parse_args()
    if args.min_age_minutes < 0:
        parser.error("--min-age-minutes must not be negative")
    raise SystemExit(asyncio.run(main(args.dry_run, timedelta(minutes=args.min_age_minutes))))
