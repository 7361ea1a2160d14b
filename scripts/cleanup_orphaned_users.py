#!/usr/bin/env python3
"""
Delete users that have no linked account.

These are left behind when a first social login fails to create its account
row and the compensating delete fails too (logged at CRITICAL with the uuid).

Usage:
    python scripts/cleanup_orphaned_users.py            # dry run
    python scripts/cleanup_orphaned_users.py --apply    # delete
"""
import argparse
import logging

from authbridge.core.logger import init_logging
from authbridge.db.session import SessionLocal
from authbridge.services.identity_store import IdentityStore

logger = logging.getLogger("scripts.cleanup_orphaned_users")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--apply", action="store_true", help="Actually delete the orphaned users")
    args = parser.parse_args()

    init_logging()
    db = SessionLocal()
    try:
        store = IdentityStore(db)
        orphans = store.find_orphaned_users()
        if not orphans:
            print("No orphaned users found.")
            return 0

        for user in orphans:
            print(f"{user.uuid}  created {user.created_at}")
        print(f"\n{len(orphans)} orphaned user(s)")

        if not args.apply:
            print("Dry run; pass --apply to delete them.")
            return 0

        deleted = 0
        for user in orphans:
            if store.delete_user(user.uuid):
                deleted += 1
                logger.info("Deleted orphaned user uuid=%s", user.uuid)
        print(f"Deleted {deleted} user(s).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
