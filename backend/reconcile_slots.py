"""Release availability slots left booked behind cancelled or missing appointments.

Usage:
    python -m backend.reconcile_slots [--dry-run]
"""
import argparse
import logging
import sys

from backend.core import config
from backend.database import SessionLocal
from backend.services.booking_service import reconcile_slot_bookings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('--dry-run', action='store_true', help='list stale slots without releasing them')
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')

    db = SessionLocal()
    try:
        slot_ids = reconcile_slot_bookings(db, dry_run=args.dry_run)
    finally:
        db.close()

    verb = 'Would release' if args.dry_run else 'Released'
    print(f'{verb} {len(slot_ids)} slot(s): {", ".join(str(slot_id) for slot_id in slot_ids) or "none"}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
