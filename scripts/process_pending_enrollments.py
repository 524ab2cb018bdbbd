#!/usr/bin/env python3
# scripts/process_pending_enrollments.py - Run the enrollment reconciler from cron
import sys
import os
import argparse
import logging

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.db import get_session_maker
from app.repositories.conversion_repository import SqlAlchemyConversionRepository
from app.services.enrollment_converter import EnrollmentConverter
from app.services.enrollment_reconciler import EnrollmentReconciler


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Convert simplified enrollments with confirmed payment")
    parser.add_argument(
        "--recover",
        action="store_true",
        help="Recover incomplete conversions instead of processing pending ones"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    db = get_session_maker()()
    try:
        repo = SqlAlchemyConversionRepository(db)
        reconciler = EnrollmentReconciler(repo, EnrollmentConverter(repo))

        if args.recover:
            print("Recovering incomplete enrollments...")
            tally = reconciler.recover_incomplete_enrollments()
        else:
            print("Processing pending enrollments...")
            tally = reconciler.process_pending_enrollments()
    finally:
        db.close()

    print(f"Processed: {tally['processed']}, failed: {tally['failed']}")
    return 1 if tally["failed"] else 0


if __name__ == '__main__':
    sys.exit(main())
