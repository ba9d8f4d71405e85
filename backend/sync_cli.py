"""
Command line entry point for the catalog syncs.
Creates tables and runs the TLE / transmitter syncs by hand, outside the
HTTP triggers and the scheduler.
"""
import argparse
import json
import logging
import sys

from app import LOG_FORMAT, create_app
from models import db
from services.errors import SyncError
from services.tle_service import TleSyncJob
from services.transmitter_service import TransmitterSyncJob


def create_tables(app):
    """Create all database tables."""
    with app.app_context():
        db.create_all()
        print("[OK] Database tables created")


def run_sync(app, job, limit=None, dry_run=False):
    """
    Run one sync job with the configured secret.

    Returns:
        Summary dictionary, or None if the run was aborted
    """
    with app.app_context():
        orchestrator = app.extensions['catalog_sync']
        try:
            summary = orchestrator.run(job, app.config['CRON_SECRET'], limit=limit, dry_run=dry_run)
        except SyncError as e:
            print(f"[FAILED] {job.name} sync: {e}")
            return None

    result = summary.to_dict()
    print(f"[OK] {job.name} sync:")
    print(json.dumps(result, indent=2, default=str))
    return result


def positive_int(value):
    """argparse type for --limit."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser():
    parser = argparse.ArgumentParser(description='Run satellite catalog syncs')
    parser.add_argument('--config', default=None, help='Configuration name (development, production, ...)')
    parser.add_argument('--create-tables', action='store_true', help='Create database tables first')
    parser.add_argument('--tle', action='store_true', help='Sync TLEs from CelesTrak')
    parser.add_argument('--transmitters', action='store_true', help='Sync transmitters from SatNOGS')
    parser.add_argument('--all', action='store_true', help='Run every sync')
    parser.add_argument('--limit', type=positive_int, help='Only sync the first N satellites')
    parser.add_argument('--dry-run', action='store_true', help='Reconcile without writing')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None, app=None):
    """Main CLI function. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    app = app or create_app(args.config)

    print("=" * 50)
    print("Satellite Catalog Sync")
    print("=" * 50)

    if args.create_tables:
        create_tables(app)

    jobs = []
    if args.all or args.tle:
        jobs.append(TleSyncJob.from_config(app.config))
    if args.all or args.transmitters:
        jobs.append(TransmitterSyncJob.from_config(app.config))

    failed = 0
    for job in jobs:
        if run_sync(app, job, limit=args.limit, dry_run=args.dry_run) is None:
            failed += 1

    print("=" * 50)
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
