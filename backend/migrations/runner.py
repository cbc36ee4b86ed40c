"""
Firestore to Supabase Migration Runner

Operator entry point for the one-off data migration. Runs in dry-run mode
unless --commit is given (or MIGRATION_DRY_RUN=false is set).

Usage:
    python -m migrations.runner users                # Check the user mapping only
    python -m migrations.runner migrate              # Simulate the migration
    python -m migrations.runner migrate --commit     # Write to Supabase
    python -m migrations.runner admin-report         # Churn and MRR from Supabase profiles
"""

import argparse
import json
import sys
from typing import Optional

from gigledger.core.config import Settings, load_settings
from gigledger.core.exceptions import GigLedgerError
from gigledger.core.logging import get_logger, setup_logging
from gigledger.repositories.firestore_repo import FirestoreSourceRepository
from gigledger.repositories.supabase_repo import SupabaseTargetRepository
from gigledger.services.analytics_service import admin_metrics
from gigledger.services.identity import build_user_identity_map
from gigledger.services.migration_service import MigrationRunner

logger = get_logger("gigledger.migrations")


def build_runner(settings: Settings) -> MigrationRunner:
    source = FirestoreSourceRepository(credentials_path=settings.firebase_credentials)
    target = SupabaseTargetRepository(settings.supabase_url, settings.supabase_service_role_key)
    return MigrationRunner(source, target, settings)


def cmd_migrate(settings: Settings) -> int:
    """Run the full migration."""
    runner = build_runner(settings)
    summary = runner.run()

    print(f"\n{'Simulation' if summary.dry_run else 'Migration'} finished.")
    for stage in summary.stages:
        print(f"  {stage.describe(summary.dry_run)}")
    if summary.dry_run:
        print("\nNothing was written. Re-run with --commit once the mapping looks right.")
    return 0


def cmd_users(settings: Settings) -> int:
    """Show which Firebase users have a Supabase account."""
    source = FirestoreSourceRepository(credentials_path=settings.firebase_credentials)
    target = SupabaseTargetRepository(settings.supabase_url, settings.supabase_service_role_key)

    _, matched, unmatched = build_user_identity_map(source.list_users(), target.list_users())

    print("User Mapping:\n")
    for identity in matched:
        print(f"  ✓ {identity.email}  {identity.source_id} -> {identity.target_id}")
    for user in unmatched:
        print(f"  ✗ {user.email or '(no email)'}  {user.id}")
    print(f"\n{len(matched)} mapped, {len(unmatched)} missing in Supabase.")
    return 0 if matched else 1


def cmd_admin_report(settings: Settings) -> int:
    """Print subscription metrics computed from Supabase profiles."""
    target = SupabaseTargetRepository(settings.supabase_url, settings.supabase_service_role_key)
    metrics = admin_metrics(target.list_profiles())
    print(json.dumps(metrics.to_dict(), indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Firestore to Supabase Migration Runner")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # migrate command
    migrate_parser = subparsers.add_parser("migrate", help="Migrate vehicles, transactions and goals")
    mode = migrate_parser.add_mutually_exclusive_group()
    mode.add_argument("--commit", dest="dry_run", action="store_false", default=None,
                      help="Write to Supabase")
    mode.add_argument("--dry-run", dest="dry_run", action="store_true",
                      help="Simulate without writing (default)")
    migrate_parser.add_argument("--batch-size", type=int, default=None,
                                help="Transactions per bulk insert")
    migrate_parser.set_defaults(dry_run=None)

    # users command
    subparsers.add_parser("users", help="Show the Firebase -> Supabase user mapping")

    # admin-report command
    subparsers.add_parser("admin-report", help="Show churn and MRR metrics")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(
            dry_run=getattr(args, "dry_run", None),
            batch_size=getattr(args, "batch_size", None),
        )
        setup_logging(settings.log_level)

        if args.command == "migrate":
            return cmd_migrate(settings)
        if args.command == "users":
            return cmd_users(settings)
        return cmd_admin_report(settings)

    except GigLedgerError as e:
        setup_logging()
        logger.error(e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
