#!/usr/bin/env python3
"""
Sync approval chain templates from a configuration set into the database.

Usage:
    python scripts/sync_chain_templates.py [--config-set default]
        [--config-dir DIR] [--db-url URL] [--create-tables] [--dry-run]

The script:
  1. Loads and validates the configuration set via get_active_config()
  2. Connects to the configured database (or --db-url)
  3. Creates or replaces every configured chain template

Requests already in flight keep the levels they were started with.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from approval_config import get_active_config
from approval_config.bridges import engine_kwargs, to_chain_templates
from approval_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
)
from approval_services.engine import ApprovalEngine
from approval_services.template_sync import SyncAction, sync_chain_templates


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Create or replace approval chain templates from YAML config",
    )
    p.add_argument(
        "--config-set",
        default="default",
        help="Configuration set name under the sets directory (default: default)",
    )
    p.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Override the configuration sets directory",
    )
    p.add_argument(
        "--db-url",
        default=None,
        help="Database URL (overrides the configuration set)",
    )
    p.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before syncing",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the plan without writing",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    try:
        config = get_active_config(args.config_set, config_dir=args.config_dir)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    kwargs = engine_kwargs(config)
    if args.db_url:
        kwargs["database_url"] = args.db_url

    print(f"Config set: {config.config_id} v{config.version}")
    print(f"  checksum: {config.checksum[:16]}...")

    init_engine_from_url(**kwargs)
    if args.create_tables:
        create_tables()

    engine = ApprovalEngine(get_session_factory())
    results = sync_chain_templates(
        engine, to_chain_templates(config), dry_run=args.dry_run,
    )

    for result in results:
        print(f"  {result.action.value:<9} {result.document_type} ({result.level_count} levels)")

    changed = sum(r.action != SyncAction.UNCHANGED for r in results)
    if args.dry_run:
        print(f"Dry run: {changed} template(s) would change.")
    else:
        print(f"Done. {changed} template(s) changed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
