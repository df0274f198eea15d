#!/usr/bin/env python3
"""
Lead Capture Platform - Storage maintenance runner.

Sets up the Python path, then runs one maintenance command against the
configured storage backend (see config/settings.py for STORAGE_* vars).

Commands:
    init                 Seed the administrator account if absent
    migrate USER_ID      Run the schema migrations for one user
    summary USER_ID      Print form and lead counts for one user
"""

import argparse
import os
import sys

# Add the 'src' directory to Python path so imports work correctly
project_root = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(project_root, 'src')

if src_path not in sys.path:
    sys.path.insert(0, src_path)

from config.settings import get_settings  # noqa: E402
from database.models import CONSOLIDATED_FORM_ID  # noqa: E402
from services.capture_service import (  # noqa: E402
    LeadCaptureService,
    daily_lead_counts,
    form_display_name,
)
from services.logging_config import configure_logging  # noqa: E402


def build_parser(app_name: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="run.py", description=f"{app_name} - storage maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Seed the administrator account")

    migrate = sub.add_parser("migrate", help="Run schema migrations for a user")
    migrate.add_argument("user_id")

    summary = sub.add_parser("summary", help="Show form and lead counts for a user")
    summary.add_argument("user_id")

    return parser


def main(argv=None, service=None) -> int:
    settings = get_settings()
    args = build_parser(settings.name).parse_args(argv)

    configure_logging(settings.log_level, settings.log_json, settings.log_file)
    service = service or LeadCaptureService.from_settings(settings)

    if args.command == "init":
        created = service.initialize()
        print("✓ Admin user seeded" if created else "✓ Admin user already present")
        return 0

    if args.command == "migrate":
        results = service.migrations.ensure_schema(args.user_id)
        if not results:
            print("✗ Migration aborted, see log for details")
            return 1
        for name, result in results.items():
            print(f"✓ {name}: {result.value}")
        return 0

    workspace = service.load_workspace(args.user_id)
    print(f"Forms: {len(workspace.forms)}")
    for form in workspace.forms:
        print(f"  - {form.title} ({len(workspace.leads_for(form.id))} leads)")
    consolidated = [lead for lead in workspace.leads if lead.is_consolidated]
    if consolidated:
        print(f"  - {form_display_name(workspace.forms, CONSOLIDATED_FORM_ID)} ({len(consolidated)} leads)")
    print(f"Leads: {len(workspace.leads)}")
    for day, count in daily_lead_counts(workspace.leads).items():
        print(f"  {day}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
