#!/usr/bin/env python3
"""
Points reconciliation job for VolunteerHub.

Recomputes every volunteer's cached point balance from their approved
activity log rows and corrects any drift. Each volunteer is reconciled in
its own transaction so a long run never holds locks on the whole table.

Usage:
    python scripts/reconcile_points.py [--volunteer-id ID] [--dry-run]

    --volunteer-id: Only reconcile this volunteer
    --dry-run: Report drift without writing corrections
"""

import argparse
import sys
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
load_dotenv(dotenv_path=env_path)

# Add project root to path
sys.path.insert(0, str(project_root))

from sqlmodel import Session
from volunteerhub.core.config import configure_logging
from volunteerhub.core.exceptions import CoordinationError
from volunteerhub.crud.user import volunteer_profile_crud
from volunteerhub.database.engine import get_engine
from volunteerhub.services.activity_service import ActivityService
from volunteerhub.services.coordinator import Coordinator

# ANSI color codes
class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def print_header(message: str):
    """Print a formatted header."""
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*80}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{message}{Colors.RESET}")
    print(f"{Colors.CYAN}{'='*80}{Colors.RESET}\n")


def dry_run(volunteer_ids) -> int:
    """Report drift without writing. Returns the number of drifted balances."""
    drifted = 0
    with Session(get_engine()) as session:
        for volunteer_id in volunteer_ids:
            try:
                summary = ActivityService.points_summary(session, volunteer_id)
            except CoordinationError as e:
                drifted += 1
                print(f"{Colors.RED}✗{Colors.RESET} Volunteer {volunteer_id}: {e}")
                continue
            if not summary.in_sync:
                drifted += 1
                print(
                    f"{Colors.YELLOW}!{Colors.RESET} Volunteer {volunteer_id}: "
                    f"cached {summary.cached_points}, ledger {summary.ledger_points}"
                )
    return drifted


def reconcile(volunteer_ids) -> int:
    """Correct drift one volunteer per transaction. Returns the number of failures."""
    coordinator = Coordinator()
    failures = 0
    for volunteer_id in volunteer_ids:
        result = coordinator.execute(
            "reconcile_points",
            lambda db, vid=volunteer_id: ActivityService.reconcile_points(db, vid),
        )
        if not result.ok:
            failures += 1
            print(f"{Colors.RED}✗{Colors.RESET} Volunteer {volunteer_id}: {result.error}")
        elif result.value is not None:
            correction = result.value
            print(
                f"{Colors.GREEN}✓{Colors.RESET} Volunteer {volunteer_id}: "
                f"{correction.previous_points} -> {correction.corrected_points}"
            )
    return failures


def main():
    parser = argparse.ArgumentParser(description="Reconcile cached volunteer points with the activity ledger")
    parser.add_argument("--volunteer-id", type=int, help="Only reconcile this volunteer")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without correcting it")
    args = parser.parse_args()

    configure_logging()

    if args.volunteer_id is not None:
        volunteer_ids = [args.volunteer_id]
    else:
        with Session(get_engine()) as session:
            volunteer_ids = volunteer_profile_crud.list_profile_ids(session)

    print_header(f"Reconciling points for {len(volunteer_ids)} volunteer(s)")

    if args.dry_run:
        drifted = dry_run(volunteer_ids)
        print(f"\n{drifted} balance(s) out of sync")
        return 1 if drifted else 0

    failures = reconcile(volunteer_ids)
    print(f"\nDone with {failures} failure(s)")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
