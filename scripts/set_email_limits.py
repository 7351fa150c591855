#!/usr/bin/env python3
"""
Show or set a user's daily email processing limit.

Examples:
  # Show the current limit
  python scripts/set_email_limits.py jane@acme.com

  # Allow 25 emails per day
  python scripts/set_email_limits.py jane@acme.com 25
"""

from __future__ import annotations

import argparse
import sys

from dotenv import load_dotenv


def main() -> int:
    load_dotenv()

    from guestpass.infrastructure.database import init_database
    from guestpass.intake.repository import ProfileRepository

    parser = argparse.ArgumentParser(
        description="Show or set max_daily_email_processing for a profile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("email", help="Profile email address (exact match)")
    parser.add_argument("limit", nargs="?", type=int, help="New daily limit (positive integer)")
    args = parser.parse_args()

    init_database()

    profile = ProfileRepository.get_by_email(args.email)
    if profile is None:
        print(f"No profile found for {args.email}", file=sys.stderr)
        return 1

    if args.limit is None:
        status = "enabled" if profile.email_processing_enabled else "disabled"
        print(
            f"{profile.email}: {profile.max_daily_email_processing} emails/day "
            f"(processing {status}, {profile.authentication_status})"
        )
        return 0

    if args.limit < 1:
        print("limit must be a positive integer", file=sys.stderr)
        return 2

    ProfileRepository.set_daily_limit(args.email, args.limit)
    print(f"{profile.email}: daily limit set to {args.limit}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
