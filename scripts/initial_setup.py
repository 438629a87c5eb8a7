"""Create the database schema and optionally register a profile's Strava tokens."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from runboard.database import run_migrations, session_scope
from runboard.logging_config import configure_logging
from runboard.models.database_models import Profile


logger = logging.getLogger("scripts.initial_setup")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialise the Runboard database")
    parser.add_argument("--user-id", help="Profile identifier to create or update")
    parser.add_argument("--display-name", help="Name shown for the profile")
    parser.add_argument("--athlete-id", type=int, help="Strava athlete id")
    parser.add_argument("--access-token", help="Strava access token")
    parser.add_argument("--refresh-token", help="Strava refresh token")
    parser.add_argument("--expires-at", type=int, help="Token expiry as a Unix timestamp")
    return parser.parse_args()


def register_profile(args: argparse.Namespace) -> None:
    with session_scope() as db:
        profile = db.get(Profile, args.user_id)
        if profile is None:
            profile = Profile(id=args.user_id)
            db.add(profile)
        if args.display_name:
            profile.display_name = args.display_name
        if args.access_token:
            profile.strava_athlete_id = args.athlete_id
            profile.strava_access_token = args.access_token
            profile.strava_refresh_token = args.refresh_token
            profile.strava_expires_at = args.expires_at
    logger.info("Profile %s ready (Strava connected: %s)", args.user_id, bool(args.access_token))


def main() -> None:
    args = parse_args()
    configure_logging()
    run_migrations()
    logger.info("Database schema is up to date")
    if args.user_id:
        register_profile(args)


if __name__ == "__main__":
    main()
