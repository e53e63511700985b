"""
Generate a persona token for exploratory testing.

Usage:
    vectorius-persona-token --user-id <uuid> --persona maya-7th-grader --role student --ttl 24

Prints a magic link that logs the holder in as that user, once.
"""
import argparse
import logging
import os
import sys

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from vectorius.app import create_app
from vectorius.constants import DEFAULT_PERSONA_NAME, DEFAULT_PERSONA_ROLE, DEFAULT_TOKEN_TTL_HOURS, ENV_FILE
from vectorius.services.persona_service import build_magic_link, issue_token
from vectorius.services.provider_client import IdentityClient, ProviderAPIException
from vectorius.settings import load_settings, verify_settings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a single-use persona login link")
    parser.add_argument("--user-id", required=True, help="Provider user id the persona logs in as")
    parser.add_argument("--persona", default=DEFAULT_PERSONA_NAME, help="Persona label, e.g. maya-7th-grader")
    parser.add_argument("--role", default=DEFAULT_PERSONA_ROLE, help="Dashboard the link lands on")
    parser.add_argument("--ttl", type=int, default=DEFAULT_TOKEN_TTL_HOURS, help="Hours until the token expires")
    parser.add_argument("--base-url", default=None, help="Public base URL of the app")
    return parser.parse_args(argv)


def print_config_errors(errors):
    print("Error: Missing environment variables", file=sys.stderr)
    print("Make sure these are set:", file=sys.stderr)
    for error in errors:
        print(f"  - {error['error']}", file=sys.stderr)
    print(f"\nThey are also read from {ENV_FILE} when present.", file=sys.stderr)


def load_cli_settings():
    """Settings for operator scripts, which need the privileged credentials and the database"""
    load_dotenv(ENV_FILE)
    settings = load_settings(force=True)
    errors = []
    for section in ("provider", "database"):
        success, section_errors = verify_settings(settings, section)
        if not success:
            errors.extend(section_errors)
    return settings, errors


def main(argv=None):
    args = parse_args(argv)
    settings, errors = load_cli_settings()
    if errors:
        print_config_errors(errors)
        sys.exit(1)

    identity = IdentityClient.from_settings(settings)
    try:
        user = identity.get_user_by_id(args.user_id)
    except ProviderAPIException as e:
        logger.error(f"User lookup failed: {e}")
        user = None
    if not user:
        print(f"Error: User not found with ID: {args.user_id}", file=sys.stderr)
        print("\nTo find user IDs, check the Supabase dashboard:", file=sys.stderr)
        print("  Authentication -> Users -> Click a user -> Copy ID", file=sys.stderr)
        sys.exit(1)

    with create_app(settings).app_context():
        try:
            record = issue_token(args.user_id, args.role, persona=args.persona, ttl_hours=args.ttl)
        except SQLAlchemyError as e:
            print(f"Error creating token: {e}", file=sys.stderr)
            sys.exit(1)
        token = record.token
        expires_at = record.expires_at

    base_url = args.base_url or os.environ.get("VERCEL_URL") or DEFAULT_BASE_URL
    magic_link = build_magic_link(base_url, token)

    print()
    print("=" * 60)
    print("PERSONA TOKEN GENERATED SUCCESSFULLY")
    print("=" * 60)
    print()
    print(f"Persona:    {args.persona}")
    print(f"Role:       {args.role}")
    print(f"User:       {user.get('email')}")
    print(f"Expires:    {expires_at.isoformat()}")
    print()
    print("MAGIC LINK (give this to the testing agent):")
    print()
    print(magic_link)
    print()
    print("=" * 60)
    print()
    print("Prompt for the testing agent:")
    print(f'"Go to {magic_link} and explore the {args.role} dashboard as a {args.persona}. Report any UX issues you find."')
    print()


if __name__ == "__main__":
    main()
