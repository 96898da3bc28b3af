#!/usr/bin/env python3
"""
Resolve a new signup against the roster from the command line.

Lets an operator run the same search the onboarding flow runs, then
either link the account to one of the candidates or create a new player.

Usage:
    # Show ranked candidates for a signup
    python scripts/resolve_signup.py search --name "Jane Doe" --email jane@x.com \
        --phone "614-555-0100" --school-irn 012345

    # Link an account to candidate 42
    python scripts/resolve_signup.py link --user-id u_abc --player-id 42 \
        --email jane@x.com --by admin@club.org

    # Nobody matched: create a new player for the account
    python scripts/resolve_signup.py create --user-id u_abc --name "Jane Doe" \
        --email jane@x.com --by admin@club.org
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rosterlink.config import settings
from rosterlink.db.session import get_session_factory
from rosterlink.db.stores import SqlAuditSink, SqlPlayerStore, SqlUserAccountStore
from rosterlink.players.errors import LinkageError
from rosterlink.players.identity import PlayerIdentityService
from rosterlink.players.types import SignupInfo

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Match a signup to roster players, then link or create.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_signup_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--name", default="", help="Full name from the signup form")
        p.add_argument("--email", default="", help="Signup email address")
        p.add_argument("--phone", default="", help="Signup phone number (any format)")
        p.add_argument("--school-irn", default="", help="School IRN selected at signup")
        p.add_argument("--school-name", default="", help="School display name")

    search = sub.add_parser("search", help="List ranked candidate players")
    add_signup_args(search)
    search.add_argument(
        "--dedup-policy",
        choices=["first_seen", "max_score"],
        default=None,
        help="Override MATCH_DEDUP_POLICY for this run",
    )

    link = sub.add_parser("link", help="Link a user account to an existing player")
    link.add_argument("--user-id", required=True)
    link.add_argument("--player-id", required=True, type=int)
    link.add_argument("--email", required=True, help="Email the account signed up with")
    link.add_argument("--by", required=True, help="Operator performing the link (for audit)")
    link.add_argument(
        "--require-unlinked",
        action="store_true",
        help="Refuse if another account already holds the player",
    )

    create = sub.add_parser("create", help="Create a new player for a user account")
    create.add_argument("--user-id", required=True)
    create.add_argument("--by", required=True, help="Operator performing the create (for audit)")
    add_signup_args(create)

    return parser


def _signup_from_args(args: argparse.Namespace) -> SignupInfo:
    return SignupInfo(
        full_name=args.name,
        phone_number=args.phone,
        email=args.email,
        school_irn=args.school_irn,
        school_name=args.school_name,
    )


def _build_service(dedup_policy=None) -> PlayerIdentityService:
    factory = get_session_factory()
    return PlayerIdentityService(
        SqlPlayerStore(factory),
        SqlUserAccountStore(factory),
        SqlAuditSink(factory),
        dedup_policy=dedup_policy,
    )


async def main_async(args: argparse.Namespace) -> int:
    if args.command == "search":
        service = _build_service(args.dedup_policy)
        candidates = await service.find_potential_matches(_signup_from_args(args))
        if not candidates:
            print("No candidates found.")
            return 0

        print(f"{'ID':>8}  {'SCORE':>6}  {'LEVEL':<7} {'STRATEGY':<13} NAME / EMAIL / SCHOOL")
        for c in candidates:
            p = c.player
            print(
                f"{p.id:>8}  {c.confidence_score:>6.2f}  {c.confidence_category.value:<7} "
                f"{c.strategy.label:<13} {p.full_name} / {p.email_address or '-'} / {p.high_school or '-'}"
            )
            print(f"{'':>8}  {'; '.join(c.factors)}")
        return 0

    service = _build_service()
    try:
        if args.command == "link":
            result = await service.link_user_to_player(
                args.user_id,
                args.player_id,
                args.email,
                args.by,
                require_unlinked=args.require_unlinked,
            )
        else:
            result = await service.create_player_from_signup(
                args.user_id, _signup_from_args(args), args.by
            )
    except LinkageError as exc:
        logger.error("%s (cause: %s)", exc, exc.__cause__)
        return 1

    print(f"{result.message} (player {result.player_id})")
    return 0


def main() -> int:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    args = _build_parser().parse_args()
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
