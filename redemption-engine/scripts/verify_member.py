#!/usr/bin/env python3
"""
Member Verification Script

Runs a verification (and optionally a confirmation) against the configured
data backend from the command line. Useful for support staff checking why a
member was rejected at a partner business.

Usage:
    python verify_member.py --member WF-2024-000123 --offer <offer-uuid> --business <business-uuid>
    python verify_member.py --member WF-2024-000123 --offer <offer-uuid> --business <business-uuid> --confirm
    python verify_member.py --history --business <business-uuid>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.dependencies import build_engine
from config import get_settings
from domain.membership import InvalidMemberIdentifierError
from domain.results import RedemptionConfirmed, Valid, VerificationOutcome


def print_outcome(outcome: VerificationOutcome) -> None:
    result = outcome.result
    print(f"Status: {result.status.value}")

    member = getattr(result, "member", None)
    if member is not None:
        print(f"  Member:      {member.member_name} ({member.member_number})")
        print(f"  Pets:        {member.pet_names}")
        print(f"  Expires at:  {member.expires_at.isoformat()}")

    reason = getattr(result, "reason", None)
    if reason is not None:
        print(f"  Reason:      {reason.value}")
    message = getattr(result, "message", None)
    if message:
        print(f"  Message:     {message}")
    attempts = getattr(result, "attempts_remaining", None)
    if attempts is not None:
        print(f"  Attempts remaining: {attempts}")
    remaining = getattr(result, "remaining_minutes", None)
    if remaining is not None:
        print(f"  Locked for:  {remaining} minute(s)")

    if isinstance(result, Valid):
        print(f"  Offer:       {result.offer.discount}")
        for pet in result.available_pets:
            print(f"    - {pet.name} ({pet.pet_id})")

    for grant in outcome.pending_birthday_offers:
        print(f"  Birthday offer for {grant.pet_name}: {grant.grant_id} (expires {grant.expires_at.isoformat()})")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Verify a member ID against an offer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Verify only
  python verify_member.py --member WF-2024-000123 --offer <offer> --business <business>

  # Verify and record the redemption for one pet
  python verify_member.py --member WF-2024-000123 --offer <offer> --business <business> --confirm --pet <pet>

  # Show the last 20 redemptions at a business
  python verify_member.py --history --business <business> --limit 20
        """
    )

    parser.add_argument("--member", "-m", help="Member number as printed on the card")
    parser.add_argument("--offer", "-o", type=UUID, help="Offer ID")
    parser.add_argument("--business", "-b", type=UUID, required=True, help="Business ID")
    parser.add_argument("--pet", "-p", type=UUID, help="Pet ID (required for per-pet offers)")
    parser.add_argument("--confirm", action="store_true", help="Record the redemption if valid")
    parser.add_argument("--history", action="store_true", help="List recent redemptions instead")
    parser.add_argument("--limit", type=int, default=20, help="History rows to show (default: 20)")

    args = parser.parse_args()

    try:
        engine = build_engine(get_settings())

        if args.history:
            records = engine.list_business_redemptions(args.business, limit=args.limit)
            if not records:
                print("No redemptions recorded for this business")
                return 0
            for record in records:
                print(
                    f"{record.redeemed_at.isoformat()}  {record.snapshot.member_number:<16} "
                    f"{record.snapshot.member_name:<24} {record.snapshot.pet_names}"
                )
            return 0

        if not args.member or args.offer is None:
            parser.error("--member and --offer are required unless --history is given")

        outcome = engine.verify(args.member, args.offer, args.business)
        print_outcome(outcome)

        if not args.confirm:
            return 0 if isinstance(outcome.result, Valid) else 1
        if not isinstance(outcome.result, Valid):
            print("\nNot confirming: verification did not succeed")
            return 1

        result = engine.confirm(
            outcome.result.member.membership_id,
            args.offer,
            args.business,
            args.pet,
        )
        print()
        if isinstance(result, RedemptionConfirmed):
            print(f"Redemption recorded: {result.record.redemption_id}")
            print(f"  Discount: {result.discount}")
            return 0
        print(f"Redemption rejected: {result.code.value} - {result.message}")
        return 1

    except InvalidMemberIdentifierError as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
