#!/usr/bin/env python
"""
Value Case Script

Values a personal-injury case from its stored damage elements and medical
records, optionally overriding the economic figures on the command line.

Usage:
    python scripts/value_case.py CASE_ID --injury-type fracture
    python scripts/value_case.py CASE_ID --medical 12000 --policy-limit 50000 --local-only
    python scripts/value_case.py CASE_ID --save

Environment:
    PI_DATA_PATH selects the damages store; PI_REMOTE_VALUATION_* configure the
    remote AI valuation service.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.config import load_settings
from app.personal_injury import (
    INJURY_TYPES,
    CaseValuationWorkspace,
    DamageStorage,
    RemoteValuationClient,
    ValidationError,
    ValuationCalculator,
)
from app.utils import setup_logging

logger = setup_logging()


def build_form(args: argparse.Namespace) -> dict:
    return {
        "injury_type": args.injury_type,
        "injury_description": args.description or "",
        "medical_expenses": args.medical,
        "lost_wages": args.lost_wages,
        "future_medical": args.future_medical,
        "custom_multiplier": args.multiplier,
        "liability_assessment": args.liability,
        "comparative_negligence_percent": args.negligence,
        "policy_limit": args.policy_limit,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Value a personal-injury case from its stored damages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/value_case.py case-001 --injury-type tbi
  python scripts/value_case.py case-001 --medical 8000 --negligence 20 --local-only
        """,
    )
    parser.add_argument("case_id", help="Case identifier")
    parser.add_argument(
        "--injury-type",
        default="soft_tissue",
        choices=sorted(INJURY_TYPES),
        help="Injury type used to pick the multiplier (default: soft_tissue)",
    )
    parser.add_argument("--description", help="Free-text injury description")
    parser.add_argument("--medical", type=float, help="Medical expenses")
    parser.add_argument("--lost-wages", type=float, help="Lost wages")
    parser.add_argument("--future-medical", type=float, help="Future medical costs")
    parser.add_argument("--multiplier", type=float, help="Custom multiplier override")
    parser.add_argument(
        "--liability",
        default="CLEAR",
        choices=["CLEAR", "COMPARATIVE", "DISPUTED"],
        help="Liability assessment (default: CLEAR)",
    )
    parser.add_argument("--negligence", type=float, default=0.0, help="Comparative negligence percent")
    parser.add_argument("--policy-limit", type=float, help="Defendant policy limit")
    parser.add_argument(
        "--local-only",
        action="store_true",
        help="Skip the remote AI valuation service",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist the result as the case's settlement analysis",
    )

    args = parser.parse_args()

    settings = load_settings()
    pi = settings.personal_injury
    remote = None
    if not args.local_only and pi.remote_configured:
        remote = RemoteValuationClient(pi)

    workspace = CaseValuationWorkspace(
        DamageStorage(Path(pi.data_path)),
        calculator=ValuationCalculator(pi.default_multiplier, pi.mileage_rate),
        remote_client=remote,
    )
    workspace.select_case(args.case_id)

    try:
        outcome = asyncio.run(workspace.calculate(build_form(args)))
    except ValidationError as e:
        logger.error("Cannot value case %s: %s", args.case_id, e)
        return 1

    if outcome.remote_error:
        logger.warning("Remote valuation unavailable: %s", outcome.remote_error)

    if args.save and workspace.save_settlement_analysis(outcome) is None:
        logger.error("Settlement analysis was not saved")

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
