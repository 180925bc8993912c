"""Dealflow CLI — command-line interface for the deal-formation engine.

Works against a JSON entity file (``entities.json``) and an audit log
(``events.jsonl``) in the data directory.

Usage:
    python -m dealflow.cli status
    python -m dealflow.cli classify --need OPP-1
    python -m dealflow.cli match --need OPP-1 --offer OPP-2
    python -m dealflow.cli link --need OPP-1 --offers OPP-2 OPP-3 --actor U-1
    python -m dealflow.cli unlink --need OPP-1 --offers OPP-3 --actor U-1
    python -m dealflow.cli equivalence --need OPP-1 --offer OPP-2
    python -m dealflow.cli award --proposal PRP-1 --actor U-1
    python -m dealflow.cli transition-engagement --engagement ENG-1 --to ACTIVE --actor U-2
    python -m dealflow.cli check-policy

Environment (a ``.env`` file at the repository root is honoured):
    DEALFLOW_CONFIG_DIR   policy directory (default: config/)
    DEALFLOW_DATA_DIR     entity and audit files (default: data/)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from dealflow.models.deal import EngagementStatus
from dealflow.persistence.audit import EventLogAuditSink
from dealflow.persistence.event_log import EventLog
from dealflow.persistence.store import InMemoryEntityStore
from dealflow.policy.resolver import PolicyResolver
from dealflow.service import DealService, ServiceResult


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _make_service(config_dir: Path, data_dir: Path) -> DealService:
    """Create a DealService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(config_dir)
    store = InMemoryEntityStore(storage_path=data_dir / "entities.json")
    audit = EventLogAuditSink(EventLog(storage_path=data_dir / "events.jsonl"))
    return DealService(resolver, store=store, audit=audit)


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        if result.errors:
            print(f"Warnings: {'; '.join(result.errors)}", file=sys.stderr)
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.classify(args.need))


def cmd_match(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    if args.offer:
        return _report(service.match(args.need, args.offer))
    return _report(service.rank_offers(args.need))


def cmd_link(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.link_offers(args.need, args.offers, actor_id=args.actor))


def cmd_unlink(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.unlink_offers(args.need, args.offers, actor_id=args.actor))


def cmd_equivalence(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.equivalence(args.need, args.offer))


def cmd_award(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.award_proposal(args.proposal, actor_id=args.actor))


def cmd_transition_engagement(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(
        service.transition_engagement(
            args.engagement, EngagementStatus(args.to), actor_id=args.actor,
        )
    )


def cmd_check_policy(args: argparse.Namespace) -> int:
    """Validate the matching policy file."""
    tools_dir = ROOT / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(args.config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dealflow",
        description="Dealflow — marketplace matching and deal-formation engine CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.environ.get("DEALFLOW_CONFIG_DIR") or DEFAULT_CONFIG),
        help="Path to config directory (default: $DEALFLOW_CONFIG_DIR or config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path(os.environ.get("DEALFLOW_DATA_DIR") or DEFAULT_DATA),
        help="Path to data directory (default: $DEALFLOW_DATA_DIR or data/)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show system status")

    # classify
    p_cls = sub.add_parser("classify", help="Classify a need's matching model")
    p_cls.add_argument("--need", required=True, help="Need opportunity ID")

    # match
    p_match = sub.add_parser("match", help="Score a need against one offer, or rank all offers")
    p_match.add_argument("--need", required=True, help="Need opportunity ID")
    p_match.add_argument("--offer", help="Offer opportunity ID (omit to rank all active offers)")

    # link / unlink
    for name, help_text in (("link", "Link offers to a need"), ("unlink", "Unlink offers")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--need", required=True, help="Need opportunity ID")
        p.add_argument("--offers", required=True, nargs="+", help="Offer opportunity IDs")
        p.add_argument("--actor", required=True, help="Acting user ID")

    # equivalence
    p_eq = sub.add_parser("equivalence", help="Barter value balance in both directions")
    p_eq.add_argument("--need", required=True, help="Need opportunity ID")
    p_eq.add_argument("--offer", required=True, help="Offer opportunity ID")

    # award
    p_award = sub.add_parser("award", help="Award a shortlisted proposal")
    p_award.add_argument("--proposal", required=True, help="Proposal ID")
    p_award.add_argument("--actor", required=True, help="Awarding (owner) company ID")

    # transition-engagement
    p_eng = sub.add_parser("transition-engagement", help="Move an engagement to a new status")
    p_eng.add_argument("--engagement", required=True, help="Engagement ID")
    p_eng.add_argument(
        "--to", required=True,
        choices=[s.value for s in EngagementStatus if s != EngagementStatus.PLANNED],
        help="Target status",
    )
    p_eng.add_argument("--actor", required=True, help="Acting party ID")

    # check-policy
    sub.add_parser("check-policy", help="Validate config/matching_policy.json")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(ROOT / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "classify": cmd_classify,
        "match": cmd_match,
        "link": cmd_link,
        "unlink": cmd_unlink,
        "equivalence": cmd_equivalence,
        "award": cmd_award,
        "transition-engagement": cmd_transition_engagement,
        "check-policy": cmd_check_policy,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (ValueError, OSError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
