#!/usr/bin/env python3
"""Dealflow invariant checks against the matching policy file."""

import json
import math
import sys
from pathlib import Path
from typing import Optional


ROOT = Path(__file__).resolve().parents[1]
POLICY_FILENAME = "matching_policy.json"


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_weights(weights: dict, label: str, errors: list[str]) -> None:
    """Weights must be non-negative and sum to 1.0."""
    for name, value in weights.items():
        if value < 0:
            errors.append(f"{label}.{name} must be >= 0, got {value}")
    total = sum(weights.values())
    if not math.isclose(total, 1.0, rel_tol=0.0, abs_tol=1e-9):
        errors.append(f"{label} must sum to 1.0, got {total}")


def check_score(value, label: str, errors: list[str]) -> None:
    if not (0 <= value <= 100):
        errors.append(f"{label} must be in [0, 100], got {value}")


def check(config_dir: Optional[Path] = None) -> int:
    policy = load_json((config_dir or ROOT / "config") / POLICY_FILENAME)
    errors: list[str] = []

    # --- Baseline scoring ---
    check_weights(policy["baseline_weights"], "baseline_weights", errors)
    check_score(policy["match_threshold"], "match_threshold", errors)

    # --- Topology adjustments ---
    two_way = policy["two_way"]
    check_weights(
        {k: two_way[k] for k in ("baseline_weight", "bidirectional_weight")},
        "two_way weights", errors,
    )
    for key in ("compatible_score", "incompatible_score", "compatible_cutoff"):
        check_score(two_way[key], f"two_way.{key}", errors)
    if two_way["compatible_score"] <= two_way["incompatible_score"]:
        errors.append("two_way.compatible_score must exceed incompatible_score")

    group = policy["group_formation"]
    check_weights(
        {k: group[k] for k in ("baseline_weight", "complementarity_weight")},
        "group_formation weights", errors,
    )
    if group["minimum_members"] < 2:
        errors.append("group_formation.minimum_members must be >= 2")

    circular = policy["circular_exchange"]
    if circular["boost_factor"] < 1.0:
        errors.append("circular_exchange.boost_factor must be >= 1.0")
    if circular["minimum_links"] < 3:
        errors.append("circular_exchange.minimum_links must be >= 3")

    # --- Mirroring ---
    mirroring = policy["mirroring"]
    if mirroring["timeline_slack_days"] < 0:
        errors.append("mirroring.timeline_slack_days must be >= 0")
    if mirroring["budget_proximity_cutoff_pct"] <= 0:
        errors.append("mirroring.budget_proximity_cutoff_pct must be > 0")
    loc = mirroring["location_scores"]
    if not (loc["city"] >= loc["region"] >= loc["country"] >= loc["mismatch"]):
        errors.append("mirroring.location_scores must be ordered city >= region >= country >= mismatch")

    # --- Barter ---
    barter = policy["barter"]
    if not (0 < barter["default_tolerance"] < 1):
        errors.append(f"barter.default_tolerance must be in (0, 1), got {barter['default_tolerance']}")
    check_weights(barter["service_match_weights"], "barter.service_match_weights", errors)

    check_weights(
        policy["bidirectional_validation"]["weights"], "bidirectional_validation.weights", errors,
    )

    # --- Deal graph ---
    if policy["graph"]["max_nodes"] <= 0:
        errors.append("graph.max_nodes must be > 0")

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"  - {err}")
        return 1

    print("Invariant checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(check())
