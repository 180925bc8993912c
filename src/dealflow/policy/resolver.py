"""Policy resolver — typed access to the matching policy JSON.

Every tunable number the engines use (weights, thresholds, tolerances,
graph limits) lives in ``config/matching_policy.json``. Engines never
read the file directly; they ask the resolver. Every accessor has a
hard-coded fallback so a partial config still yields a working engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

POLICY_FILENAME = "matching_policy.json"


@dataclass(frozen=True)
class BaselineWeights:
    """Weights of the four baseline match criteria (sum to 1.0)."""
    category: float
    skills: float
    experience: float
    location: float


class PolicyResolver:
    """Resolves matching policy values from a loaded config dict.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        weights = resolver.baseline_weights()
    """

    def __init__(self, policy: Optional[dict[str, Any]] = None) -> None:
        self._policy: dict[str, Any] = policy or {}

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load the policy file from a config directory.

        A missing file yields a resolver that serves defaults only.
        A malformed file raises ValueError.
        """
        path = Path(config_dir) / POLICY_FILENAME
        if not path.exists():
            return cls({})
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as e:
                raise ValueError(f"Malformed policy file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Policy file {path} must contain a JSON object")
        return cls(data)

    @property
    def raw(self) -> dict[str, Any]:
        return dict(self._policy)

    def _section(self, name: str) -> dict[str, Any]:
        section = self._policy.get(name, {})
        return section if isinstance(section, dict) else {}

    # ------------------------------------------------------------------
    # Baseline scoring
    # ------------------------------------------------------------------

    def baseline_weights(self) -> BaselineWeights:
        w = self._section("baseline_weights")
        return BaselineWeights(
            category=float(w.get("category", 0.30)),
            skills=float(w.get("skills", 0.40)),
            experience=float(w.get("experience", 0.20)),
            location=float(w.get("location", 0.10)),
        )

    def match_threshold(self) -> int:
        return int(self._policy.get("match_threshold", 80))

    def category_skills(self) -> dict[str, list[str]]:
        mapping = self._policy.get("category_skills")
        if isinstance(mapping, dict) and mapping:
            return {k: list(v) for k, v in mapping.items()}
        return {
            "Infrastructure": ["engineering", "design", "logistics", "safety"],
            "Residential": ["design", "engineering", "legal", "financial"],
            "Commercial": ["design", "engineering", "legal", "financial"],
            "Industrial": ["engineering", "logistics", "safety", "environmental"],
        }

    def experience_levels(self) -> dict[str, int]:
        levels = self._policy.get("experience_levels")
        if isinstance(levels, dict) and levels:
            return {k.lower(): int(v) for k, v in levels.items()}
        return {"junior": 1, "intermediate": 2, "senior": 3, "expert": 4}

    def experience_level_step_penalty(self) -> int:
        return int(self._policy.get("experience_level_step_penalty", 30))

    # ------------------------------------------------------------------
    # Topology adjustments
    # ------------------------------------------------------------------

    def two_way_config(self) -> dict[str, Any]:
        c = self._section("two_way")
        return {
            "baseline_weight": float(c.get("baseline_weight", 0.70)),
            "bidirectional_weight": float(c.get("bidirectional_weight", 0.30)),
            "compatible_score": int(c.get("compatible_score", 80)),
            "incompatible_score": int(c.get("incompatible_score", 40)),
            "compatible_cutoff": int(c.get("compatible_cutoff", 50)),
        }

    def group_formation_config(self) -> dict[str, Any]:
        c = self._section("group_formation")
        return {
            "baseline_weight": float(c.get("baseline_weight", 0.80)),
            "complementarity_weight": float(c.get("complementarity_weight", 0.20)),
            "minimum_members": int(c.get("minimum_members", 2)),
        }

    def circular_exchange_config(self) -> dict[str, Any]:
        c = self._section("circular_exchange")
        return {
            "boost_factor": float(c.get("boost_factor", 1.10)),
            "minimum_links": int(c.get("minimum_links", 3)),
        }

    # ------------------------------------------------------------------
    # Mirroring
    # ------------------------------------------------------------------

    def mirroring_config(self) -> dict[str, Any]:
        c = self._section("mirroring")
        loc = c.get("location_scores", {}) or {}
        return {
            "skills_compatible_cutoff": int(c.get("skills_compatible_cutoff", 50)),
            "budget_point_overlap_score": int(c.get("budget_point_overlap_score", 80)),
            "budget_proximity_cutoff_pct": float(c.get("budget_proximity_cutoff_pct", 20)),
            "timeline_slack_days": int(c.get("timeline_slack_days", 30)),
            "remote_floor": int(c.get("remote_floor", 60)),
            "location_scores": {
                "city": int(loc.get("city", 100)),
                "region": int(loc.get("region", 80)),
                "country": int(loc.get("country", 50)),
                "mismatch": int(loc.get("mismatch", 0)),
            },
        }

    # ------------------------------------------------------------------
    # Barter
    # ------------------------------------------------------------------

    def barter_tolerance(self) -> float:
        return float(self._section("barter").get("default_tolerance", 0.05))

    def barter_config(self) -> dict[str, Any]:
        c = self._section("barter")
        w = c.get("service_match_weights", {}) or {}
        return {
            "need_side": float(w.get("need_side", 0.40)),
            "offer_side": float(w.get("offer_side", 0.40)),
            "equivalence": float(w.get("equivalence", 0.20)),
            "equal_value_bonus": int(c.get("equal_value_bonus", 10)),
            "large_difference_penalty": int(c.get("large_difference_penalty", 15)),
            "large_difference_pct": float(c.get("large_difference_pct", 50)),
            "compatible_cutoff": int(c.get("compatible_cutoff", 50)),
        }

    def bidirectional_validation_config(self) -> dict[str, Any]:
        c = self._section("bidirectional_validation")
        w = c.get("weights", {}) or {}
        return {
            "weights": {
                "forward_skills": float(w.get("forward_skills", 0.30)),
                "forward_budget": float(w.get("forward_budget", 0.20)),
                "forward_timeline": float(w.get("forward_timeline", 0.20)),
                "forward_location": float(w.get("forward_location", 0.10)),
                "reverse_skills": float(w.get("reverse_skills", 0.10)),
                "reverse_budget": float(w.get("reverse_budget", 0.10)),
            },
            "valid_cutoff": int(c.get("valid_cutoff", 50)),
        }

    # ------------------------------------------------------------------
    # Deal graph
    # ------------------------------------------------------------------

    def graph_max_nodes(self) -> int:
        return int(self._section("graph").get("max_nodes", 1000))
