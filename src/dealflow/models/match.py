"""Match results — immutable scores for a (Need, Offer) pair."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from dealflow.models.opportunity import MatchingModel


@dataclass(frozen=True)
class MatchCriteria:
    """Baseline sub-scores, each 0–100 before weighting."""
    category_match: float
    skills_match: float
    experience_match: float
    location_match: float

    def to_dict(self) -> dict[str, float]:
        return {
            "category_match": self.category_match,
            "skills_match": self.skills_match,
            "experience_match": self.experience_match,
            "location_match": self.location_match,
        }


@dataclass(frozen=True)
class MatchResult:
    """Score of one Need against one Offer.

    Never mutated. Topology adjustments produce a new instance via
    dataclasses.replace and always keep the baseline ``criteria``.
    """
    need_id: str
    offer_id: str
    final_score: int
    criteria: MatchCriteria
    matching_model: MatchingModel
    meets_threshold: bool
    baseline_score: int
    # Two-way dependency
    bidirectional_score: Optional[int] = None
    bidirectional_compatible: Optional[bool] = None
    # Group formation
    is_part_of_group: bool = False
    group_size: Optional[int] = None
    complementarity_score: Optional[int] = None
    # Circular exchange
    is_circular: bool = False
    chain_length: Optional[int] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "need_id": self.need_id,
            "offer_id": self.offer_id,
            "final_score": self.final_score,
            "baseline_score": self.baseline_score,
            "criteria": self.criteria.to_dict(),
            "matching_model": self.matching_model.value,
            "meets_threshold": self.meets_threshold,
            "bidirectional_score": self.bidirectional_score,
            "bidirectional_compatible": self.bidirectional_compatible,
            "is_part_of_group": self.is_part_of_group,
            "group_size": self.group_size,
            "complementarity_score": self.complementarity_score,
            "is_circular": self.is_circular,
            "chain_length": self.chain_length,
        }
