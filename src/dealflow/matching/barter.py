"""Barter sub-score — service-for-service fit between a Need and an Offer.

    score = w_need * need_side + w_offer * offer_side + w_eq * equivalence
            (normalised over the factors that could be computed)

need_side   what the Need provides vs what the Offer requests
offer_side  what the Offer provides vs what the Need requests
equivalence 100 - percentage difference of the Need→Offer bundle values

Equal bundles earn a bonus; a difference above 50% costs a penalty.
Only defined for BARTER / HYBRID needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from dealflow.matching.classifier import BARTER_MODES
from dealflow.models.opportunity import Opportunity, ServiceItem
from dealflow.policy.resolver import PolicyResolver
from dealflow.settlement.equivalence import calculate_equivalence


@dataclass(frozen=True)
class BarterMatch:
    compatible: bool
    score: int
    details: dict[str, Any] = field(default_factory=dict)


def service_match_score(
    provided: Sequence[ServiceItem],
    wanted: Sequence[ServiceItem],
) -> Optional[float]:
    """Share of ``wanted`` services that something in ``provided`` covers.

    None when nothing is wanted (factor not applicable).
    """
    if not wanted:
        return None
    if not provided:
        return 0.0
    names = [(p.service_name or p.description).lower() for p in provided]
    covered = 0
    for w in wanted:
        wanted_name = (w.service_name or w.description).lower()
        if any(wanted_name in n or n in wanted_name for n in names if n):
            covered += 1
    return covered / len(wanted) * 100


class BarterMatcher:
    """Scores the barter fit of a Need/Offer pair.

    Usage:
        matcher = BarterMatcher(resolver)
        result = matcher.match(need, offer)   # None for cash needs
    """

    def __init__(self, resolver: Optional[PolicyResolver] = None) -> None:
        resolver = resolver or PolicyResolver()
        self._config = resolver.barter_config()
        self._tolerance = resolver.barter_tolerance()

    def match(self, need: Opportunity, offer: Opportunity) -> Optional[BarterMatch]:
        if need.payment_mode not in BARTER_MODES:
            return None

        cfg = self._config
        factors: list[tuple[float, float]] = []
        details: dict[str, Any] = {}

        need_side = service_match_score(need.service_items, offer.requested_items)
        if need_side is not None:
            factors.append((need_side, cfg["need_side"]))
            details["need_side"] = round(need_side)

        offer_side = service_match_score(offer.service_items, need.requested_items)
        if offer_side is not None:
            factors.append((offer_side, cfg["offer_side"]))
            details["offer_side"] = round(offer_side)

        equivalence = None
        if need.service_items and offer.requested_items:
            equivalence = calculate_equivalence(
                need.service_items, offer.requested_items, self._tolerance,
            )
            if not equivalence.currency_mismatch:
                eq_score = max(0.0, 100.0 - float(equivalence.percentage_difference))
                factors.append((eq_score, cfg["equivalence"]))
            details["equivalence"] = equivalence.to_dict()

        weight_sum = sum(w for _, w in factors)
        score = sum(s * w for s, w in factors) / weight_sum if weight_sum > 0 else 0.0

        if equivalence is not None and not equivalence.currency_mismatch:
            if equivalence.is_equal:
                score = min(100.0, score + cfg["equal_value_bonus"])
            elif equivalence.percentage_difference > cfg["large_difference_pct"]:
                score = max(0.0, score - cfg["large_difference_penalty"])

        return BarterMatch(
            compatible=score >= cfg["compatible_cutoff"],
            score=round(score),
            details=details,
        )
