"""Offer register — the barter-side view of the marketplace.

Lists open offers, and validates a Need/Offer barter pair in both
directions:

    score = 0.3 fwd.skills + 0.2 fwd.budget + 0.2 fwd.timeline
          + 0.1 fwd.location + 0.1 rev.skills + 0.1 rev.budget

valid when score >= 50. The value balance of each direction is
reported alongside.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from dealflow.matching.classifier import BARTER_MODES
from dealflow.matching.mirroring import SemanticMirror
from dealflow.models.opportunity import (
    IntentType,
    Opportunity,
    OpportunityStatus,
    PaymentMode,
)
from dealflow.persistence.store import EntityStore, EntityType
from dealflow.policy.resolver import PolicyResolver
from dealflow.settlement.equivalence import BidirectionalEquivalence, bidirectional_equivalence


@dataclass(frozen=True)
class BidirectionalMatch:
    valid: bool
    score: int
    overall_compatible: bool = False
    equivalence: Optional[BidirectionalEquivalence] = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegisteredOffer:
    offer: Opportunity
    match: BidirectionalMatch


class OfferRegister:
    """Queries and validates offers for barter needs.

    Usage:
        register = OfferRegister(store, resolver)
        for entry in register.compatible_offers("OPP-need"):
            print(entry.offer.opportunity_id, entry.match.score)
    """

    def __init__(self, store: EntityStore, resolver: Optional[PolicyResolver] = None) -> None:
        resolver = resolver or PolicyResolver()
        self._store = store
        self._mirror = SemanticMirror(resolver)
        self._tolerance = resolver.barter_tolerance()
        self._config = resolver.bidirectional_validation_config()

    def available_offers(
        self,
        payment_mode: Optional[PaymentMode] = None,
        status: Optional[OpportunityStatus] = None,
    ) -> list[Opportunity]:
        """OFFER_SERVICE opportunities, ACTIVE unless ``status`` says otherwise."""
        wanted_status = status or OpportunityStatus.ACTIVE
        return [
            opp
            for opp in self._store.get_all(EntityType.OPPORTUNITY)
            if opp.intent_type == IntentType.OFFER_SERVICE
            and opp.status == wanted_status
            and (payment_mode is None or opp.payment_mode == payment_mode)
        ]

    def validate_bidirectional_match(
        self, need: Opportunity, offer: Opportunity,
    ) -> BidirectionalMatch:
        if need.payment_mode not in BARTER_MODES:
            return BidirectionalMatch(
                valid=False, score=0,
                details={"error": "Need must have Barter or Hybrid payment mode"},
            )
        if offer.payment_mode not in BARTER_MODES:
            return BidirectionalMatch(
                valid=False, score=0,
                details={"error": "Offer must have Barter or Hybrid payment mode"},
            )

        forward = self._mirror.apply_all(need, offer)
        reverse = self._mirror.apply_all(offer, need)
        w = self._config["weights"]
        score = round(
            forward.skills.score * w["forward_skills"]
            + forward.budget.score * w["forward_budget"]
            + forward.timeline.score * w["forward_timeline"]
            + forward.location.score * w["forward_location"]
            + reverse.skills.score * w["reverse_skills"]
            + reverse.budget.score * w["reverse_budget"]
        )
        return BidirectionalMatch(
            valid=score >= self._config["valid_cutoff"],
            score=score,
            overall_compatible=forward.overall_compatible and reverse.overall_compatible,
            equivalence=bidirectional_equivalence(need, offer, self._tolerance),
            details={"forward": forward.to_dict(), "reverse": reverse.to_dict()},
        )

    def compatible_offers(self, need_id: str) -> list[RegisteredOffer]:
        """Valid barter offers for a Need, best score first."""
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        if need is None:
            return []
        entries = []
        for offer in self.available_offers(payment_mode=PaymentMode.BARTER):
            match = self.validate_bidirectional_match(need, offer)
            if match.valid:
                entries.append(RegisteredOffer(offer=offer, match=match))
        entries.sort(key=lambda e: (-e.match.score, e.offer.opportunity_id))
        return entries
