"""Matching router — scores a (Need, Offer, provider) triple by topology.

Every route starts from the one-way baseline, then adjusts:

    ONE_WAY             final = baseline
    TWO_WAY_DEPENDENCY  final = round(baseline * 0.7 + bidirectional * 0.3)
                        bidirectional = 80 if Offer→Need mirror is compatible
                        else 40, raised to a compatible barter sub-score
    GROUP_FORMATION     final = round(baseline * 0.8 + complementarity * 0.2)
                        when the Offer belongs to a linked group of >= 2
    CIRCULAR_EXCHANGE   final = min(100, round(baseline * 1.1))
                        when >= 3 links and the cycle is verified

The baseline criteria are carried unchanged into every result.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Mapping, Optional, Sequence

from dealflow.matching.barter import BarterMatcher
from dealflow.matching.classifier import MatchingModelClassifier
from dealflow.matching.mirroring import SemanticMirror, skills_overlap
from dealflow.matching.scoring import BaselineScorer
from dealflow.models.match import MatchResult
from dealflow.models.opportunity import MatchingModel, Opportunity
from dealflow.models.party import UserAccount
from dealflow.persistence.store import EntityStore, EntityType
from dealflow.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


class MatchingRouter:
    """Routes a match to the scoring rules of the Need's topology.

    Usage:
        router = MatchingRouter(store, classifier, resolver)
        result = router.route(need, offer, provider)
    """

    def __init__(
        self,
        store: EntityStore,
        classifier: Optional[MatchingModelClassifier] = None,
        resolver: Optional[PolicyResolver] = None,
    ) -> None:
        self._resolver = resolver or PolicyResolver()
        self._store = store
        self._classifier = classifier or MatchingModelClassifier(store, self._resolver)
        self._mirror = SemanticMirror(self._resolver)
        self._baseline = BaselineScorer(self._resolver, self._mirror)
        self._barter = BarterMatcher(self._resolver)
        self._threshold = self._resolver.match_threshold()

    def route(
        self,
        need: Opportunity,
        offer: Opportunity,
        provider: Optional[UserAccount] = None,
    ) -> MatchResult:
        model = need.matching_model or self._classifier.classify(need)
        base = self.match_one_way(need, offer, provider)

        if model == MatchingModel.ONE_WAY:
            return base
        if model == MatchingModel.TWO_WAY_DEPENDENCY:
            return self._two_way(need, offer, base)
        if model == MatchingModel.GROUP_FORMATION:
            return self._group_formation(need, offer, base)
        if model == MatchingModel.CIRCULAR_EXCHANGE:
            return self._circular_exchange(need, base)
        raise ValueError(f"Unhandled matching model: {model!r}")

    def rank(
        self,
        need: Opportunity,
        offers: Sequence[Opportunity],
        providers: Optional[Mapping[str, UserAccount]] = None,
    ) -> list[MatchResult]:
        """Score every offer and sort best first (ties by offer id)."""
        providers = providers or {}
        results = [
            self.route(need, offer, providers.get(offer.owner_id)) for offer in offers
        ]
        results.sort(key=lambda r: (-r.final_score, r.offer_id))
        return results

    def match_one_way(
        self,
        need: Opportunity,
        offer: Opportunity,
        provider: Optional[UserAccount] = None,
    ) -> MatchResult:
        baseline = self._baseline.score(need, offer, provider)
        return MatchResult(
            need_id=need.opportunity_id,
            offer_id=offer.opportunity_id,
            final_score=baseline.score,
            criteria=baseline.criteria,
            matching_model=MatchingModel.ONE_WAY,
            meets_threshold=baseline.meets_threshold,
            baseline_score=baseline.score,
        )

    def _rescore(self, base: MatchResult, final: int, **fields) -> MatchResult:
        return dataclasses.replace(
            base,
            final_score=final,
            meets_threshold=final >= self._threshold,
            **fields,
        )

    def _two_way(self, need: Opportunity, offer: Opportunity, base: MatchResult) -> MatchResult:
        cfg = self._resolver.two_way_config()
        reverse = self._mirror.apply_all(offer, need)
        bidirectional = cfg["compatible_score"] if reverse.overall_compatible else cfg["incompatible_score"]

        barter = self._barter.match(need, offer)
        if barter is not None and barter.compatible:
            bidirectional = max(bidirectional, barter.score)

        final = round(
            base.baseline_score * cfg["baseline_weight"]
            + bidirectional * cfg["bidirectional_weight"]
        )
        return self._rescore(
            base,
            final,
            matching_model=MatchingModel.TWO_WAY_DEPENDENCY,
            bidirectional_score=bidirectional,
            bidirectional_compatible=bidirectional >= cfg["compatible_cutoff"],
            details={
                "reverse_mirror": reverse.to_dict(),
                "barter_score": barter.score if barter is not None else None,
            },
        )

    def _group_formation(
        self, need: Opportunity, offer: Opportunity, base: MatchResult,
    ) -> MatchResult:
        cfg = self._resolver.group_formation_config()
        linked = list(need.linked_offers)
        in_group = offer.opportunity_id in linked

        if not (in_group and len(linked) >= cfg["minimum_members"]):
            return self._rescore(
                base,
                base.baseline_score,
                matching_model=MatchingModel.GROUP_FORMATION,
                is_part_of_group=in_group,
                group_size=len(linked),
            )

        complementarity = self.group_complementarity(need, offer)
        final = round(
            base.baseline_score * cfg["baseline_weight"]
            + complementarity * cfg["complementarity_weight"]
        )
        return self._rescore(
            base,
            final,
            matching_model=MatchingModel.GROUP_FORMATION,
            is_part_of_group=True,
            group_size=len(linked),
            complementarity_score=complementarity,
        )

    def group_complementarity(self, need: Opportunity, offer: Opportunity) -> int:
        """Share of the Need's required skills covered by the whole group.

        Other members are read fresh from the store. With no readable
        other member the score is a neutral 50.
        """
        others = []
        for oid in need.linked_offers:
            if oid == offer.opportunity_id:
                continue
            other = self._store.get(EntityType.OPPORTUNITY, oid)
            if other is not None:
                others.append(other)
        if not others:
            return 50

        required = list(dict.fromkeys(s for s in need.attributes.required_skills if s.strip()))
        if not required:
            return 100

        group_skills: list[str] = []
        for member in [offer, *others]:
            group_skills.extend(
                member.attributes.available_skills or member.attributes.required_skills
            )
        covered = [r for r in required if any(skills_overlap(r, s) for s in group_skills)]
        return min(100, round(len(covered) / len(required) * 100))

    def _circular_exchange(self, need: Opportunity, base: MatchResult) -> MatchResult:
        cfg = self._resolver.circular_exchange_config()
        links = len(need.linked_offers)
        verified = links >= cfg["minimum_links"] and self._classifier.has_circular_dependencies(need)

        final = base.baseline_score
        if verified:
            final = min(100, round(base.baseline_score * cfg["boost_factor"]))
        else:
            logger.debug(
                "Circular boost not applied to %s (links=%d)", need.opportunity_id, links,
            )
        return self._rescore(
            base,
            final,
            matching_model=MatchingModel.CIRCULAR_EXCHANGE,
            is_circular=verified,
            chain_length=links + 1,
        )
