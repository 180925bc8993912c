"""Baseline (one-way) match scoring.

    baseline = w_cat * category + w_skills * skills + w_exp * experience + w_loc * location

Each criterion is 0–100. The weighted sum is rounded once, at the end.
Default weights 0.30 / 0.40 / 0.20 / 0.10 (policy: baseline_weights).

Pure computation. Missing inputs score a neutral 50.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from dealflow.matching.mirroring import NEUTRAL_SCORE, SemanticMirror
from dealflow.models.match import MatchCriteria
from dealflow.models.opportunity import Opportunity
from dealflow.models.party import Role, UserAccount
from dealflow.policy.resolver import PolicyResolver


@dataclass(frozen=True)
class BaselineScore:
    score: int
    criteria: MatchCriteria
    meets_threshold: bool


class BaselineScorer:
    """Computes the one-way baseline score for a Need/Offer/provider triple.

    Usage:
        scorer = BaselineScorer(resolver)
        baseline = scorer.score(need, offer, provider)
    """

    def __init__(
        self,
        resolver: Optional[PolicyResolver] = None,
        mirror: Optional[SemanticMirror] = None,
    ) -> None:
        self._resolver = resolver or PolicyResolver()
        self._mirror = mirror or SemanticMirror(self._resolver)

    def category_match(self, need: Opportunity, offer: Opportunity) -> float:
        """100 on direct or mapped category match, 0 otherwise."""
        if not need.category or not offer.category:
            return NEUTRAL_SCORE
        need_cat = need.category.lower()
        offer_cat = offer.category.lower()
        if need_cat == offer_cat:
            return 100
        mapping = {k.lower(): v for k, v in self._resolver.category_skills().items()}
        if offer_cat in (c.lower() for c in mapping.get(need_cat, [])):
            return 100
        return 0

    def experience_match(
        self, need: Opportunity, provider: Optional[UserAccount],
    ) -> float:
        """Average of level fit and years fit."""
        if provider is None:
            return NEUTRAL_SCORE

        levels = self._resolver.experience_levels()
        default_level = levels.get("intermediate", 2)
        required_level = levels.get(
            (need.attributes.experience_level or "intermediate").lower(), default_level,
        )
        provider_level = levels.get(
            (provider.experience_level or "intermediate").lower(), default_level,
        )
        if provider_level >= required_level:
            level_score = 100.0
        else:
            penalty = self._resolver.experience_level_step_penalty()
            level_score = max(0.0, 100.0 - (required_level - provider_level) * penalty)

        required_years = need.attributes.minimum_experience_years or 0
        provider_years = provider.years_in_business
        if provider_years is None:
            provider_years = 5 if provider.role == Role.INDIVIDUAL else 0
        if provider_years >= required_years:
            years_score = 100.0
        else:
            years_score = max(0.0, provider_years / required_years * 100)

        return (level_score + years_score) / 2

    def score(
        self,
        need: Opportunity,
        offer: Opportunity,
        provider: Optional[UserAccount] = None,
    ) -> BaselineScore:
        criteria = MatchCriteria(
            category_match=self.category_match(need, offer),
            skills_match=self._mirror.mirror_skills(need, offer).score,
            experience_match=self.experience_match(need, provider),
            location_match=self._mirror.mirror_location(need, offer).score,
        )
        w = self._resolver.baseline_weights()
        total = round(
            criteria.category_match * w.category
            + criteria.skills_match * w.skills
            + criteria.experience_match * w.experience
            + criteria.location_match * w.location
        )
        return BaselineScore(
            score=total,
            criteria=criteria,
            meets_threshold=total >= self._resolver.match_threshold(),
        )
