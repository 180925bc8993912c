"""Tests for baseline scoring — criteria and the weighted sum."""

import pytest
from pathlib import Path

from dealflow.matching.scoring import BaselineScorer
from dealflow.models.opportunity import (
    IntentType,
    Location,
    Opportunity,
    OpportunityAttributes,
)
from dealflow.models.party import Role, UserAccount
from dealflow.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def scorer(resolver: PolicyResolver) -> BaselineScorer:
    return BaselineScorer(resolver)


def _make_need(category=None, **attrs) -> Opportunity:
    return Opportunity(
        opportunity_id="OPP-need",
        title="Need",
        owner_id="U-buyer",
        intent_type=IntentType.REQUEST_SERVICE,
        category=category,
        attributes=OpportunityAttributes(**attrs),
    )


def _make_offer(category=None, **attrs) -> Opportunity:
    return Opportunity(
        opportunity_id="OPP-offer",
        title="Offer",
        owner_id="U-seller",
        intent_type=IntentType.OFFER_SERVICE,
        category=category,
        attributes=OpportunityAttributes(**attrs),
    )


def _provider(level=None, years=None, role: Role = Role.VENDOR) -> UserAccount:
    return UserAccount("U-seller", role, experience_level=level, years_in_business=years)


class TestCategory:
    def test_direct_match(self, scorer: BaselineScorer) -> None:
        assert scorer.category_match(_make_need("Infrastructure"), _make_offer("infrastructure")) == 100

    def test_mapped_match(self, scorer: BaselineScorer) -> None:
        assert scorer.category_match(_make_need("Infrastructure"), _make_offer("Logistics")) == 100

    def test_mismatch(self, scorer: BaselineScorer) -> None:
        assert scorer.category_match(_make_need("Industrial"), _make_offer("legal")) == 0

    def test_missing_is_neutral(self, scorer: BaselineScorer) -> None:
        assert scorer.category_match(_make_need(), _make_offer("design")) == 50


class TestExperience:
    def test_no_provider_is_neutral(self, scorer: BaselineScorer) -> None:
        assert scorer.experience_match(_make_need(), None) == 50

    def test_exceeds_requirements(self, scorer: BaselineScorer) -> None:
        need = _make_need(experience_level="senior", minimum_experience_years=5)
        assert scorer.experience_match(need, _provider("expert", 10)) == 100

    def test_level_gap_penalised(self, scorer: BaselineScorer) -> None:
        need = _make_need(experience_level="senior")
        assert scorer.experience_match(need, _provider("junior")) == 70

    def test_individual_assumed_five_years(self, scorer: BaselineScorer) -> None:
        need = _make_need(minimum_experience_years=10)
        provider = _provider(role=Role.INDIVIDUAL)
        assert scorer.experience_match(need, provider) == 75


class TestBaselineScore:
    def test_bare_postings(self, scorer: BaselineScorer) -> None:
        baseline = scorer.score(_make_need(), _make_offer())
        assert baseline.score == 70
        assert baseline.meets_threshold is False
        assert baseline.criteria.skills_match == 100

    def test_perfect_match_meets_threshold(self, scorer: BaselineScorer) -> None:
        loc = Location(city="Riyadh", country="SA")
        need = _make_need(
            "Commercial", required_skills=["design"], location=loc, experience_level="senior",
        )
        offer = _make_offer("Commercial", available_skills=["design"], location=loc)
        baseline = scorer.score(need, offer, _provider("senior", 8))
        assert baseline.score == 100
        assert baseline.meets_threshold is True

    def test_custom_weights(self) -> None:
        resolver = PolicyResolver({
            "baseline_weights": {"category": 0, "skills": 1, "experience": 0, "location": 0},
        })
        scorer = BaselineScorer(resolver)
        need = _make_need(required_skills=["legal", "tax"])
        offer = _make_offer(available_skills=["tax"])
        assert scorer.score(need, offer).score == 50
