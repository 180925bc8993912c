"""Tests for barter value equivalence, settlement rules and the barter sub-score."""

from decimal import Decimal

import pytest

from dealflow.matching.barter import BarterMatcher, service_match_score
from dealflow.models.opportunity import IntentType, Opportunity, PaymentMode, ServiceItem
from dealflow.settlement.equivalence import (
    bidirectional_equivalence,
    calculate_equivalence,
    validate_service_item,
    validate_service_items,
)
from dealflow.settlement.rules import (
    BarterTerms,
    CashDirection,
    SettlementRule,
    apply_settlement_rule,
    generate_barter_agreement,
    requires_consent,
    validate_barter_terms,
)


def _item(name: str, value, currency: str = "SAR") -> ServiceItem:
    return ServiceItem.create(name, 1, value, currency=currency)


def _make_opp(opp_id: str, intent: IntentType, mode=PaymentMode.BARTER, provides=(), wants=()):
    return Opportunity(
        opportunity_id=opp_id,
        title=opp_id,
        owner_id=f"U-{opp_id}",
        intent_type=intent,
        payment_mode=mode,
        service_items=list(provides),
        requested_items=list(wants),
    )


class TestServiceItems:
    def test_create_computes_total(self) -> None:
        item = ServiceItem.create("design", "2.5", "400")
        assert item.total_reference_value == Decimal("1000.0")

    def test_valid_item(self) -> None:
        assert validate_service_item(_item("design", 100)) == []

    def test_non_positive_quantity(self) -> None:
        item = ServiceItem.create("design", 0, 100)
        assert "Quantity must be a positive number" in validate_service_item(item)

    def test_total_mismatch(self) -> None:
        item = ServiceItem("design", Decimal("2"), Decimal("100"), Decimal("150"))
        errors = validate_service_item(item)
        assert len(errors) == 1
        assert "does not match" in errors[0]

    def test_bundle_errors_are_numbered(self) -> None:
        result = validate_service_items([_item("design", 100), ServiceItem.create("", 1, 1)])
        assert not result.valid
        assert result.errors == ["Item 2: Service name is required"]


class TestEquivalence:
    def test_just_outside_tolerance(self) -> None:
        eq = calculate_equivalence([_item("a", 1000)], [_item("b", 950)])
        assert eq.balance == Decimal("50")
        assert eq.within_tolerance is False
        assert eq.percentage_difference > 5

    def test_just_inside_tolerance(self) -> None:
        eq = calculate_equivalence([_item("a", 1000)], [_item("b", 952)])
        assert eq.within_tolerance is True
        assert eq.is_equal is False

    def test_custom_tolerance(self) -> None:
        eq = calculate_equivalence([_item("a", 1000)], [_item("b", 950)], tolerance=0.10)
        assert eq.within_tolerance is True

    def test_equal_bundles(self) -> None:
        eq = calculate_equivalence([_item("a", 500), _item("b", 500)], [_item("c", 1000)])
        assert eq.is_equal is True
        assert eq.requires_cash_settlement is False
        assert eq.cash_component == 0

    def test_swapping_sides_negates_balance(self) -> None:
        forward = calculate_equivalence([_item("a", 1000)], [_item("b", 900)])
        backward = calculate_equivalence([_item("b", 900)], [_item("a", 1000)])
        assert backward.balance == -forward.balance
        assert backward.within_tolerance == forward.within_tolerance

    def test_empty_bundles_are_equal(self) -> None:
        eq = calculate_equivalence([], [])
        assert eq.is_equal is True
        assert eq.percentage_difference == 0

    def test_currency_mismatch_never_within_tolerance(self) -> None:
        eq = calculate_equivalence([_item("a", 1000, "SAR")], [_item("b", 1000, "USD")])
        assert eq.currency_mismatch is True
        assert eq.within_tolerance is False
        assert eq.is_equal is False
        assert eq.currency is None
        assert eq.offered_by_currency == {"SAR": Decimal("1000")}

    def test_bidirectional(self) -> None:
        need = _make_opp("N", IntentType.REQUEST_SERVICE,
                         provides=[_item("a", 1000)], wants=[_item("b", 500)])
        offer = _make_opp("O", IntentType.OFFER_SERVICE,
                          provides=[_item("b", 500)], wants=[_item("a", 1000)])
        both = bidirectional_equivalence(need, offer)
        assert both.need_to_offer.is_equal
        assert both.offer_to_need.is_equal
        assert both.both_within_tolerance


class TestSettlementRules:
    def _imbalanced(self):
        return calculate_equivalence([_item("a", 1100)], [_item("b", 1000)])

    def test_equal_value_only_rejects_difference(self) -> None:
        outcome = apply_settlement_rule(self._imbalanced(), SettlementRule.EQUAL_VALUE_ONLY)
        assert not outcome.valid
        assert "Values must match exactly. Difference: 100 SAR" in outcome.errors[0]

    def test_equal_bundles_settle_under_any_rule(self) -> None:
        eq = calculate_equivalence([_item("a", 100)], [_item("b", 100)])
        for rule in SettlementRule:
            assert apply_settlement_rule(eq, rule).valid

    def test_cash_implied_by_imbalance(self) -> None:
        outcome = apply_settlement_rule(
            self._imbalanced(), SettlementRule.ALLOW_DIFFERENCE_WITH_CASH,
        )
        assert outcome.valid
        assert outcome.cash_component == Decimal("100")
        assert outcome.cash_direction == CashDirection.REQUESTER_PAYS
        assert outcome.requires_consent

    def test_cash_must_match_difference(self) -> None:
        outcome = apply_settlement_rule(
            self._imbalanced(), SettlementRule.ALLOW_DIFFERENCE_WITH_CASH,
            cash_component=Decimal("60"),
        )
        assert not outcome.valid
        assert "does not match value difference" in outcome.errors[0]

    def test_matching_cash_accepted(self) -> None:
        outcome = apply_settlement_rule(
            self._imbalanced(), SettlementRule.ALLOW_DIFFERENCE_WITH_CASH,
            cash_component=Decimal("-100"),
        )
        assert outcome.valid
        assert outcome.cash_component == Decimal("100")

    def test_offerer_pays_when_requested_exceeds(self) -> None:
        eq = calculate_equivalence([_item("a", 900)], [_item("b", 1000)])
        outcome = apply_settlement_rule(eq, SettlementRule.ALLOW_DIFFERENCE_WITH_CASH)
        assert outcome.cash_direction == CashDirection.OFFERER_PAYS

    def test_accept_as_is_needs_waiver(self) -> None:
        without = apply_settlement_rule(self._imbalanced(), SettlementRule.ACCEPT_AS_IS)
        with_waiver = apply_settlement_rule(
            self._imbalanced(), SettlementRule.ACCEPT_AS_IS, explicit_waiver=True,
        )
        assert not without.valid
        assert with_waiver.valid
        assert with_waiver.explicit_waiver

    def test_mixed_currencies_cannot_settle(self) -> None:
        eq = calculate_equivalence([_item("a", 100, "SAR")], [_item("b", 100, "USD")])
        outcome = apply_settlement_rule(eq, SettlementRule.ACCEPT_AS_IS, explicit_waiver=True)
        assert not outcome.valid
        assert "SAR, USD" in outcome.errors[0]


class TestBarterTerms:
    def test_missing_parts(self) -> None:
        result = validate_barter_terms(BarterTerms())
        assert result.errors == [
            "Services offered are required",
            "Services requested are required",
            "Barter settlement rule is required",
        ]

    def test_valid_terms(self) -> None:
        terms = BarterTerms(
            services_offered=(_item("a", 1100),),
            services_requested=(_item("b", 1000),),
            settlement_rule=SettlementRule.ALLOW_DIFFERENCE_WITH_CASH,
            cash_component=Decimal("100"),
        )
        result = validate_barter_terms(terms)
        assert result.valid
        assert result.settlement.cash_direction == CashDirection.REQUESTER_PAYS
        assert requires_consent(terms)

    def test_equal_terms_need_no_consent(self) -> None:
        terms = BarterTerms(
            services_offered=(_item("a", 100),),
            services_requested=(_item("b", 100),),
            settlement_rule=SettlementRule.ACCEPT_AS_IS,
        )
        assert not requires_consent(terms)

    def test_dict_defaults(self) -> None:
        terms = BarterTerms.from_dict({
            "services_offered": [_item("a", 10).to_dict()],
            "settlement_rule": "EQUAL_VALUE_ONLY",
        })
        assert terms.settlement_rule == SettlementRule.EQUAL_VALUE_ONLY
        assert terms.services_offered[0].total_reference_value == Decimal("10")
        assert terms.exchange_schedule == "Concurrent"

    def test_agreement_records_cash(self) -> None:
        terms = BarterTerms(
            services_offered=(_item("a", 1100),),
            services_requested=(_item("b", 1000),),
            settlement_rule=SettlementRule.ALLOW_DIFFERENCE_WITH_CASH,
            cash_component=Decimal("100"),
        )
        eq = calculate_equivalence(terms.services_offered, terms.services_requested)
        agreement = generate_barter_agreement(terms, eq)
        assert agreement["type"] == "BARTER"
        assert agreement["settlement"]["cash_component"] == "100"
        assert agreement["settlement"]["cash_direction"] == "REQUESTER_PAYS"

    def test_agreement_records_waiver(self) -> None:
        terms = BarterTerms(
            services_offered=(_item("a", 1100),),
            services_requested=(_item("b", 1000),),
            settlement_rule=SettlementRule.ACCEPT_AS_IS,
            explicit_waiver=True,
        )
        eq = calculate_equivalence(terms.services_offered, terms.services_requested)
        agreement = generate_barter_agreement(terms, eq)
        assert agreement["settlement"]["waived_amount"] == "100"
        assert agreement["settlement"]["requires_consent"] is True

    def test_equal_exchange_needs_no_consent(self) -> None:
        terms = BarterTerms(
            services_offered=(_item("a", 1000),),
            services_requested=(_item("b", 1000),),
            settlement_rule=SettlementRule.EQUAL_VALUE_ONLY,
        )
        eq = calculate_equivalence(terms.services_offered, terms.services_requested)
        agreement = generate_barter_agreement(terms, eq)
        assert agreement["settlement"]["requires_consent"] is False


class TestBarterMatcher:
    def test_cash_need_has_no_barter_score(self) -> None:
        need = _make_opp("N", IntentType.REQUEST_SERVICE, mode=PaymentMode.CASH)
        offer = _make_opp("O", IntentType.OFFER_SERVICE)
        assert BarterMatcher().match(need, offer) is None

    def test_service_match_score(self) -> None:
        provided = [_item("Structural design", 1)]
        wanted = [_item("design", 1), _item("legal", 1)]
        assert service_match_score(provided, wanted) == 50
        assert service_match_score(provided, []) is None
        assert service_match_score([], wanted) == 0

    def test_equal_value_bonus(self) -> None:
        need = _make_opp("N", IntentType.REQUEST_SERVICE,
                         provides=[_item("design", 1000)], wants=[_item("legal", 1000)])
        offer = _make_opp("O", IntentType.OFFER_SERVICE,
                          provides=[_item("legal", 1000)], wants=[_item("design", 1000)])
        result = BarterMatcher().match(need, offer)
        assert result.compatible
        assert result.score == 100

    def test_large_difference_penalty(self) -> None:
        need = _make_opp("N", IntentType.REQUEST_SERVICE, provides=[_item("design", 1000)])
        offer = _make_opp("O", IntentType.OFFER_SERVICE, wants=[_item("design", 300)])
        result = BarterMatcher().match(need, offer)
        assert result.score == 52

    def test_nothing_to_compare(self) -> None:
        need = _make_opp("N", IntentType.REQUEST_SERVICE)
        offer = _make_opp("O", IntentType.OFFER_SERVICE)
        result = BarterMatcher().match(need, offer)
        assert result.score == 0
        assert not result.compatible
