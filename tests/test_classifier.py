"""Tests for the matching model classifier and cycle detection."""

import pytest

from dealflow.errors import GraphTooLargeError
from dealflow.matching.classifier import CycleDetector, CycleStatus, MatchingModelClassifier
from dealflow.models.opportunity import (
    CollaborationModel,
    IntentType,
    MatchingModel,
    Opportunity,
    PaymentMode,
)
from dealflow.persistence.store import EntityType, InMemoryEntityStore


def _make_opp(
    opp_id: str,
    intent: IntentType = IntentType.OFFER_SERVICE,
    mode: PaymentMode = PaymentMode.BARTER,
    links: tuple[str, ...] = (),
    collaboration: CollaborationModel = None,
) -> Opportunity:
    return Opportunity(
        opportunity_id=opp_id,
        title=opp_id,
        owner_id=f"owner-{opp_id}",
        intent_type=intent,
        payment_mode=mode,
        linked_offers=list(links),
        collaboration_model=collaboration,
    )


def _make_need(mode: PaymentMode = PaymentMode.BARTER, links=(), collaboration=None) -> Opportunity:
    return _make_opp("N", IntentType.REQUEST_SERVICE, mode, tuple(links), collaboration)


def _store_with(*opps: Opportunity) -> InMemoryEntityStore:
    store = InMemoryEntityStore()
    for opp in opps:
        store.create(EntityType.OPPORTUNITY, opp)
    return store


@pytest.fixture
def store() -> InMemoryEntityStore:
    return _store_with(
        _make_opp("A", links=("B",)),
        _make_opp("B", links=("C",)),
        _make_opp("C", links=("N",)),
        _make_opp("D"),
        _make_opp("E"),
        _make_opp("F"),
    )


class TestCashClassification:
    def test_single_offer_is_one_way(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        assert classifier.classify(_make_need(PaymentMode.CASH)) == MatchingModel.ONE_WAY

    def test_multiple_links_form_group(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(PaymentMode.CASH, links=("D", "E"))
        assert classifier.classify(need) == MatchingModel.GROUP_FORMATION

    def test_consortium_forms_group(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(PaymentMode.CASH, collaboration=CollaborationModel.CONSORTIUM)
        assert classifier.classify(need) == MatchingModel.GROUP_FORMATION

    def test_cash_cycle_is_not_circular(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(PaymentMode.CASH, links=("A", "D", "E"))
        assert classifier.classify(need) == MatchingModel.GROUP_FORMATION


class TestBarterClassification:
    def test_no_links_is_two_way(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        assert classifier.classify(_make_need()) == MatchingModel.TWO_WAY_DEPENDENCY

    def test_hybrid_single_link_is_two_way(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(PaymentMode.HYBRID, links=("D",))
        assert classifier.classify(need) == MatchingModel.TWO_WAY_DEPENDENCY

    def test_verified_cycle_with_three_links_is_circular(
        self, store: InMemoryEntityStore,
    ) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(links=("A", "D", "E"))
        assert classifier.classify(need) == MatchingModel.CIRCULAR_EXCHANGE

    def test_three_links_without_cycle_is_group(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(links=("D", "E", "F"))
        assert classifier.classify(need) == MatchingModel.GROUP_FORMATION

    def test_cycle_with_two_links_is_group(self, store: InMemoryEntityStore) -> None:
        """The cycle check needs at least three links to count."""
        classifier = MatchingModelClassifier(store)
        need = _make_need(links=("A", "D"))
        assert classifier.classify(need) == MatchingModel.GROUP_FORMATION


class TestCycleDetector:
    def test_finds_path_back_to_root(self, store: InMemoryEntityStore) -> None:
        check = CycleDetector(store).detect(_make_need(links=("A",)))
        assert check.found
        assert check.path == ["N", "A", "B", "C"]

    def test_no_cycle(self, store: InMemoryEntityStore) -> None:
        check = CycleDetector(store).detect(_make_need(links=("D", "E")))
        assert check.status == CycleStatus.NO_CYCLE
        assert check.path == []

    def test_self_link(self, store: InMemoryEntityStore) -> None:
        check = CycleDetector(store).detect(_make_need(links=("N",)))
        assert check.found
        assert check.path == ["N"]

    def test_missing_nodes_are_skipped(self, store: InMemoryEntityStore) -> None:
        check = CycleDetector(store).detect(_make_need(links=("ghost", "D")))
        assert check.status == CycleStatus.NO_CYCLE

    def test_cycle_not_through_root_terminates(self) -> None:
        store = _store_with(_make_opp("X", links=("Y",)), _make_opp("Y", links=("X",)))
        check = CycleDetector(store).detect(_make_need(links=("X",)))
        assert check.status == CycleStatus.NO_CYCLE

    def test_node_limit(self, store: InMemoryEntityStore) -> None:
        detector = CycleDetector(store, max_nodes=2)
        check = detector.detect(_make_need(links=("A",)))
        assert check.status == CycleStatus.LIMIT_EXCEEDED

    def test_node_limit_strict_raises(self, store: InMemoryEntityStore) -> None:
        detector = CycleDetector(store, max_nodes=2)
        with pytest.raises(GraphTooLargeError):
            detector.detect(_make_need(links=("A",)), strict=True)

    def test_long_chain_does_not_recurse(self) -> None:
        chain = [_make_opp(f"X{i}", links=(f"X{i + 1}",)) for i in range(5000)]
        chain.append(_make_opp("X5000", links=("N",)))
        store = _store_with(*chain)
        check = CycleDetector(store, max_nodes=10_000).detect(_make_need(links=("X0",)))
        assert check.found
        assert len(check.path) == 5002


class TestValidateCompatibility:
    def test_one_way_requires_need_and_offer(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        offer = _make_opp("D")
        result = classifier.validate_compatibility(offer, offer, MatchingModel.ONE_WAY)
        assert not result.valid
        assert "REQUEST_SERVICE" in result.errors[0]

    def test_two_way_requires_barter(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        need = _make_need(PaymentMode.CASH)
        offer = _make_opp("D", mode=PaymentMode.CASH)
        result = classifier.validate_compatibility(need, offer, MatchingModel.TWO_WAY_DEPENDENCY)
        assert len(result.errors) == 2

    def test_group_requires_links(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        result = classifier.validate_compatibility(
            _make_need(links=("D",)), _make_opp("D"), MatchingModel.GROUP_FORMATION,
        )
        assert result.errors == ["Group Formation requires Need to link to multiple Offers"]

    def test_circular_requires_cycle(self, store: InMemoryEntityStore) -> None:
        classifier = MatchingModelClassifier(store)
        ok = classifier.validate_compatibility(
            _make_need(links=("A",)), _make_opp("A"), MatchingModel.CIRCULAR_EXCHANGE,
        )
        bad = classifier.validate_compatibility(
            _make_need(links=("D",)), _make_opp("D"), MatchingModel.CIRCULAR_EXCHANGE,
        )
        assert ok.valid
        assert not bad.valid

    def test_describe(self) -> None:
        info = MatchingModelClassifier.describe(MatchingModel.CIRCULAR_EXCHANGE)
        assert info["name"] == "Circular Exchange"
