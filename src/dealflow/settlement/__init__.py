"""Barter settlement — value equivalence and imbalance resolution."""

from dealflow.settlement.equivalence import (
    BidirectionalEquivalence,
    EquivalenceResult,
    bidirectional_equivalence,
    calculate_equivalence,
    totals_by_currency,
    validate_service_items,
)
from dealflow.settlement.rules import (
    BarterTerms,
    CashDirection,
    SettlementRule,
    apply_settlement_rule,
    generate_barter_agreement,
    validate_barter_terms,
)

__all__ = [
    "BarterTerms",
    "BidirectionalEquivalence",
    "CashDirection",
    "EquivalenceResult",
    "SettlementRule",
    "apply_settlement_rule",
    "bidirectional_equivalence",
    "calculate_equivalence",
    "generate_barter_agreement",
    "totals_by_currency",
    "validate_barter_terms",
    "validate_service_items",
]
