"""Barter value equivalence — what each side of an exchange is worth.

    balance             = total_offered - total_requested
    percentage_diff     = |balance| / avg(total_offered, total_requested) * 100
    within_tolerance    = |balance| / avg <= tolerance        (default 5%)

A barter pair is not symmetric, so each direction (Need provides for
Offer, Offer provides for Need) is computed independently. Swapping the
sides negates ``balance`` and leaves ``within_tolerance`` unchanged.

Bundles that mix currencies are flagged (``currency_mismatch``) and are
never within tolerance; per-currency totals are reported alongside.

All arithmetic is Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from dealflow.errors import ValidationResult
from dealflow.models.opportunity import Opportunity, ServiceItem

DEFAULT_TOLERANCE = Decimal("0.05")
# Percentage difference at or below which two bundles count as equal.
EQUAL_VALUE_TOLERANCE_PCT = Decimal("0.01")
TOTAL_MISMATCH_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


def validate_service_item(item: ServiceItem) -> list[str]:
    """Return the rule violations of a single item (empty = valid)."""
    errors: list[str] = []
    if not item.service_name or not item.service_name.strip():
        errors.append("Service name is required")
    if not item.unit_of_measure or not item.unit_of_measure.strip():
        errors.append("Unit of measure is required")
    if item.quantity <= 0:
        errors.append("Quantity must be a positive number")
    if item.unit_price < 0:
        errors.append("Unit price must be a non-negative number")
    if item.total_reference_value < 0:
        errors.append("Total reference value must be a non-negative number")
    expected = item.quantity * item.unit_price
    if abs(item.total_reference_value - expected) > TOTAL_MISMATCH_TOLERANCE:
        errors.append(
            f"Total reference value ({item.total_reference_value}) does not match "
            f"quantity × unit price ({expected})"
        )
    return errors


def validate_service_items(items: Sequence[ServiceItem]) -> ValidationResult:
    errors: list[str] = []
    for index, item in enumerate(items, 1):
        item_errors = validate_service_item(item)
        if item_errors:
            errors.append(f"Item {index}: {', '.join(item_errors)}")
    return ValidationResult(valid=not errors, errors=errors)


def total_value(items: Sequence[ServiceItem]) -> Decimal:
    return sum((i.total_reference_value for i in items), ZERO)


def totals_by_currency(items: Sequence[ServiceItem]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for item in items:
        totals[item.currency] = totals.get(item.currency, ZERO) + item.total_reference_value
    return totals


@dataclass(frozen=True)
class EquivalenceResult:
    """Value balance of one direction of a barter exchange."""
    total_offered: Decimal
    total_requested: Decimal
    balance: Decimal
    absolute_balance: Decimal
    percentage_difference: Decimal
    within_tolerance: bool
    tolerance: Decimal
    is_equal: bool
    currency_mismatch: bool
    offered_by_currency: dict[str, Decimal] = field(default_factory=dict)
    requested_by_currency: dict[str, Decimal] = field(default_factory=dict)

    @property
    def currency(self) -> Optional[str]:
        """The single currency of both bundles, if there is one."""
        currencies = set(self.offered_by_currency) | set(self.requested_by_currency)
        return next(iter(currencies)) if len(currencies) == 1 else None

    @property
    def requires_cash_settlement(self) -> bool:
        return self.balance != 0 and not self.is_equal

    @property
    def cash_component(self) -> Decimal:
        return self.absolute_balance if self.requires_cash_settlement else ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_offered": str(self.total_offered),
            "total_requested": str(self.total_requested),
            "balance": str(self.balance),
            "absolute_balance": str(self.absolute_balance),
            "percentage_difference": str(self.percentage_difference),
            "within_tolerance": self.within_tolerance,
            "tolerance": str(self.tolerance),
            "is_equal": self.is_equal,
            "currency_mismatch": self.currency_mismatch,
            "offered_by_currency": {k: str(v) for k, v in self.offered_by_currency.items()},
            "requested_by_currency": {
                k: str(v) for k, v in self.requested_by_currency.items()
            },
        }


def calculate_equivalence(
    offered: Sequence[ServiceItem],
    requested: Sequence[ServiceItem],
    tolerance: Union[Decimal, float, str, None] = None,
) -> EquivalenceResult:
    """Compare an offered bundle against a requested bundle.

    ``tolerance`` is a fraction (0.05 = 5%); None means the default.
    Never raises on empty bundles: two empty sides are trivially equal.
    """
    tol = DEFAULT_TOLERANCE if tolerance is None else Decimal(str(tolerance))

    total_offered = total_value(offered)
    total_requested = total_value(requested)
    balance = total_offered - total_requested
    absolute_balance = abs(balance)

    offered_by_currency = totals_by_currency(offered)
    requested_by_currency = totals_by_currency(requested)
    currency_mismatch = len(set(offered_by_currency) | set(requested_by_currency)) > 1

    average = (total_offered + total_requested) / 2
    if average > 0:
        ratio = absolute_balance / average
    else:
        ratio = ZERO
    percentage_difference = ratio * 100

    return EquivalenceResult(
        total_offered=total_offered,
        total_requested=total_requested,
        balance=balance,
        absolute_balance=absolute_balance,
        percentage_difference=percentage_difference,
        within_tolerance=(ratio <= tol) and not currency_mismatch,
        tolerance=tol,
        is_equal=(percentage_difference <= EQUAL_VALUE_TOLERANCE_PCT) and not currency_mismatch,
        currency_mismatch=currency_mismatch,
        offered_by_currency=offered_by_currency,
        requested_by_currency=requested_by_currency,
    )


@dataclass(frozen=True)
class BidirectionalEquivalence:
    """Both directions of a Need/Offer barter pair."""
    need_to_offer: EquivalenceResult
    offer_to_need: EquivalenceResult

    @property
    def both_within_tolerance(self) -> bool:
        return self.need_to_offer.within_tolerance and self.offer_to_need.within_tolerance


def bidirectional_equivalence(
    need: Opportunity,
    offer: Opportunity,
    tolerance: Union[Decimal, float, str, None] = None,
) -> BidirectionalEquivalence:
    """Need-provides-for-Offer and Offer-provides-for-Need, independently."""
    return BidirectionalEquivalence(
        need_to_offer=calculate_equivalence(
            need.service_items, offer.requested_items, tolerance,
        ),
        offer_to_need=calculate_equivalence(
            offer.service_items, need.requested_items, tolerance,
        ),
    )
