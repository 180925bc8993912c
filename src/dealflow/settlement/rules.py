"""Barter settlement rules — how a value imbalance is resolved.

    EQUAL_VALUE_ONLY            bundles must be equal (within 0.01%)
    ALLOW_DIFFERENCE_WITH_CASH  a cash component covers the imbalance
    ACCEPT_AS_IS                the imbalance is explicitly waived

Cash direction: a positive balance (offered > requested) means the
requesting side pays the difference.

Calculation only. No payment is executed here.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from dealflow.models.opportunity import ServiceItem, to_decimal
from dealflow.settlement.equivalence import (
    EquivalenceResult,
    calculate_equivalence,
    validate_service_items,
)

CASH_MATCH_TOLERANCE = Decimal("0.01")


class SettlementRule(str, enum.Enum):
    EQUAL_VALUE_ONLY = "EQUAL_VALUE_ONLY"
    ALLOW_DIFFERENCE_WITH_CASH = "ALLOW_DIFFERENCE_WITH_CASH"
    ACCEPT_AS_IS = "ACCEPT_AS_IS"


class CashDirection(str, enum.Enum):
    REQUESTER_PAYS = "REQUESTER_PAYS"
    OFFERER_PAYS = "OFFERER_PAYS"


def cash_direction(balance: Decimal) -> Optional[CashDirection]:
    if balance > 0:
        return CashDirection.REQUESTER_PAYS
    if balance < 0:
        return CashDirection.OFFERER_PAYS
    return None


@dataclass(frozen=True)
class SettlementOutcome:
    rule: Optional[SettlementRule]
    valid: bool
    errors: list[str] = field(default_factory=list)
    cash_component: Decimal = Decimal("0")
    cash_direction: Optional[CashDirection] = None
    requires_consent: bool = False
    explicit_waiver: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule.value if self.rule else None,
            "valid": self.valid,
            "errors": list(self.errors),
            "cash_component": str(self.cash_component),
            "cash_direction": self.cash_direction.value if self.cash_direction else None,
            "requires_consent": self.requires_consent,
            "explicit_waiver": self.explicit_waiver,
        }


def apply_settlement_rule(
    equivalence: EquivalenceResult,
    rule: SettlementRule,
    cash_component: Optional[Decimal] = None,
    explicit_waiver: bool = False,
) -> SettlementOutcome:
    """Decide whether an exchange settles under ``rule``."""
    if equivalence.currency_mismatch:
        currencies = sorted(
            set(equivalence.offered_by_currency) | set(equivalence.requested_by_currency)
        )
        return SettlementOutcome(
            rule=rule,
            valid=False,
            errors=[f"Cannot settle bundles in different currencies: {', '.join(currencies)}"],
        )

    if equivalence.is_equal:
        return SettlementOutcome(rule=rule, valid=True)

    direction = cash_direction(equivalence.balance)

    if rule == SettlementRule.EQUAL_VALUE_ONLY:
        return SettlementOutcome(
            rule=rule,
            valid=False,
            errors=[
                f"Values must match exactly. Difference: {equivalence.absolute_balance} "
                f"{equivalence.currency or 'SAR'}"
            ],
        )

    if rule == SettlementRule.ALLOW_DIFFERENCE_WITH_CASH:
        if cash_component is None:
            # Structure is valid; the cash amount is implied by the imbalance.
            return SettlementOutcome(
                rule=rule,
                valid=True,
                cash_component=equivalence.absolute_balance,
                cash_direction=direction,
                requires_consent=True,
            )
        provided = abs(cash_component)
        if abs(equivalence.absolute_balance - provided) > CASH_MATCH_TOLERANCE:
            return SettlementOutcome(
                rule=rule,
                valid=False,
                errors=[
                    f"Cash component ({provided}) does not match value difference "
                    f"({equivalence.absolute_balance})"
                ],
            )
        return SettlementOutcome(
            rule=rule,
            valid=True,
            cash_component=provided,
            cash_direction=direction,
            requires_consent=True,
        )

    if rule == SettlementRule.ACCEPT_AS_IS:
        if not explicit_waiver:
            return SettlementOutcome(
                rule=rule,
                valid=False,
                errors=["Explicit waiver consent is required for ACCEPT_AS_IS settlement rule"],
            )
        return SettlementOutcome(
            rule=rule, valid=True, requires_consent=True, explicit_waiver=True,
        )

    raise ValueError(f"Unhandled settlement rule: {rule!r}")


@dataclass(frozen=True)
class BarterTerms:
    """The barter part of a proposal."""
    services_offered: tuple[ServiceItem, ...] = ()
    services_requested: tuple[ServiceItem, ...] = ()
    settlement_rule: Optional[SettlementRule] = None
    cash_component: Optional[Decimal] = None
    explicit_waiver: bool = False
    exchange_schedule: str = "Concurrent"
    quality_standards: str = "All services must meet project specifications"
    dispute_resolution: str = "Disputes to be resolved through platform mediation"

    def to_dict(self) -> dict[str, Any]:
        return {
            "services_offered": [i.to_dict() for i in self.services_offered],
            "services_requested": [i.to_dict() for i in self.services_requested],
            "settlement_rule": self.settlement_rule.value if self.settlement_rule else None,
            "cash_component": (
                str(self.cash_component) if self.cash_component is not None else None
            ),
            "explicit_waiver": self.explicit_waiver,
            "exchange_schedule": self.exchange_schedule,
            "quality_standards": self.quality_standards,
            "dispute_resolution": self.dispute_resolution,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> BarterTerms:
        rule = data.get("settlement_rule")
        cash = data.get("cash_component")
        defaults = BarterTerms()
        return BarterTerms(
            services_offered=tuple(
                ServiceItem.from_dict(i) for i in data.get("services_offered") or []
            ),
            services_requested=tuple(
                ServiceItem.from_dict(i) for i in data.get("services_requested") or []
            ),
            settlement_rule=SettlementRule(rule) if rule else None,
            cash_component=to_decimal(cash) if cash is not None else None,
            explicit_waiver=bool(data.get("explicit_waiver", False)),
            exchange_schedule=data.get("exchange_schedule") or defaults.exchange_schedule,
            quality_standards=data.get("quality_standards") or defaults.quality_standards,
            dispute_resolution=data.get("dispute_resolution") or defaults.dispute_resolution,
        )


@dataclass(frozen=True)
class BarterValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    equivalence: Optional[EquivalenceResult] = None
    settlement: Optional[SettlementOutcome] = None


def validate_barter_terms(
    terms: BarterTerms,
    tolerance: Optional[Decimal] = None,
) -> BarterValidation:
    """Structural, item-level and settlement-rule checks on barter terms."""
    errors: list[str] = []
    if not terms.services_offered:
        errors.append("Services offered are required")
    if not terms.services_requested:
        errors.append("Services requested are required")
    if terms.settlement_rule is None:
        errors.append("Barter settlement rule is required")
    if errors:
        return BarterValidation(valid=False, errors=errors)

    equivalence = calculate_equivalence(
        terms.services_offered, terms.services_requested, tolerance,
    )
    errors.extend(validate_service_items(terms.services_offered).errors)
    errors.extend(validate_service_items(terms.services_requested).errors)

    settlement = apply_settlement_rule(
        equivalence,
        terms.settlement_rule,
        cash_component=terms.cash_component,
        explicit_waiver=terms.explicit_waiver,
    )
    errors.extend(settlement.errors)

    return BarterValidation(
        valid=not errors,
        errors=errors,
        equivalence=equivalence,
        settlement=settlement,
    )


def requires_consent(terms: BarterTerms) -> bool:
    """True when settling needs both parties' explicit agreement."""
    if terms.settlement_rule is None:
        return False
    equivalence = calculate_equivalence(terms.services_offered, terms.services_requested)
    if equivalence.is_equal:
        return False
    return terms.settlement_rule in (
        SettlementRule.ALLOW_DIFFERENCE_WITH_CASH,
        SettlementRule.ACCEPT_AS_IS,
    )


def generate_barter_agreement(
    terms: BarterTerms,
    equivalence: EquivalenceResult,
) -> dict[str, Any]:
    """Agreement terms suitable for a contract's ``terms['barter']``."""
    settlement: dict[str, Any] = {
        "cash_component": "0",
        "cash_direction": None,
        "explicit_waiver": False,
        "requires_consent": requires_consent(terms),
    }
    if terms.settlement_rule == SettlementRule.ALLOW_DIFFERENCE_WITH_CASH and terms.cash_component:
        direction = cash_direction(equivalence.balance)
        settlement["cash_component"] = str(abs(terms.cash_component))
        settlement["cash_direction"] = direction.value if direction else None
    elif terms.settlement_rule == SettlementRule.ACCEPT_AS_IS and terms.explicit_waiver:
        settlement["explicit_waiver"] = True
        settlement["waived_amount"] = str(equivalence.absolute_balance)

    return {
        "type": "BARTER",
        "services_offered": [i.to_dict() for i in terms.services_offered],
        "services_requested": [i.to_dict() for i in terms.services_requested],
        "total_offered": str(equivalence.total_offered),
        "total_requested": str(equivalence.total_requested),
        "balance": str(equivalence.balance),
        "settlement_rule": terms.settlement_rule.value if terms.settlement_rule else None,
        "settlement": settlement,
        "exchange_schedule": terms.exchange_schedule,
        "quality_standards": terms.quality_standards,
        "dispute_resolution": terms.dispute_resolution,
    }
