"""Marketplace postings — Needs, Offers, and the service items they trade.

An Opportunity is either a Need (intent REQUEST_SERVICE) or an Offer
(intent OFFER_SERVICE). Needs accumulate linked Offers through the deal
linker; the linked-offer relation forms a directed graph in which
cycles are a valid topology (circular barter), never an error.

Money is Decimal throughout. No floats in finance.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


class IntentType(str, enum.Enum):
    """Which side of the market a posting sits on."""
    REQUEST_SERVICE = "REQUEST_SERVICE"
    OFFER_SERVICE = "OFFER_SERVICE"


class PaymentMode(str, enum.Enum):
    CASH = "CASH"
    BARTER = "BARTER"
    EQUITY = "EQUITY"
    PROFIT_SHARING = "PROFIT_SHARING"
    HYBRID = "HYBRID"


class OpportunityStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class MatchingModel(str, enum.Enum):
    """Structural topology of a match."""
    ONE_WAY = "OneWay"
    TWO_WAY_DEPENDENCY = "TwoWayDependency"
    GROUP_FORMATION = "GroupFormation"
    CIRCULAR_EXCHANGE = "CircularExchange"


class CollaborationModel(str, enum.Enum):
    """Collaboration model chosen by the posting's owner.

    Values are the catalogue ids shown to users.
    """
    TASK_BASED = "1.1"
    CONSORTIUM = "1.2"
    JOINT_VENTURE = "1.3"
    SPV = "1.4"
    STRATEGIC_JV = "2.1"
    STRATEGIC_ALLIANCE = "2.2"
    MENTORSHIP = "2.3"
    BULK_PURCHASING = "3.1"
    CO_OWNERSHIP = "3.2"
    RESOURCE_SHARING = "3.3"
    PROFESSIONAL_HIRING = "4.1"
    CONSULTANT_HIRING = "4.2"
    COMPETITION_RFP = "5.1"


# Collaboration models that always imply a multi-party group.
GROUP_COLLABORATION_MODELS = frozenset({
    CollaborationModel.CONSORTIUM,
    CollaborationModel.JOINT_VENTURE,
    CollaborationModel.SPV,
})


def to_decimal(value: Any) -> Decimal:
    """Coerce a JSON-ish number to Decimal. Raises ValueError on garbage."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class ServiceItem:
    """One line of a value bundle: a service, its quantity and price.

    Frozen: once an item is part of an awarded contract it must not
    change. Build a new item instead.
    """
    service_name: str
    quantity: Decimal
    unit_price: Decimal
    total_reference_value: Decimal
    unit_of_measure: str = "unit"
    currency: str = "SAR"
    description: str = ""

    @staticmethod
    def create(
        service_name: str,
        quantity: Any,
        unit_price: Any,
        unit_of_measure: str = "unit",
        currency: str = "SAR",
        description: str = "",
    ) -> ServiceItem:
        """Build an item with total = quantity × unit_price."""
        qty = to_decimal(quantity)
        price = to_decimal(unit_price)
        return ServiceItem(
            service_name=service_name,
            quantity=qty,
            unit_price=price,
            total_reference_value=qty * price,
            unit_of_measure=unit_of_measure,
            currency=currency,
            description=description,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "description": self.description,
            "unit_of_measure": self.unit_of_measure,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "total_reference_value": str(self.total_reference_value),
            "currency": self.currency,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ServiceItem:
        if not isinstance(data, dict):
            raise ValueError(f"Not a service item: {data!r}")
        qty = to_decimal(data.get("quantity", 0))
        price = to_decimal(data.get("unit_price", 0))
        total = data.get("total_reference_value")
        return ServiceItem(
            service_name=data.get("service_name", ""),
            quantity=qty,
            unit_price=price,
            total_reference_value=to_decimal(total) if total is not None else qty * price,
            unit_of_measure=data.get("unit_of_measure", "unit"),
            currency=data.get("currency", "SAR"),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class BudgetRange:
    """Inclusive monetary range. For Offers this is the asking rate."""
    min: Decimal
    max: Decimal

    @property
    def center(self) -> Decimal:
        return (self.min + self.max) / 2

    @property
    def width(self) -> Decimal:
        return self.max - self.min


@dataclass(frozen=True)
class Timeline:
    """When a Need wants work to start and how long it runs."""
    start_date: Optional[date] = None
    duration_days: Optional[int] = None

    @property
    def end_date(self) -> Optional[date]:
        if self.start_date is None or self.duration_days is None:
            return None
        return self.start_date + timedelta(days=self.duration_days)


@dataclass(frozen=True)
class Availability:
    """When an Offer's provider can work."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    lead_time_days: Optional[int] = None


@dataclass(frozen=True)
class Location:
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    is_remote_allowed: bool = False


@dataclass
class OpportunityAttributes:
    """Matchable attributes of a posting. Any field may be absent."""
    required_skills: list[str] = field(default_factory=list)
    available_skills: list[str] = field(default_factory=list)
    budget_range: Optional[BudgetRange] = None
    timeline: Optional[Timeline] = None
    availability: Optional[Availability] = None
    location: Optional[Location] = None
    experience_level: Optional[str] = None
    minimum_experience_years: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "required_skills": list(self.required_skills),
            "available_skills": list(self.available_skills),
            "experience_level": self.experience_level,
            "minimum_experience_years": self.minimum_experience_years,
        }
        if self.budget_range is not None:
            data["budget_range"] = {
                "min": str(self.budget_range.min),
                "max": str(self.budget_range.max),
            }
        if self.timeline is not None:
            data["timeline"] = {
                "start_date": self.timeline.start_date.isoformat()
                if self.timeline.start_date else None,
                "duration_days": self.timeline.duration_days,
            }
        if self.availability is not None:
            a = self.availability
            data["availability"] = {
                "start_date": a.start_date.isoformat() if a.start_date else None,
                "end_date": a.end_date.isoformat() if a.end_date else None,
                "lead_time_days": a.lead_time_days,
            }
        if self.location is not None:
            loc = self.location
            data["location"] = {
                "city": loc.city,
                "region": loc.region,
                "country": loc.country,
                "is_remote_allowed": loc.is_remote_allowed,
            }
        return data

    @staticmethod
    def from_dict(data: dict[str, Any]) -> OpportunityAttributes:
        budget = data.get("budget_range")
        timeline = data.get("timeline")
        availability = data.get("availability")
        location = data.get("location")
        return OpportunityAttributes(
            required_skills=list(data.get("required_skills") or []),
            available_skills=list(data.get("available_skills") or []),
            budget_range=BudgetRange(
                min=to_decimal(budget["min"]), max=to_decimal(budget["max"]),
            ) if budget else None,
            timeline=Timeline(
                start_date=_parse_date(timeline.get("start_date")),
                duration_days=timeline.get("duration_days"),
            ) if timeline else None,
            availability=Availability(
                start_date=_parse_date(availability.get("start_date")),
                end_date=_parse_date(availability.get("end_date")),
                lead_time_days=availability.get("lead_time_days"),
            ) if availability else None,
            location=Location(
                city=location.get("city"),
                region=location.get("region"),
                country=location.get("country"),
                is_remote_allowed=bool(location.get("is_remote_allowed", False)),
            ) if location else None,
            experience_level=data.get("experience_level"),
            minimum_experience_years=data.get("minimum_experience_years"),
        )


@dataclass
class Opportunity:
    """A Need or an Offer posted to the marketplace.

    ``service_items`` is the bundle this party provides;
    ``requested_items`` is what it wants in return (barter).
    ``linked_offers`` is only ever written by the deal linker.
    """
    opportunity_id: str
    title: str
    owner_id: str
    intent_type: IntentType
    payment_mode: PaymentMode = PaymentMode.CASH
    status: OpportunityStatus = OpportunityStatus.ACTIVE
    attributes: OpportunityAttributes = field(default_factory=OpportunityAttributes)
    service_items: list[ServiceItem] = field(default_factory=list)
    requested_items: list[ServiceItem] = field(default_factory=list)
    linked_offers: list[str] = field(default_factory=list)
    matching_model: Optional[MatchingModel] = None
    collaboration_model: Optional[CollaborationModel] = None
    category: Optional[str] = None

    @property
    def is_need(self) -> bool:
        return self.intent_type == IntentType.REQUEST_SERVICE

    @property
    def is_offer(self) -> bool:
        return self.intent_type == IntentType.OFFER_SERVICE

    def to_dict(self) -> dict[str, Any]:
        return {
            "opportunity_id": self.opportunity_id,
            "title": self.title,
            "owner_id": self.owner_id,
            "intent_type": self.intent_type.value,
            "payment_mode": self.payment_mode.value,
            "status": self.status.value,
            "attributes": self.attributes.to_dict(),
            "service_items": [i.to_dict() for i in self.service_items],
            "requested_items": [i.to_dict() for i in self.requested_items],
            "linked_offers": list(self.linked_offers),
            "matching_model": self.matching_model.value if self.matching_model else None,
            "collaboration_model": (
                self.collaboration_model.value if self.collaboration_model else None
            ),
            "category": self.category,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Opportunity:
        model = data.get("matching_model")
        collab = data.get("collaboration_model")
        return Opportunity(
            opportunity_id=data["opportunity_id"],
            title=data.get("title", ""),
            owner_id=data.get("owner_id", ""),
            intent_type=IntentType(data["intent_type"]),
            payment_mode=PaymentMode(data.get("payment_mode", PaymentMode.CASH.value)),
            status=OpportunityStatus(data.get("status", "active")),
            attributes=OpportunityAttributes.from_dict(data.get("attributes") or {}),
            service_items=[ServiceItem.from_dict(i) for i in data.get("service_items") or []],
            requested_items=[
                ServiceItem.from_dict(i) for i in data.get("requested_items") or []
            ],
            linked_offers=list(data.get("linked_offers") or []),
            matching_model=MatchingModel(model) if model else None,
            collaboration_model=CollaborationModel(collab) if collab else None,
            category=data.get("category"),
        )
