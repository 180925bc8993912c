"""Deal lifecycle models — proposals, contracts, and engagements.

Proposal lifecycle:
    DRAFT → SUBMITTED → UNDER_REVIEW → SHORTLISTED → NEGOTIATION → AWARDED → COMPLETED
    (REJECTED reachable from SUBMITTED, UNDER_REVIEW, SHORTLISTED, NEGOTIATION)
Contract lifecycle:
    DRAFT → SENT → SIGNED → ACTIVE → COMPLETED   (TERMINATED from any non-terminal)
Engagement lifecycle:
    PLANNED → ACTIVE ⇄ PAUSED → COMPLETED        (CANCELED from any non-terminal)

A Contract is created only by awarding a Proposal, and an Engagement
always points at a Contract.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from dealflow.models.opportunity import ServiceItem, to_decimal


class ProposalType(str, enum.Enum):
    PROJECT_BID = "PROJECT_BID"
    SERVICE_OFFER = "SERVICE_OFFER"
    ADVISORY_OFFER = "ADVISORY_OFFER"
    SUB_CONTRACTOR_TO_VENDOR = "sub_contractor_to_vendor"


class TargetType(str, enum.Enum):
    PROJECT = "PROJECT"
    MEGA_PROJECT = "MEGA_PROJECT"
    SERVICE_REQUEST = "SERVICE_REQUEST"
    ADVISORY_REQUEST = "ADVISORY_REQUEST"


class ProposalStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    SHORTLISTED = "SHORTLISTED"
    NEGOTIATION = "NEGOTIATION"
    AWARDED = "AWARDED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class BidScope(str, enum.Enum):
    """How much of the target a bid covers."""
    FULL_PROJECT = "full_project"
    SUB_PROJECT = "subproject"
    MINOR_SCOPE = "minor_scope"
    PARTIAL = "partial"


class ContractType(str, enum.Enum):
    PROJECT_CONTRACT = "PROJECT_CONTRACT"
    MEGA_PROJECT_CONTRACT = "MEGA_PROJECT_CONTRACT"
    SERVICE_CONTRACT = "SERVICE_CONTRACT"
    ADVISORY_CONTRACT = "ADVISORY_CONTRACT"
    SUB_CONTRACT = "SUB_CONTRACT"


class ContractScope(str, enum.Enum):
    PROJECT = "PROJECT"
    MEGA_PROJECT = "MEGA_PROJECT"
    SUB_PROJECT = "SUB_PROJECT"
    SERVICE_REQUEST = "SERVICE_REQUEST"


class ContractStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    SIGNED = "SIGNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"


class EngagementType(str, enum.Enum):
    PROJECT_EXECUTION = "PROJECT_EXECUTION"
    SERVICE_DELIVERY = "SERVICE_DELIVERY"
    ADVISORY = "ADVISORY"


class EngagementStatus(str, enum.Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class AssignedScope(str, enum.Enum):
    SUB_PROJECT = "SUB_PROJECT"
    PHASE = "PHASE"
    WORK_PACKAGE = "WORK_PACKAGE"


# Fixed contract → engagement type mapping.
ENGAGEMENT_TYPE_FOR_CONTRACT: dict[ContractType, EngagementType] = {
    ContractType.PROJECT_CONTRACT: EngagementType.PROJECT_EXECUTION,
    ContractType.MEGA_PROJECT_CONTRACT: EngagementType.PROJECT_EXECUTION,
    ContractType.SERVICE_CONTRACT: EngagementType.SERVICE_DELIVERY,
    ContractType.ADVISORY_CONTRACT: EngagementType.ADVISORY,
    ContractType.SUB_CONTRACT: EngagementType.PROJECT_EXECUTION,
}


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _opt_enum(enum_cls: type[enum.Enum], value: Any) -> Any:
    return enum_cls(value) if value else None


@dataclass
class Proposal:
    """A bid from ``bidder_company_id`` on something ``owner_company_id`` owns."""
    proposal_id: str
    proposal_type: ProposalType
    target_type: TargetType
    target_id: str
    owner_company_id: str
    bidder_company_id: str
    status: ProposalStatus = ProposalStatus.DRAFT
    bid_scope: Optional[BidScope] = None
    sub_project_id: Optional[str] = None
    vendor_id: Optional[str] = None
    parent_contract_id: Optional[str] = None
    target_scope_type: Optional[ContractScope] = None
    target_scope_id: Optional[str] = None
    total: Optional[Decimal] = None
    currency: str = "SAR"
    payment_terms: str = "milestone_based"
    deliverables: list[str] = field(default_factory=list)
    milestones: list[dict[str, Any]] = field(default_factory=list)
    timeline: dict[str, Any] = field(default_factory=dict)
    service_items: list[ServiceItem] = field(default_factory=list)
    barter_terms: Optional[dict[str, Any]] = None
    contract_id: Optional[str] = None
    created_utc: Optional[datetime] = None
    submitted_utc: Optional[datetime] = None
    awarded_utc: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "proposal_type": self.proposal_type.value,
            "target_type": self.target_type.value,
            "target_id": self.target_id,
            "owner_company_id": self.owner_company_id,
            "bidder_company_id": self.bidder_company_id,
            "status": self.status.value,
            "bid_scope": self.bid_scope.value if self.bid_scope else None,
            "sub_project_id": self.sub_project_id,
            "vendor_id": self.vendor_id,
            "parent_contract_id": self.parent_contract_id,
            "target_scope_type": (
                self.target_scope_type.value if self.target_scope_type else None
            ),
            "target_scope_id": self.target_scope_id,
            "total": str(self.total) if self.total is not None else None,
            "currency": self.currency,
            "payment_terms": self.payment_terms,
            "deliverables": list(self.deliverables),
            "milestones": list(self.milestones),
            "timeline": dict(self.timeline),
            "service_items": [i.to_dict() for i in self.service_items],
            "barter_terms": self.barter_terms,
            "contract_id": self.contract_id,
            "created_utc": _ts(self.created_utc),
            "submitted_utc": _ts(self.submitted_utc),
            "awarded_utc": _ts(self.awarded_utc),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Proposal:
        total = data.get("total")
        return Proposal(
            proposal_id=data["proposal_id"],
            proposal_type=ProposalType(data["proposal_type"]),
            target_type=TargetType(data["target_type"]),
            target_id=data.get("target_id", ""),
            owner_company_id=data["owner_company_id"],
            bidder_company_id=data["bidder_company_id"],
            status=ProposalStatus(data.get("status", "DRAFT")),
            bid_scope=_opt_enum(BidScope, data.get("bid_scope")),
            sub_project_id=data.get("sub_project_id"),
            vendor_id=data.get("vendor_id"),
            parent_contract_id=data.get("parent_contract_id"),
            target_scope_type=_opt_enum(ContractScope, data.get("target_scope_type")),
            target_scope_id=data.get("target_scope_id"),
            total=to_decimal(total) if total is not None else None,
            currency=data.get("currency", "SAR"),
            payment_terms=data.get("payment_terms", "milestone_based"),
            deliverables=list(data.get("deliverables") or []),
            milestones=list(data.get("milestones") or []),
            timeline=dict(data.get("timeline") or {}),
            service_items=[ServiceItem.from_dict(i) for i in data.get("service_items") or []],
            barter_terms=data.get("barter_terms"),
            contract_id=data.get("contract_id"),
            created_utc=_parse_ts(data.get("created_utc")),
            submitted_utc=_parse_ts(data.get("submitted_utc")),
            awarded_utc=_parse_ts(data.get("awarded_utc")),
        )


@dataclass
class Contract:
    """Binding agreement produced by awarding a proposal.

    ``parent_contract_id`` is set only on SUB_CONTRACT.
    """
    contract_id: str
    contract_type: ContractType
    scope_type: ContractScope
    scope_id: str
    buyer_party_id: str
    buyer_party_type: str
    provider_party_id: str
    provider_party_type: str
    status: ContractStatus = ContractStatus.DRAFT
    parent_contract_id: Optional[str] = None
    terms: dict[str, Any] = field(default_factory=dict)
    source_proposal_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    signed_by: list[str] = field(default_factory=list)
    created_utc: Optional[datetime] = None
    signed_utc: Optional[datetime] = None
    activated_utc: Optional[datetime] = None
    closed_utc: Optional[datetime] = None

    @property
    def parties(self) -> tuple[str, str]:
        return (self.buyer_party_id, self.provider_party_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract_id": self.contract_id,
            "contract_type": self.contract_type.value,
            "scope_type": self.scope_type.value,
            "scope_id": self.scope_id,
            "buyer_party_id": self.buyer_party_id,
            "buyer_party_type": self.buyer_party_type,
            "provider_party_id": self.provider_party_id,
            "provider_party_type": self.provider_party_type,
            "status": self.status.value,
            "parent_contract_id": self.parent_contract_id,
            "terms": self.terms,
            "source_proposal_id": self.source_proposal_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "signed_by": list(self.signed_by),
            "created_utc": _ts(self.created_utc),
            "signed_utc": _ts(self.signed_utc),
            "activated_utc": _ts(self.activated_utc),
            "closed_utc": _ts(self.closed_utc),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Contract:
        return Contract(
            contract_id=data["contract_id"],
            contract_type=ContractType(data["contract_type"]),
            scope_type=ContractScope(data["scope_type"]),
            scope_id=data.get("scope_id", ""),
            buyer_party_id=data["buyer_party_id"],
            buyer_party_type=data["buyer_party_type"],
            provider_party_id=data["provider_party_id"],
            provider_party_type=data["provider_party_type"],
            status=ContractStatus(data.get("status", "DRAFT")),
            parent_contract_id=data.get("parent_contract_id"),
            terms=dict(data.get("terms") or {}),
            source_proposal_id=data.get("source_proposal_id"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            signed_by=list(data.get("signed_by") or []),
            created_utc=_parse_ts(data.get("created_utc")),
            signed_utc=_parse_ts(data.get("signed_utc")),
            activated_utc=_parse_ts(data.get("activated_utc")),
            closed_utc=_parse_ts(data.get("closed_utc")),
        )


@dataclass
class Engagement:
    """Execution of a contract's work."""
    engagement_id: str
    contract_id: str
    engagement_type: EngagementType
    status: EngagementStatus = EngagementStatus.PLANNED
    assigned_scope_type: Optional[AssignedScope] = None
    assigned_scope_id: Optional[str] = None
    milestone_ids: list[str] = field(default_factory=list)
    created_utc: Optional[datetime] = None
    started_utc: Optional[datetime] = None
    closed_utc: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "engagement_id": self.engagement_id,
            "contract_id": self.contract_id,
            "engagement_type": self.engagement_type.value,
            "status": self.status.value,
            "assigned_scope_type": (
                self.assigned_scope_type.value if self.assigned_scope_type else None
            ),
            "assigned_scope_id": self.assigned_scope_id,
            "milestone_ids": list(self.milestone_ids),
            "created_utc": _ts(self.created_utc),
            "started_utc": _ts(self.started_utc),
            "closed_utc": _ts(self.closed_utc),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Engagement:
        return Engagement(
            engagement_id=data["engagement_id"],
            contract_id=data["contract_id"],
            engagement_type=EngagementType(data["engagement_type"]),
            status=EngagementStatus(data.get("status", "PLANNED")),
            assigned_scope_type=_opt_enum(AssignedScope, data.get("assigned_scope_type")),
            assigned_scope_id=data.get("assigned_scope_id"),
            milestone_ids=list(data.get("milestone_ids") or []),
            created_utc=_parse_ts(data.get("created_utc")),
            started_utc=_parse_ts(data.get("started_utc")),
            closed_utc=_parse_ts(data.get("closed_utc")),
        )
