"""Award engine — turns a winning proposal into a contract and an engagement.

Awarding, in order:
1. Only the target's owner may award (AuthorizationError).
2. A contract already sourced from this proposal makes the call a retry:
   the existing contract is returned and any missing step is finished.
3. Only SHORTLISTED or NEGOTIATION proposals are awardable
   (StateTransitionError, nothing is created).
4. Contract and engagement types, scope, and party types are derived.
5. One DRAFT contract is created.
6. One PLANNED engagement is created. A failure here is logged and
   reported as a warning; the contract is kept.
7. The proposal becomes AWARDED and records ``contract_id``.

Idempotent on ``source_proposal_id``: retrying an award never creates a
second contract.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from dealflow.errors import (
    AuthorizationError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from dealflow.legality.contract_validator import ContractValidator
from dealflow.legality.engagement_validator import EngagementLegalityValidator
from dealflow.lifecycle.proposal_state_machine import AWARDABLE, ProposalStateMachine
from dealflow.models.deal import (
    ENGAGEMENT_TYPE_FOR_CONTRACT,
    AssignedScope,
    BidScope,
    Contract,
    ContractScope,
    ContractStatus,
    ContractType,
    Engagement,
    EngagementStatus,
    Proposal,
    ProposalStatus,
    ProposalType,
    TargetType,
)
from dealflow.models.party import buyer_party_type, provider_party_type
from dealflow.persistence.audit import AuditSink, NullAuditSink
from dealflow.persistence.identity import RoleOracle
from dealflow.persistence.store import EntityStore, EntityType
from dealflow.settlement.equivalence import calculate_equivalence
from dealflow.settlement.rules import BarterTerms, generate_barter_agreement

logger = logging.getLogger(__name__)

_SCOPE_FOR_TARGET: dict[TargetType, ContractScope] = {
    TargetType.PROJECT: ContractScope.PROJECT,
    TargetType.MEGA_PROJECT: ContractScope.MEGA_PROJECT,
    TargetType.SERVICE_REQUEST: ContractScope.SERVICE_REQUEST,
}


def default_id_factory(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso_date(value: Any) -> Any:
    """Dates in a proposal timeline are stored on the contract as ISO strings."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class AwardOutcome:
    contract: Contract
    engagement: Optional[Engagement]
    proposal: Proposal
    created: bool
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AwardPlan:
    """Contract and engagement shape derived from a proposal."""
    contract_type: ContractType
    scope_type: ContractScope
    scope_id: str
    parent_contract_id: Optional[str] = None


class AwardEngine:
    """Awards proposals.

    Usage:
        engine = AwardEngine(store, roles, audit)
        outcome = engine.award_proposal("PRP-1", awarding_company_id="U-owner")
    """

    def __init__(
        self,
        store: EntityStore,
        roles: RoleOracle,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[str], str] = default_id_factory,
    ) -> None:
        self._store = store
        self._roles = roles
        self._audit = audit or NullAuditSink()
        self._clock = clock
        self._new_id = id_factory
        self._contracts = ContractValidator(store, roles)
        self._engagements = EngagementLegalityValidator(store)

    # ------------------------------------------------------------------
    # Award
    # ------------------------------------------------------------------

    def award_proposal(self, proposal_id: str, awarding_company_id: str) -> AwardOutcome:
        proposal = self._store.get(EntityType.PROPOSAL, proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal", proposal_id)

        if proposal.owner_company_id != awarding_company_id:
            raise AuthorizationError("Only the opportunity owner can award proposals")

        existing = self.find_contract_for_proposal(proposal_id)
        if existing is not None:
            return self._resume(proposal, existing)

        if proposal.status not in AWARDABLE:
            raise StateTransitionError(
                f"Cannot award proposal with status: {proposal.status.value}. "
                "Must be SHORTLISTED or NEGOTIATION"
            )

        plan = self.plan_award(proposal)
        contract = self._build_contract(proposal, plan)
        self._contracts.validate_creation(contract).raise_if_invalid()

        self._store.create(EntityType.CONTRACT, contract)
        self._audit.record(
            "contract_created",
            "contract",
            contract.contract_id,
            f"Contract {contract.contract_type.value} created from proposal {proposal_id}",
        )
        logger.info("Created contract %s for proposal %s", contract.contract_id, proposal_id)

        warnings: list[str] = []
        engagement = self._create_engagement(contract, warnings)
        awarded = self._mark_awarded(proposal, contract)

        return AwardOutcome(
            contract=contract,
            engagement=engagement,
            proposal=awarded,
            created=True,
            warnings=warnings,
        )

    def find_contract_for_proposal(self, proposal_id: str) -> Optional[Contract]:
        for contract in self._store.get_all(EntityType.CONTRACT):
            if contract.source_proposal_id == proposal_id:
                return contract
        return None

    def _resume(self, proposal: Proposal, contract: Contract) -> AwardOutcome:
        """Finish an award whose contract already exists."""
        warnings: list[str] = []
        engagement = next(
            (
                e for e in self._store.get_all(EntityType.ENGAGEMENT)
                if e.contract_id == contract.contract_id
            ),
            None,
        )
        if engagement is None:
            engagement = self._create_engagement(contract, warnings)
        if proposal.status != ProposalStatus.AWARDED:
            proposal = self._mark_awarded(proposal, contract)
        logger.info(
            "Award of %s already recorded as contract %s",
            proposal.proposal_id, contract.contract_id,
        )
        return AwardOutcome(
            contract=contract,
            engagement=engagement,
            proposal=proposal,
            created=False,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def plan_award(self, proposal: Proposal) -> AwardPlan:
        """Derive contract type and scope from (proposal type, target type)."""
        ptype, ttype = proposal.proposal_type, proposal.target_type

        if ptype == ProposalType.PROJECT_BID and ttype in (
            TargetType.PROJECT, TargetType.MEGA_PROJECT,
        ):
            contract_type = (
                ContractType.PROJECT_CONTRACT if ttype == TargetType.PROJECT
                else ContractType.MEGA_PROJECT_CONTRACT
            )
            if proposal.bid_scope == BidScope.SUB_PROJECT and proposal.sub_project_id:
                return AwardPlan(contract_type, ContractScope.SUB_PROJECT, proposal.sub_project_id)
            return AwardPlan(contract_type, _SCOPE_FOR_TARGET[ttype], proposal.target_id)

        if ptype == ProposalType.SERVICE_OFFER and ttype == TargetType.SERVICE_REQUEST:
            scope_type, scope_id = self._explicit_scope(proposal)
            return AwardPlan(ContractType.SERVICE_CONTRACT, scope_type, scope_id)

        if ptype == ProposalType.ADVISORY_OFFER:
            scope_type, scope_id = self._explicit_scope(proposal)
            return AwardPlan(ContractType.ADVISORY_CONTRACT, scope_type, scope_id)

        if ptype == ProposalType.SUB_CONTRACTOR_TO_VENDOR:
            if not proposal.parent_contract_id:
                raise ValidationError(["SubContract must have parentContractId"])
            parent = self._store.get(EntityType.CONTRACT, proposal.parent_contract_id)
            if parent is None:
                raise ValidationError(["Parent contract not found"])
            if proposal.target_scope_type is not None:
                scope_type = proposal.target_scope_type
                scope_id = proposal.target_scope_id or proposal.target_id
            else:
                scope_type, scope_id = parent.scope_type, parent.scope_id
            return AwardPlan(
                ContractType.SUB_CONTRACT, scope_type, scope_id,
                parent_contract_id=parent.contract_id,
            )

        raise ValidationError([
            f"Invalid proposal type and target type combination: {ptype.value} + {ttype.value}"
        ])

    @staticmethod
    def _explicit_scope(proposal: Proposal) -> tuple[ContractScope, str]:
        if proposal.target_scope_type is not None:
            return proposal.target_scope_type, proposal.target_scope_id or proposal.target_id
        scope_type = _SCOPE_FOR_TARGET.get(proposal.target_type)
        if scope_type is None:
            raise ValidationError([
                f"Proposal targeting {proposal.target_type.value} must name a target scope"
            ])
        return scope_type, proposal.target_id

    def _build_contract(self, proposal: Proposal, plan: AwardPlan) -> Contract:
        now = self._clock()
        buyer_role = self._roles.role_of(proposal.owner_company_id)
        provider_role = self._roles.role_of(proposal.bidder_company_id)
        timeline = proposal.timeline or {}
        return Contract(
            contract_id=self._new_id("CTR"),
            contract_type=plan.contract_type,
            scope_type=plan.scope_type,
            scope_id=plan.scope_id,
            buyer_party_id=proposal.owner_company_id,
            buyer_party_type=buyer_party_type(buyer_role).value,
            provider_party_id=proposal.bidder_company_id,
            provider_party_type=provider_party_type(provider_role).value,
            status=ContractStatus.DRAFT,
            parent_contract_id=plan.parent_contract_id,
            terms=self._terms(proposal),
            source_proposal_id=proposal.proposal_id,
            start_date=_iso_date(timeline.get("start_date")) or now.date().isoformat(),
            end_date=_iso_date(timeline.get("end_date")),
            created_utc=now,
        )

    @staticmethod
    def _terms(proposal: Proposal) -> dict[str, Any]:
        terms: dict[str, Any] = {
            "pricing": {
                "amount": str(proposal.total if proposal.total is not None else Decimal("0")),
                "currency": proposal.currency or "SAR",
            },
            "payment_terms": proposal.payment_terms or "milestone_based",
            "deliverables": list(proposal.deliverables),
            "milestones": list(proposal.milestones),
            "timeline": {k: _iso_date(v) for k, v in proposal.timeline.items()},
            "source_proposal_id": proposal.proposal_id,
        }
        if proposal.barter_terms:
            barter = BarterTerms.from_dict(proposal.barter_terms)
            equivalence = calculate_equivalence(
                barter.services_offered, barter.services_requested,
            )
            terms["barter"] = generate_barter_agreement(barter, equivalence)
        return terms

    # ------------------------------------------------------------------
    # Side steps
    # ------------------------------------------------------------------

    def _create_engagement(
        self, contract: Contract, warnings: list[str],
    ) -> Optional[Engagement]:
        assigned_type = (
            AssignedScope.SUB_PROJECT
            if contract.scope_type == ContractScope.SUB_PROJECT else None
        )
        engagement = Engagement(
            engagement_id=self._new_id("ENG"),
            contract_id=contract.contract_id,
            engagement_type=ENGAGEMENT_TYPE_FOR_CONTRACT[contract.contract_type],
            status=EngagementStatus.PLANNED,
            assigned_scope_type=assigned_type,
            assigned_scope_id=contract.scope_id if assigned_type else None,
            created_utc=self._clock(),
        )
        check = self._engagements.validate_creation(
            contract.contract_id,
            engagement.engagement_type,
            engagement.status,
            assigned_type.value if assigned_type else None,
            engagement.assigned_scope_id,
        )
        try:
            check.raise_if_invalid()
            self._store.create(EntityType.ENGAGEMENT, engagement)
        except (ValidationError, ValueError) as exc:
            logger.warning(
                "Failed to create engagement for contract %s: %s", contract.contract_id, exc,
            )
            warnings.append(f"Failed to create engagement for contract {contract.contract_id}: {exc}")
            return None

        self._audit.record(
            "engagement_created",
            "engagement",
            engagement.engagement_id,
            f"Engagement planned for contract {contract.contract_id}",
        )
        return engagement

    def _mark_awarded(self, proposal: Proposal, contract: Contract) -> Proposal:
        before = proposal.status
        errors = ProposalStateMachine.apply_transition(proposal, ProposalStatus.AWARDED)
        if errors:
            raise StateTransitionError(errors[0])
        updated = self._store.update(
            EntityType.PROPOSAL,
            proposal.proposal_id,
            {
                "status": ProposalStatus.AWARDED,
                "awarded_utc": self._clock(),
                "contract_id": contract.contract_id,
            },
        )
        self._audit.record(
            "proposal_awarded",
            "proposal",
            proposal.proposal_id,
            f"Proposal awarded; contract {contract.contract_id}",
            {"before": {"status": before.value}, "after": {"status": ProposalStatus.AWARDED.value}},
        )
        return updated if updated is not None else proposal
