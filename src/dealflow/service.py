"""Dealflow service — unified facade for the deal-formation engine.

This is the primary interface for programmatic access to the engine.
It orchestrates all subsystems:
- Postings (users, projects, needs and offers)
- Matching (classification, routing, ranking)
- Deal graph (linking offers to needs)
- Barter settlement (value equivalence, offer register)
- Proposal lifecycle and awarding
- Contract and engagement lifecycles

Every operation returns a ServiceResult. Engine exceptions never escape
the facade: they become ``errors`` on a failed result. Every committed
state change is recorded on the audit sink.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from dealflow.errors import DealflowError, ValidationError
from dealflow.legality.contract_validator import ContractValidator
from dealflow.legality.engagement_validator import EngagementLegalityValidator
from dealflow.legality.proposal_validator import ProposalLegalityValidator
from dealflow.lifecycle.award import AwardEngine, default_id_factory
from dealflow.lifecycle.contract_state_machine import ContractStateMachine
from dealflow.lifecycle.engagement_state_machine import EngagementStateMachine
from dealflow.lifecycle.proposal_state_machine import ProposalStateMachine
from dealflow.lifecycle.state_machine import TransitionTable
from dealflow.market.deal_linker import DealLinker
from dealflow.market.offer_register import OfferRegister
from dealflow.matching.classifier import MatchingModelClassifier
from dealflow.matching.router import MatchingRouter
from dealflow.models.deal import (
    AssignedScope,
    ContractStatus,
    Engagement,
    EngagementStatus,
    EngagementType,
    Proposal,
    ProposalStatus,
)
from dealflow.models.opportunity import MatchingModel, Opportunity, OpportunityStatus
from dealflow.models.party import UserAccount
from dealflow.models.project import Project
from dealflow.persistence.audit import AuditSink, NullAuditSink
from dealflow.persistence.identity import (
    AllowAllPermissions,
    PermissionOracle,
    RoleCache,
    StoreRoleOracle,
)
from dealflow.persistence.store import EntityStore, EntityType, InMemoryEntityStore
from dealflow.policy.resolver import PolicyResolver
from dealflow.settlement.equivalence import bidirectional_equivalence
from dealflow.settlement.rules import BarterTerms, validate_barter_terms

logger = logging.getLogger(__name__)

_LIVE_CONTRACT = (ContractStatus.SIGNED, ContractStatus.ACTIVE)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def _failure(exc: Exception) -> ServiceResult:
    if isinstance(exc, ValidationError):
        return ServiceResult(success=False, errors=list(exc.errors))
    return ServiceResult(success=False, errors=[str(exc)])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DealService:
    """Deal-formation engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = DealService(resolver, store=InMemoryEntityStore())

        service.register_user(UserAccount("U-1", Role.BENEFICIARY))
        service.create_opportunity(need)
        service.create_opportunity(offer)

        result = service.match(need_id, offer_id)
        result = service.link_offers(need_id, [offer_id], actor_id="U-1")

        result = service.create_proposal(proposal, submitter_id="U-2")
        result = service.submit_proposal(proposal_id, actor_id="U-2")
        ...
        result = service.award_proposal(proposal_id, actor_id="U-1")

    Persistence (optional):
        store = InMemoryEntityStore(storage_path=data_dir / "entities.json")
        audit = EventLogAuditSink(EventLog(storage_path=data_dir / "events.jsonl"))
        service = DealService(resolver, store=store, audit=audit)
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        store: Optional[EntityStore] = None,
        audit: Optional[AuditSink] = None,
        permissions: Optional[PermissionOracle] = None,
        role_cache: Optional[RoleCache] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[str], str] = default_id_factory,
    ) -> None:
        self._resolver = resolver
        self._store = store if store is not None else InMemoryEntityStore()
        self._audit = audit or NullAuditSink()
        self._permissions = permissions or AllowAllPermissions()
        self._role_cache = role_cache if role_cache is not None else RoleCache()
        self._roles = StoreRoleOracle(self._store, self._role_cache)
        self._clock = clock
        self._new_id = id_factory

        self._classifier = MatchingModelClassifier(self._store, resolver)
        self._router = MatchingRouter(self._store, self._classifier, resolver)
        self._linker = DealLinker(self._store, self._classifier, self._audit, resolver)
        self._register = OfferRegister(self._store, resolver)
        self._proposals = ProposalLegalityValidator(self._store, self._roles)
        self._contracts = ContractValidator(self._store, self._roles)
        self._engagements = EngagementLegalityValidator(self._store)
        self._award_engine = AwardEngine(
            self._store, self._roles, self._audit, clock=clock, id_factory=id_factory,
        )

    @property
    def store(self) -> EntityStore:
        return self._store

    # ------------------------------------------------------------------
    # Users, projects and postings
    # ------------------------------------------------------------------

    def register_user(self, user: UserAccount) -> ServiceResult:
        try:
            self._store.create(EntityType.USER, user)
        except ValueError as e:
            return _failure(e)
        self._role_cache.invalidate(user.user_id)
        return ServiceResult(success=True, data={"user_id": user.user_id})

    def create_project(self, project: Project) -> ServiceResult:
        try:
            self._store.create(EntityType.PROJECT, project)
        except ValueError as e:
            return _failure(e)
        return ServiceResult(success=True, data={"project_id": project.project_id})

    def create_opportunity(self, opportunity: Opportunity) -> ServiceResult:
        """Store a Need or Offer. Its matching model is classified up front."""
        if opportunity.linked_offers:
            return ServiceResult(
                success=False,
                errors=["linked_offers is managed by the deal linker"],
            )
        if opportunity.is_need and opportunity.matching_model is None:
            opportunity.matching_model = self._classifier.classify(opportunity)
        try:
            self._store.create(EntityType.OPPORTUNITY, opportunity)
        except ValueError as e:
            return _failure(e)
        self._audit.record(
            "opportunity_created",
            "opportunity",
            opportunity.opportunity_id,
            f"{opportunity.intent_type.value} posted: {opportunity.title}",
            actor_id=opportunity.owner_id,
        )
        return ServiceResult(
            success=True,
            data={
                "opportunity_id": opportunity.opportunity_id,
                "matching_model": (
                    opportunity.matching_model.value if opportunity.matching_model else None
                ),
            },
        )

    def get_opportunity(self, opportunity_id: str) -> Optional[Opportunity]:
        return self._store.get(EntityType.OPPORTUNITY, opportunity_id)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def classify(self, need_id: str) -> ServiceResult:
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        if need is None:
            return ServiceResult(success=False, errors=[f"Opportunity not found: {need_id}"])
        model = self._classifier.classify(need)
        return ServiceResult(
            success=True,
            data={
                "need_id": need_id,
                "matching_model": model.value,
                "description": self._classifier.describe(model),
            },
        )

    def match(self, need_id: str, offer_id: str) -> ServiceResult:
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        offer = self._store.get(EntityType.OPPORTUNITY, offer_id)
        missing = [oid for oid, opp in ((need_id, need), (offer_id, offer)) if opp is None]
        if missing:
            return ServiceResult(
                success=False, errors=[f"Opportunity not found: {oid}" for oid in missing],
            )
        provider = self._store.get(EntityType.USER, offer.owner_id)
        result = self._router.route(need, offer, provider)
        return ServiceResult(success=True, data=result.to_dict())

    def rank_offers(
        self, need_id: str, offer_ids: Optional[Sequence[str]] = None,
    ) -> ServiceResult:
        """Score a need against the given offers, or every active offer."""
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        if need is None:
            return ServiceResult(success=False, errors=[f"Opportunity not found: {need_id}"])
        if offer_ids is None:
            offers = self._register.available_offers()
        else:
            offers = [
                o for o in (self._store.get(EntityType.OPPORTUNITY, oid) for oid in offer_ids)
                if o is not None
            ]
        providers: dict[str, UserAccount] = {}
        for offer in offers:
            provider = self._store.get(EntityType.USER, offer.owner_id)
            if provider is not None:
                providers[offer.owner_id] = provider
        results = self._router.rank(need, offers, providers)
        return ServiceResult(
            success=True, data={"need_id": need_id, "matches": [r.to_dict() for r in results]},
        )

    def validate_matching_model(
        self, need_id: str, offer_id: str, model: Optional[MatchingModel] = None,
    ) -> ServiceResult:
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        offer = self._store.get(EntityType.OPPORTUNITY, offer_id)
        if need is None or offer is None:
            return ServiceResult(success=False, errors=["Need and offer are required"])
        model = model or need.matching_model or self._classifier.classify(need)
        check = self._classifier.validate_compatibility(need, offer, model)
        return ServiceResult(
            success=check.valid, errors=check.errors, data={"matching_model": model.value},
        )

    # ------------------------------------------------------------------
    # Deal graph
    # ------------------------------------------------------------------

    def link_offers(
        self, need_id: str, offer_ids: Sequence[str], actor_id: str,
    ) -> ServiceResult:
        denied = self._deny(actor_id, "link_offers")
        if denied:
            return denied
        result = self._linker.link(need_id, offer_ids)
        return ServiceResult(
            success=result.success,
            errors=result.errors,
            data={
                "need_id": need_id,
                "linked_offers": result.linked_offers,
                "matching_model": result.matching_model.value if result.matching_model else None,
            },
        )

    def unlink_offers(
        self, need_id: str, offer_ids: Sequence[str], actor_id: str,
    ) -> ServiceResult:
        denied = self._deny(actor_id, "unlink_offers")
        if denied:
            return denied
        result = self._linker.unlink(need_id, offer_ids)
        return ServiceResult(
            success=result.success,
            errors=result.errors,
            data={
                "need_id": need_id,
                "linked_offers": result.linked_offers,
                "matching_model": result.matching_model.value if result.matching_model else None,
            },
        )

    # ------------------------------------------------------------------
    # Barter
    # ------------------------------------------------------------------

    def equivalence(self, need_id: str, offer_id: str) -> ServiceResult:
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        offer = self._store.get(EntityType.OPPORTUNITY, offer_id)
        if need is None or offer is None:
            return ServiceResult(success=False, errors=["Need and offer are required"])
        both = bidirectional_equivalence(need, offer, self._resolver.barter_tolerance())
        return ServiceResult(
            success=True,
            data={
                "need_to_offer": both.need_to_offer.to_dict(),
                "offer_to_need": both.offer_to_need.to_dict(),
                "both_within_tolerance": both.both_within_tolerance,
            },
        )

    def compatible_offers(self, need_id: str) -> ServiceResult:
        entries = self._register.compatible_offers(need_id)
        return ServiceResult(
            success=True,
            data={
                "need_id": need_id,
                "offers": [
                    {"offer_id": e.offer.opportunity_id, "score": e.match.score}
                    for e in entries
                ],
            },
        )

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------

    def create_proposal(self, proposal: Proposal, submitter_id: str) -> ServiceResult:
        """Validate and store a proposal in DRAFT state."""
        denied = self._deny(submitter_id, "create_proposal")
        if denied:
            return denied
        if submitter_id != proposal.bidder_company_id:
            return ServiceResult(
                success=False, errors=["Proposals are submitted by the bidding company"],
            )

        check = self._proposals.validate_proposal(submitter_id, proposal)
        if not check.valid:
            return ServiceResult(success=False, errors=check.errors)
        proposal = check.proposal

        if proposal.barter_terms:
            try:
                terms = BarterTerms.from_dict(proposal.barter_terms)
            except ValueError as e:
                return _failure(e)
            barter = validate_barter_terms(terms, self._resolver.barter_tolerance())
            if not barter.valid:
                return ServiceResult(success=False, errors=barter.errors)

        proposal.status = ProposalStatus.DRAFT
        proposal.created_utc = self._clock()
        try:
            self._store.create(EntityType.PROPOSAL, proposal)
        except ValueError as e:
            return _failure(e)
        self._audit.record(
            "proposal_created",
            "proposal",
            proposal.proposal_id,
            f"{proposal.proposal_type.value} on {proposal.target_type.value} {proposal.target_id}",
            actor_id=submitter_id,
        )
        return ServiceResult(
            success=True,
            data={
                "proposal_id": proposal.proposal_id,
                "status": proposal.status.value,
                "bid_scope": proposal.bid_scope.value if proposal.bid_scope else None,
            },
        )

    def submit_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        return self._transition_proposal(
            proposal_id, ProposalStatus.SUBMITTED, actor_id, bidder_only=True,
        )

    def review_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        return self._transition_proposal(proposal_id, ProposalStatus.UNDER_REVIEW, actor_id)

    def shortlist_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        return self._transition_proposal(proposal_id, ProposalStatus.SHORTLISTED, actor_id)

    def negotiate_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        return self._transition_proposal(proposal_id, ProposalStatus.NEGOTIATION, actor_id)

    def reject_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        return self._transition_proposal(proposal_id, ProposalStatus.REJECTED, actor_id)

    def award_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        denied = self._deny(actor_id, "award_proposal")
        if denied:
            return denied
        try:
            outcome = self._award_engine.award_proposal(proposal_id, actor_id)
        except (DealflowError, ValueError, OSError) as e:
            return _failure(e)

        data: dict[str, Any] = {
            "proposal_id": proposal_id,
            "status": outcome.proposal.status.value,
            "contract_id": outcome.contract.contract_id,
            "contract_type": outcome.contract.contract_type.value,
            "engagement_id": (
                outcome.engagement.engagement_id if outcome.engagement else None
            ),
            "created": outcome.created,
        }
        if outcome.warnings:
            data["warnings"] = list(outcome.warnings)
        return ServiceResult(success=True, data=data)

    def complete_proposal(self, proposal_id: str, actor_id: str) -> ServiceResult:
        return self._transition_proposal(proposal_id, ProposalStatus.COMPLETED, actor_id)

    # ------------------------------------------------------------------
    # Contracts
    # ------------------------------------------------------------------

    def send_contract(self, contract_id: str, actor_id: str) -> ServiceResult:
        return self._transition_contract(contract_id, ContractStatus.SENT, actor_id)

    def sign_contract(self, contract_id: str, signer_id: str) -> ServiceResult:
        """Record a signature. The contract is SIGNED once both parties sign."""
        denied = self._deny(signer_id, "sign_contract")
        if denied:
            return denied
        check = self._contracts.validate_signing(contract_id, signer_id)
        if not check.valid:
            return ServiceResult(success=False, errors=check.errors)

        contract = self._store.get(EntityType.CONTRACT, contract_id)
        signed_by = contract.signed_by + [signer_id]
        patch: dict[str, Any] = {"signed_by": signed_by}
        if all(party in signed_by for party in contract.parties):
            errors = ContractStateMachine.validate_transition(contract, ContractStatus.SIGNED)
            if errors:
                return ServiceResult(success=False, errors=errors)
            patch |= {"status": ContractStatus.SIGNED, "signed_utc": self._clock()}

        updated = self._store.update(EntityType.CONTRACT, contract_id, patch)
        self._audit.record(
            "contract_transition",
            "contract",
            contract_id,
            f"Signed by {signer_id}",
            {"before": {"status": contract.status.value},
             "after": {"status": updated.status.value}},
            actor_id=signer_id,
        )
        return ServiceResult(
            success=True,
            data={
                "contract_id": contract_id,
                "status": updated.status.value,
                "signed_by": list(updated.signed_by),
            },
        )

    def activate_contract(self, contract_id: str, actor_id: str) -> ServiceResult:
        return self._transition_contract(
            contract_id, ContractStatus.ACTIVE, actor_id, stamp="activated_utc",
        )

    def complete_contract(self, contract_id: str, actor_id: str) -> ServiceResult:
        return self._transition_contract(
            contract_id, ContractStatus.COMPLETED, actor_id, stamp="closed_utc",
        )

    def terminate_contract(self, contract_id: str, actor_id: str) -> ServiceResult:
        return self._transition_contract(
            contract_id, ContractStatus.TERMINATED, actor_id, stamp="closed_utc",
        )

    # ------------------------------------------------------------------
    # Engagements
    # ------------------------------------------------------------------

    def create_engagement(
        self,
        contract_id: str,
        engagement_type: EngagementType,
        actor_id: str,
        status: EngagementStatus = EngagementStatus.PLANNED,
        assigned_scope_type: Optional[str] = None,
        assigned_scope_id: Optional[str] = None,
    ) -> ServiceResult:
        denied = self._deny(actor_id, "create_engagement")
        if denied:
            return denied
        check = self._engagements.validate_creation(
            contract_id, engagement_type, status, assigned_scope_type, assigned_scope_id,
        )
        if not check.valid:
            return ServiceResult(success=False, errors=check.errors)

        now = self._clock()
        engagement = Engagement(
            engagement_id=self._new_id("ENG"),
            contract_id=contract_id,
            engagement_type=engagement_type,
            status=status,
            assigned_scope_type=(
                AssignedScope(assigned_scope_type) if assigned_scope_type else None
            ),
            assigned_scope_id=assigned_scope_id,
            created_utc=now,
            started_utc=now if status == EngagementStatus.ACTIVE else None,
        )
        try:
            self._store.create(EntityType.ENGAGEMENT, engagement)
        except ValueError as e:
            return _failure(e)
        self._audit.record(
            "engagement_created",
            "engagement",
            engagement.engagement_id,
            f"Engagement {engagement_type.value} for contract {contract_id}",
            actor_id=actor_id,
        )
        return ServiceResult(
            success=True,
            data={"engagement_id": engagement.engagement_id, "status": status.value},
        )

    def start_engagement(self, engagement_id: str, actor_id: str) -> ServiceResult:
        engagement = self._store.get(EntityType.ENGAGEMENT, engagement_id)
        if engagement is not None:
            contract = self._store.get(EntityType.CONTRACT, engagement.contract_id)
            if contract is None or contract.status not in _LIVE_CONTRACT:
                return ServiceResult(
                    success=False,
                    errors=["Contract must be SIGNED or ACTIVE to start engagement"],
                )
        return self._transition_engagement(
            engagement_id, EngagementStatus.ACTIVE, actor_id, stamp="started_utc",
        )

    def pause_engagement(self, engagement_id: str, actor_id: str) -> ServiceResult:
        return self._transition_engagement(engagement_id, EngagementStatus.PAUSED, actor_id)

    def resume_engagement(self, engagement_id: str, actor_id: str) -> ServiceResult:
        return self._transition_engagement(engagement_id, EngagementStatus.ACTIVE, actor_id)

    def complete_engagement(self, engagement_id: str, actor_id: str) -> ServiceResult:
        return self._transition_engagement(
            engagement_id, EngagementStatus.COMPLETED, actor_id, stamp="closed_utc",
        )

    def cancel_engagement(self, engagement_id: str, actor_id: str) -> ServiceResult:
        return self._transition_engagement(
            engagement_id, EngagementStatus.CANCELED, actor_id, stamp="closed_utc",
        )

    def transition_engagement(
        self, engagement_id: str, target: EngagementStatus, actor_id: str,
    ) -> ServiceResult:
        """Move an engagement to ``target`` through its named operation."""
        ops = {
            EngagementStatus.ACTIVE: self._activate_or_resume,
            EngagementStatus.PAUSED: self.pause_engagement,
            EngagementStatus.COMPLETED: self.complete_engagement,
            EngagementStatus.CANCELED: self.cancel_engagement,
        }
        op = ops.get(target)
        if op is None:
            return ServiceResult(
                success=False, errors=[f"Engagements cannot move to {target.value}"],
            )
        return op(engagement_id, actor_id)

    def _activate_or_resume(self, engagement_id: str, actor_id: str) -> ServiceResult:
        engagement = self._store.get(EntityType.ENGAGEMENT, engagement_id)
        if engagement is not None and engagement.status == EngagementStatus.PAUSED:
            return self.resume_engagement(engagement_id, actor_id)
        return self.start_engagement(engagement_id, actor_id)

    def assign_engagement_scope(
        self, engagement_id: str, scope_type: str, scope_id: str, actor_id: str,
    ) -> ServiceResult:
        denied = self._deny(actor_id, "assign_engagement_scope")
        if denied:
            return denied
        check = self._engagements.validate_scope_assignment(engagement_id, scope_type, scope_id)
        if not check.valid:
            return ServiceResult(success=False, errors=check.errors)
        updated = self._store.update(
            EntityType.ENGAGEMENT,
            engagement_id,
            {"assigned_scope_type": AssignedScope(scope_type), "assigned_scope_id": scope_id},
        )
        self._audit.record(
            "engagement_updated",
            "engagement",
            engagement_id,
            f"Assigned to {scope_type} {scope_id}",
            actor_id=actor_id,
        )
        return ServiceResult(
            success=True,
            data={
                "engagement_id": engagement_id,
                "assigned_scope_type": updated.assigned_scope_type.value,
                "assigned_scope_id": updated.assigned_scope_id,
            },
        )

    def link_milestones(
        self, engagement_id: str, milestone_ids: Iterable[str], actor_id: str,
    ) -> ServiceResult:
        denied = self._deny(actor_id, "link_milestones")
        if denied:
            return denied
        engagement = self._store.get(EntityType.ENGAGEMENT, engagement_id)
        if engagement is None:
            return ServiceResult(success=False, errors=["Engagement not found"])
        if EngagementStateMachine.is_terminal(engagement.status):
            return ServiceResult(
                success=False,
                errors=[f"Cannot link milestones to a {engagement.status.value} engagement"],
            )
        merged = list(dict.fromkeys(engagement.milestone_ids + list(milestone_ids)))
        self._store.update(EntityType.ENGAGEMENT, engagement_id, {"milestone_ids": merged})
        self._audit.record(
            "engagement_updated",
            "engagement",
            engagement_id,
            f"Linked milestones: {', '.join(merged)}",
            actor_id=actor_id,
        )
        return ServiceResult(
            success=True, data={"engagement_id": engagement_id, "milestone_ids": merged},
        )

    # ------------------------------------------------------------------
    # Status and queries
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return a system-wide status summary."""
        opportunities = self._store.get_all(EntityType.OPPORTUNITY)

        def _by_status(entity_type: EntityType) -> dict[str, int]:
            counts: dict[str, int] = {}
            for entity in self._store.get_all(entity_type):
                counts[entity.status.value] = counts.get(entity.status.value, 0) + 1
            return counts

        models: dict[str, int] = {}
        for opp in opportunities:
            if opp.is_need and opp.matching_model is not None:
                models[opp.matching_model.value] = models.get(opp.matching_model.value, 0) + 1

        return {
            "users": len(self._store.get_all(EntityType.USER)),
            "projects": len(self._store.get_all(EntityType.PROJECT)),
            "opportunities": {
                "needs": sum(1 for o in opportunities if o.is_need),
                "offers": sum(1 for o in opportunities if o.is_offer),
                "active": sum(1 for o in opportunities if o.status == OpportunityStatus.ACTIVE),
                "by_matching_model": models,
            },
            "proposals": _by_status(EntityType.PROPOSAL),
            "contracts": _by_status(EntityType.CONTRACT),
            "engagements": _by_status(EntityType.ENGAGEMENT),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _deny(self, actor_id: str, action: str) -> Optional[ServiceResult]:
        if self._permissions.is_allowed(actor_id, action):
            return None
        logger.info("Denied %s for %s", action, actor_id)
        return ServiceResult(
            success=False, errors=[f"Not permitted: {actor_id} cannot {action}"],
        )

    def _transition_proposal(
        self,
        proposal_id: str,
        target: ProposalStatus,
        actor_id: str,
        bidder_only: bool = False,
    ) -> ServiceResult:
        stamp = "submitted_utc" if target == ProposalStatus.SUBMITTED else None

        def _parties(proposal: Proposal) -> tuple[str, ...]:
            if bidder_only:
                return (proposal.bidder_company_id,)
            return (proposal.owner_company_id,)

        return self._transition(
            EntityType.PROPOSAL, proposal_id, ProposalStateMachine, target,
            actor_id, _parties, stamp,
        )

    def _transition_contract(
        self,
        contract_id: str,
        target: ContractStatus,
        actor_id: str,
        stamp: Optional[str] = None,
    ) -> ServiceResult:
        return self._transition(
            EntityType.CONTRACT, contract_id, ContractStateMachine, target,
            actor_id, lambda c: c.parties, stamp,
        )

    def _transition_engagement(
        self,
        engagement_id: str,
        target: EngagementStatus,
        actor_id: str,
        stamp: Optional[str] = None,
    ) -> ServiceResult:
        def _parties(engagement: Engagement) -> tuple[str, ...]:
            contract = self._store.get(EntityType.CONTRACT, engagement.contract_id)
            return contract.parties if contract is not None else ()

        return self._transition(
            EntityType.ENGAGEMENT, engagement_id, EngagementStateMachine, target,
            actor_id, _parties, stamp,
        )

    def _transition(
        self,
        entity_type: EntityType,
        entity_id: str,
        machine: type[TransitionTable],
        target: Any,
        actor_id: str,
        parties: Callable[[Any], tuple[str, ...]],
        stamp: Optional[str] = None,
    ) -> ServiceResult:
        """Validate and apply a lifecycle transition, then audit it."""
        label = machine.LABEL
        entity = self._store.get(entity_type, entity_id)
        if entity is None:
            return ServiceResult(
                success=False, errors=[f"{label.capitalize()} not found: {entity_id}"],
            )
        denied = self._deny(actor_id, f"transition_{label}")
        if denied:
            return denied
        if actor_id not in parties(entity):
            return ServiceResult(
                success=False,
                errors=[f"{actor_id} is not a party allowed to move this {label}"],
            )

        before = entity.status
        errors = machine.apply_transition(entity, target)
        if errors:
            return ServiceResult(success=False, errors=errors)

        patch: dict[str, Any] = {"status": target}
        if stamp:
            patch[stamp] = self._clock()
        self._store.update(entity_type, entity_id, patch)

        self._audit.record(
            f"{label}_transition",
            label,
            entity_id,
            f"{label} {before.value} → {target.value}",
            {"before": {"status": before.value}, "after": {"status": target.value}},
            actor_id=actor_id,
        )
        return ServiceResult(
            success=True, data={f"{label}_id": entity_id, "status": target.value},
        )
