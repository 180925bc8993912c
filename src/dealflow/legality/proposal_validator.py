"""Proposal legality — who may bid on what.

Rules are evaluated in priority order and the first violated rule
ends the check:

0. A bidder can never bid on its own opportunity.
1. Vendor-type roles bid only on a full project or a structurally
   complete sub-project, never on minor or partial scope.
2. Sub-contractors bid only to a vendor, only with
   ``sub_contractor_to_vendor`` proposals, and only on minor scope.
3. Entities and beneficiaries never submit proposals.

A passing check returns the proposal with its bid scope (and, for
sub-contractors, its type) normalised.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Optional

from dealflow.errors import ValidationResult
from dealflow.models.deal import BidScope, Proposal, ProposalType, TargetType
from dealflow.models.party import BUYER_ONLY_ROLES, VENDOR_ROLES, Role
from dealflow.models.project import Project, SubProject
from dealflow.persistence.identity import RoleOracle
from dealflow.persistence.store import EntityStore, EntityType

# Roles that bid on projects and that sub-contractors may target.
BIDDING_VENDOR_ROLES = VENDOR_ROLES | {Role.SERVICE_PROVIDER}

_PROJECT_TARGETS = frozenset({TargetType.PROJECT, TargetType.MEGA_PROJECT})


@dataclass(frozen=True)
class ProposalValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    proposal: Optional[Proposal] = None


def _fail(message: str) -> ProposalValidation:
    return ProposalValidation(valid=False, errors=[message])


def validate_subproject_completeness(sub_project: Optional[SubProject]) -> ValidationResult:
    """A sub-project is biddable only with independent, complete scope."""
    if sub_project is None:
        return ValidationResult.fail(["Subproject is required"])

    missing = [
        name
        for name in ("title", "description", "category", "scope", "budget")
        if not getattr(sub_project, name)
    ]
    scope = sub_project.scope
    if scope is not None and not scope.required_services and not scope.skill_requirements:
        missing.append("scope.requiredServices or scope.skillRequirements")
    budget = sub_project.budget
    if budget is not None and not (budget.min or budget.max or budget.total):
        missing.append("budget (min, max, or total)")

    if missing:
        return ValidationResult.fail(
            [f"Subproject is incomplete. Missing required fields: {', '.join(missing)}"]
        )
    return ValidationResult.ok()


class ProposalLegalityValidator:
    """Role-gated proposal checks.

    Usage:
        validator = ProposalLegalityValidator(store, roles)
        result = validator.validate_proposal(user_id, proposal)
        if not result.valid: ...
    """

    def __init__(self, store: EntityStore, roles: RoleOracle) -> None:
        self._store = store
        self._roles = roles

    def validate_proposal(
        self,
        submitter_id: str,
        proposal: Proposal,
        project: Optional[Project] = None,
    ) -> ProposalValidation:
        if proposal.bidder_company_id == proposal.owner_company_id:
            return _fail("Cannot submit a proposal to your own opportunity")

        role = self._roles.role_of(submitter_id)
        if role is None:
            return _fail("User not authenticated")

        if role in BIDDING_VENDOR_ROLES:
            if proposal.target_type not in _PROJECT_TARGETS:
                return ProposalValidation(valid=True, proposal=proposal)
            if project is None:
                project = self._store.get(EntityType.PROJECT, proposal.target_id)
            if project is None:
                return _fail("Project is required for vendor proposals")
            return self.validate_vendor_scope(proposal, project)

        if role == Role.SUB_CONTRACTOR:
            return self.validate_sub_contractor(proposal)

        if role in BUYER_ONLY_ROLES:
            return _fail("Entities cannot submit proposals. They only receive proposals.")

        return ProposalValidation(valid=True, proposal=proposal)

    def validate_vendor_scope(self, proposal: Proposal, project: Project) -> ProposalValidation:
        if proposal.bid_scope in (BidScope.MINOR_SCOPE, BidScope.PARTIAL):
            return _fail(
                "Vendors cannot submit proposals for partial work. "
                "You can only bid on complete subprojects or full projects."
            )

        if proposal.sub_project_id:
            if not project.sub_projects:
                return _fail("Project does not have subprojects defined")
            sub_project = project.find_sub_project(proposal.sub_project_id)
            if sub_project is None:
                return _fail("Subproject not found")
            if not validate_subproject_completeness(sub_project).valid:
                return _fail(
                    "Cannot bid on incomplete subproject. Subprojects must have "
                    "complete, independent scope definitions."
                )
            return ProposalValidation(
                valid=True,
                proposal=dataclasses.replace(proposal, bid_scope=BidScope.SUB_PROJECT),
            )

        if proposal.bid_scope == BidScope.SUB_PROJECT:
            return _fail("Subproject is required when bidding on a subproject")

        return ProposalValidation(
            valid=True,
            proposal=dataclasses.replace(proposal, bid_scope=BidScope.FULL_PROJECT),
        )

    def validate_sub_contractor(self, proposal: Proposal) -> ProposalValidation:
        if not proposal.vendor_id:
            return _fail(
                "Sub_contractors can only submit proposals to vendors. Please select a vendor."
            )
        vendor_role = self._roles.role_of(proposal.vendor_id)
        if vendor_role is None:
            return _fail("Vendor not found")
        if vendor_role not in BIDDING_VENDOR_ROLES:
            return _fail("Selected user is not a vendor")

        if proposal.bid_scope in (BidScope.FULL_PROJECT, BidScope.SUB_PROJECT):
            return _fail(
                "Sub_contractors can only work on minor scope work, "
                "not full projects or subprojects."
            )
        if proposal.bid_scope == BidScope.PARTIAL:
            return _fail("Sub_contractor proposals must use minor_scope")
        if proposal.proposal_type != ProposalType.SUB_CONTRACTOR_TO_VENDOR:
            return _fail(
                "Sub_contractor proposals must be of type sub_contractor_to_vendor"
            )

        return ProposalValidation(
            valid=True,
            proposal=dataclasses.replace(proposal, bid_scope=BidScope.MINOR_SCOPE),
        )
