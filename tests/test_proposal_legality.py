"""Tests for proposal legality — role-gated bidding rules."""

from decimal import Decimal
from typing import Optional

import pytest

from dealflow.legality.proposal_validator import (
    ProposalLegalityValidator,
    validate_subproject_completeness,
)
from dealflow.models.deal import BidScope, Proposal, ProposalType, TargetType
from dealflow.models.party import Role, UserAccount
from dealflow.models.project import Project, ProjectBudget, ProjectScope, SubProject
from dealflow.persistence.identity import RoleCache, StoreRoleOracle
from dealflow.persistence.store import EntityType, InMemoryEntityStore


def _complete_sub_project(sp_id: str = "SP-1") -> SubProject:
    return SubProject(
        sub_project_id=sp_id,
        title="Foundations",
        description="Excavation and foundations",
        category="Infrastructure",
        scope=ProjectScope(required_services=("excavation",)),
        budget=ProjectBudget(total=Decimal("250000")),
    )


def _make_proposal(
    bidder: str = "U-vendor",
    owner: str = "U-owner",
    ptype: ProposalType = ProposalType.PROJECT_BID,
    target_type: TargetType = TargetType.PROJECT,
    target_id: str = "P-1",
    bid_scope: Optional[BidScope] = None,
    sub_project_id: Optional[str] = None,
    vendor_id: Optional[str] = None,
) -> Proposal:
    return Proposal(
        proposal_id="PRP-1",
        proposal_type=ptype,
        target_type=target_type,
        target_id=target_id,
        owner_company_id=owner,
        bidder_company_id=bidder,
        bid_scope=bid_scope,
        sub_project_id=sub_project_id,
        vendor_id=vendor_id,
    )


def _make_sub_proposal(**overrides) -> Proposal:
    fields = {
        "bidder": "U-sub",
        "owner": "U-vendor",
        "ptype": ProposalType.SUB_CONTRACTOR_TO_VENDOR,
        "bid_scope": BidScope.MINOR_SCOPE,
        "vendor_id": "U-vendor",
    }
    fields.update(overrides)
    return _make_proposal(**fields)


@pytest.fixture
def store() -> InMemoryEntityStore:
    store = InMemoryEntityStore()
    for user_id, role in (
        ("U-owner", Role.BENEFICIARY),
        ("U-vendor", Role.VENDOR_CORPORATE),
        ("U-provider", Role.SERVICE_PROVIDER),
        ("U-sub", Role.SUB_CONTRACTOR),
        ("U-entity", Role.ENTITY),
        ("U-consultant", Role.CONSULTANT),
    ):
        store.create(EntityType.USER, UserAccount(user_id, role))
    store.create(EntityType.PROJECT, Project(
        project_id="P-1",
        title="Tower",
        owner_id="U-owner",
        sub_projects=[_complete_sub_project(), SubProject("SP-2", title="Landscaping")],
    ))
    store.create(EntityType.PROJECT, Project("P-flat", "Warehouse", "U-owner"))
    return store


@pytest.fixture
def validator(store: InMemoryEntityStore) -> ProposalLegalityValidator:
    return ProposalLegalityValidator(store, StoreRoleOracle(store, RoleCache()))


class TestGeneralRules:
    def test_cannot_bid_on_own_opportunity(self, validator: ProposalLegalityValidator) -> None:
        proposal = _make_proposal(bidder="U-owner")
        result = validator.validate_proposal("U-owner", proposal)
        assert result.errors == ["Cannot submit a proposal to your own opportunity"]

    def test_unknown_user(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-ghost", _make_proposal(bidder="U-ghost"))
        assert result.errors == ["User not authenticated"]

    def test_entities_never_bid(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-entity", _make_proposal(bidder="U-entity"))
        assert result.errors == ["Entities cannot submit proposals. They only receive proposals."]

    def test_other_roles_pass_through(self, validator: ProposalLegalityValidator) -> None:
        proposal = _make_proposal(
            bidder="U-consultant",
            ptype=ProposalType.ADVISORY_OFFER,
            target_type=TargetType.ADVISORY_REQUEST,
        )
        result = validator.validate_proposal("U-consultant", proposal)
        assert result.valid
        assert result.proposal == proposal


class TestVendorScope:
    def test_full_project_normalised(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-vendor", _make_proposal())
        assert result.valid
        assert result.proposal.bid_scope == BidScope.FULL_PROJECT

    def test_minor_scope_rejected(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal(
            "U-vendor", _make_proposal(bid_scope=BidScope.MINOR_SCOPE),
        )
        assert not result.valid
        assert "Vendors cannot submit proposals for partial work" in result.errors[0]

    def test_partial_rejected(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal(
            "U-vendor", _make_proposal(bid_scope=BidScope.PARTIAL),
        )
        assert not result.valid

    def test_complete_sub_project(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-vendor", _make_proposal(sub_project_id="SP-1"))
        assert result.valid
        assert result.proposal.bid_scope == BidScope.SUB_PROJECT

    def test_incomplete_sub_project(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-vendor", _make_proposal(sub_project_id="SP-2"))
        assert "Cannot bid on incomplete subproject" in result.errors[0]

    def test_unknown_sub_project(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-vendor", _make_proposal(sub_project_id="SP-9"))
        assert result.errors == ["Subproject not found"]

    def test_project_without_sub_projects(self, validator: ProposalLegalityValidator) -> None:
        proposal = _make_proposal(target_id="P-flat", sub_project_id="SP-1")
        result = validator.validate_proposal("U-vendor", proposal)
        assert result.errors == ["Project does not have subprojects defined"]

    def test_sub_project_scope_needs_id(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal(
            "U-vendor", _make_proposal(bid_scope=BidScope.SUB_PROJECT),
        )
        assert result.errors == ["Subproject is required when bidding on a subproject"]

    def test_missing_project(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-vendor", _make_proposal(target_id="P-ghost"))
        assert result.errors == ["Project is required for vendor proposals"]

    def test_explicit_project_argument(self, validator: ProposalLegalityValidator) -> None:
        project = Project("P-ghost", "Ad hoc", "U-owner")
        result = validator.validate_proposal(
            "U-vendor", _make_proposal(target_id="P-ghost"), project=project,
        )
        assert result.valid

    def test_service_request_not_scope_checked(
        self, validator: ProposalLegalityValidator,
    ) -> None:
        proposal = _make_proposal(
            ptype=ProposalType.SERVICE_OFFER,
            target_type=TargetType.SERVICE_REQUEST,
            target_id="OPP-1",
            bid_scope=BidScope.MINOR_SCOPE,
        )
        assert validator.validate_proposal("U-vendor", proposal).valid

    def test_service_provider_follows_vendor_rules(
        self, validator: ProposalLegalityValidator,
    ) -> None:
        proposal = _make_proposal(bidder="U-provider", bid_scope=BidScope.PARTIAL)
        assert not validator.validate_proposal("U-provider", proposal).valid


class TestSubContractor:
    def test_valid_minor_scope(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-sub", _make_sub_proposal(bid_scope=None))
        assert result.valid
        assert result.proposal.bid_scope == BidScope.MINOR_SCOPE

    def test_vendor_required(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-sub", _make_sub_proposal(vendor_id=None))
        assert "Please select a vendor" in result.errors[0]

    def test_vendor_must_exist(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-sub", _make_sub_proposal(vendor_id="U-ghost"))
        assert result.errors == ["Vendor not found"]

    def test_target_must_be_vendor(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal("U-sub", _make_sub_proposal(vendor_id="U-owner"))
        assert result.errors == ["Selected user is not a vendor"]

    def test_full_project_rejected(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal(
            "U-sub", _make_sub_proposal(bid_scope=BidScope.FULL_PROJECT),
        )
        assert result.errors == [
            "Sub_contractors can only work on minor scope work, not full projects or subprojects."
        ]

    def test_partial_rejected(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal(
            "U-sub", _make_sub_proposal(bid_scope=BidScope.PARTIAL),
        )
        assert result.errors == ["Sub_contractor proposals must use minor_scope"]

    def test_wrong_proposal_type(self, validator: ProposalLegalityValidator) -> None:
        result = validator.validate_proposal(
            "U-sub", _make_sub_proposal(ptype=ProposalType.PROJECT_BID),
        )
        assert result.errors == [
            "Sub_contractor proposals must be of type sub_contractor_to_vendor"
        ]


class TestSubProjectCompleteness:
    def test_complete(self) -> None:
        assert validate_subproject_completeness(_complete_sub_project()).valid

    def test_missing(self) -> None:
        assert validate_subproject_completeness(None).errors == ["Subproject is required"]

    def test_lists_missing_fields(self) -> None:
        result = validate_subproject_completeness(SubProject("SP-x", title="Only a title"))
        assert not result.valid
        assert "description, category, scope, budget" in result.errors[0]

    def test_empty_scope_and_budget(self) -> None:
        sp = SubProject(
            "SP-x", "T", "D", "C",
            scope=ProjectScope(),
            budget=ProjectBudget(),
        )
        result = validate_subproject_completeness(sp)
        assert "scope.requiredServices or scope.skillRequirements" in result.errors[0]
        assert "budget (min, max, or total)" in result.errors[0]
