"""Tests for contract legality — parties, sub-contracts, service providers, signing."""

from datetime import date, datetime

import pytest

from dealflow.legality.contract_validator import ContractValidator
from dealflow.models.deal import Contract, ContractScope, ContractStatus, ContractType
from dealflow.models.party import Role, UserAccount
from dealflow.persistence.identity import StoreRoleOracle
from dealflow.persistence.store import EntityType, InMemoryEntityStore


def _make_contract(
    contract_id: str = "CTR-1",
    contract_type: ContractType = ContractType.PROJECT_CONTRACT,
    scope_type: ContractScope = ContractScope.PROJECT,
    buyer: str = "U-owner",
    buyer_type: str = "BENEFICIARY",
    provider: str = "U-vendor",
    provider_type: str = "VENDOR_CORPORATE",
    **extra,
) -> Contract:
    fields = {
        "scope_id": "P-1",
        "terms": {"pricing": {"amount": "1000", "currency": "SAR"}},
    }
    fields.update(extra)
    return Contract(
        contract_id=contract_id,
        contract_type=contract_type,
        scope_type=scope_type,
        buyer_party_id=buyer,
        buyer_party_type=buyer_type,
        provider_party_id=provider,
        provider_party_type=provider_type,
        **fields,
    )


def _make_sub_contract(**overrides) -> Contract:
    fields = {
        "contract_id": "CTR-sub",
        "contract_type": ContractType.SUB_CONTRACT,
        "buyer": "U-vendor",
        "buyer_type": "VENDOR_CORPORATE",
        "provider": "U-sub",
        "provider_type": "SUB_CONTRACTOR",
        "parent_contract_id": "CTR-parent",
    }
    fields.update(overrides)
    return _make_contract(**fields)


@pytest.fixture
def store() -> InMemoryEntityStore:
    store = InMemoryEntityStore()
    for user_id, role in (
        ("U-owner", Role.BENEFICIARY),
        ("U-vendor", Role.VENDOR_CORPORATE),
        ("U-sub", Role.SUB_CONTRACTOR),
    ):
        store.create(EntityType.USER, UserAccount(user_id, role))
    store.create(EntityType.CONTRACT, _make_contract("CTR-parent"))
    store.create(EntityType.CONTRACT, _make_contract(
        "CTR-service",
        ContractType.SERVICE_CONTRACT,
        ContractScope.SERVICE_REQUEST,
        provider="U-provider",
        provider_type="SERVICE_PROVIDER",
    ))
    store.create(EntityType.CONTRACT, _make_contract("CTR-consult", provider_type="CONSULTANT"))
    store.create(EntityType.CONTRACT, _make_contract(
        "CTR-sent", status=ContractStatus.SENT, signed_by=["U-owner"],
    ))
    store.create(EntityType.CONTRACT, _make_contract("CTR-active", status=ContractStatus.ACTIVE))
    return store


@pytest.fixture
def validator(store: InMemoryEntityStore) -> ContractValidator:
    return ContractValidator(store, StoreRoleOracle(store))


class TestCreation:
    def test_valid_project_contract(self, validator: ContractValidator) -> None:
        assert validator.validate_creation(_make_contract()).valid

    def test_required_parties(self, validator: ContractValidator) -> None:
        result = validator.validate_creation(_make_contract(buyer="", scope_id=""))
        assert "scopeId is required" in result.errors
        assert "buyerPartyId is required" in result.errors

    def test_party_types_checked(self, validator: ContractValidator) -> None:
        result = validator.validate_creation(
            _make_contract(buyer_type="ENTITY", provider_type="BENEFICIARY"),
        )
        assert len(result.errors) == 2
        assert result.errors[0].startswith("Invalid buyerPartyType")

    def test_parent_only_on_sub_contract(self, validator: ContractValidator) -> None:
        result = validator.validate_creation(_make_contract(parent_contract_id="CTR-parent"))
        assert result.errors == ["parentContractId should only be set for SUB_CONTRACT"]

    def test_dates(self, validator: ContractValidator) -> None:
        bad = validator.validate_creation(_make_contract(start_date="soon"))
        backwards = validator.validate_creation(
            _make_contract(start_date="2026-05-01", end_date="2026-04-01"),
        )
        assert bad.errors == ["Invalid startDate"]
        assert backwards.errors == ["endDate must be after startDate"]

    def test_date_objects_accepted(self, validator: ContractValidator) -> None:
        result = validator.validate_creation(
            _make_contract(start_date=date(2026, 5, 1), end_date=datetime(2026, 6, 1, 9, 30)),
        )
        assert result.valid
        backwards = validator.validate_creation(
            _make_contract(start_date=date(2026, 5, 1), end_date="2026-04-01"),
        )
        assert backwards.errors == ["endDate must be after startDate"]

    def test_non_string_date_rejected(self, validator: ContractValidator) -> None:
        result = validator.validate_creation(_make_contract(start_date=20260501))
        assert result.errors == ["Invalid startDate"]

    def test_pricing_needs_currency(self, validator: ContractValidator) -> None:
        result = validator.validate_creation(_make_contract(terms={"pricing": {"amount": "5"}}))
        assert result.errors == ["terms.pricing.currency is required"]


class TestSubContract:
    def test_valid(self, validator: ContractValidator) -> None:
        assert validator.validate_creation(_make_sub_contract()).valid

    def test_provider_must_be_sub_contractor(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(_make_sub_contract(provider_type="CONSULTANT"))
        assert error == "SubContract must have SUB_CONTRACTOR as provider"

    def test_buyer_must_be_vendor(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(_make_sub_contract(buyer_type="BENEFICIARY"))
        assert error == "SubContract buyer must be VENDOR"

    def test_parent_required(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(_make_sub_contract(parent_contract_id=None))
        assert error == "SubContract must have parentContractId"

    def test_parent_must_exist(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(_make_sub_contract(parent_contract_id="CTR-x"))
        assert error == "Parent contract not found"

    def test_parent_must_be_project_contract(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(
            _make_sub_contract(parent_contract_id="CTR-service"),
        )
        assert error == "Parent contract must be PROJECT_CONTRACT or MEGA_PROJECT_CONTRACT"

    def test_parent_provider_must_be_vendor(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(
            _make_sub_contract(parent_contract_id="CTR-consult"),
        )
        assert error == "Parent contract provider must be VENDOR"

    def test_never_directly_with_beneficiary(self, validator: ContractValidator) -> None:
        error = validator.validate_sub_contract(_make_sub_contract(buyer="U-owner"))
        assert error == "SubContractor cannot contract directly with Beneficiary"


class TestServiceProvider:
    def test_service_contract_on_service_request(self, validator: ContractValidator) -> None:
        contract = _make_contract(
            contract_type=ContractType.SERVICE_CONTRACT,
            scope_type=ContractScope.SERVICE_REQUEST,
            provider_type="SERVICE_PROVIDER",
        )
        assert validator.validate_creation(contract).valid

    def test_never_on_projects(self) -> None:
        contract = _make_contract(provider_type="SERVICE_PROVIDER")
        assert ContractValidator.validate_service_provider_contract(contract) == (
            "ServiceProvider cannot contract for Projects/MegaProjects directly"
        )

    def test_must_be_service_contract(self) -> None:
        contract = _make_contract(
            contract_type=ContractType.ADVISORY_CONTRACT,
            scope_type=ContractScope.SERVICE_REQUEST,
            provider_type="SERVICE_PROVIDER",
        )
        assert ContractValidator.validate_service_provider_contract(contract) == (
            "ServiceProvider contracts must be SERVICE_CONTRACT type"
        )

    def test_must_reference_service_request(self) -> None:
        contract = _make_contract(
            contract_type=ContractType.SERVICE_CONTRACT,
            scope_type=ContractScope.SUB_PROJECT,
            provider_type="SERVICE_PROVIDER",
        )
        assert ContractValidator.validate_service_provider_contract(contract) == (
            "ServiceProvider contracts must reference SERVICE_REQUEST"
        )


class TestSigning:
    def test_party_may_sign_draft(self, validator: ContractValidator) -> None:
        assert validator.validate_signing("CTR-parent", "U-vendor").valid

    def test_ids_required(self, validator: ContractValidator) -> None:
        result = validator.validate_signing("", "")
        assert result.errors == ["Contract ID is required", "Signer ID is required"]

    def test_contract_must_exist(self, validator: ContractValidator) -> None:
        assert validator.validate_signing("CTR-ghost", "U-owner").errors == ["Contract not found"]

    def test_only_unsigned_states(self, validator: ContractValidator) -> None:
        result = validator.validate_signing("CTR-active", "U-owner")
        assert "Current status: ACTIVE" in result.errors[0]

    def test_only_parties(self, validator: ContractValidator) -> None:
        result = validator.validate_signing("CTR-parent", "U-sub")
        assert result.errors == ["Signer must be either the buyer or provider party"]

    def test_no_double_signing(self, validator: ContractValidator) -> None:
        result = validator.validate_signing("CTR-sent", "U-owner")
        assert result.errors == ["Signer has already signed this contract"]
