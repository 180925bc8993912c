"""Contract legality — party and scope rules for a contract.

SUB_CONTRACT: provider is a sub-contractor, buyer is a vendor, and the
parent is a PROJECT/MEGA_PROJECT contract whose provider is a vendor.
A sub-contractor never contracts directly with a beneficiary.

Service providers contract only through SERVICE_CONTRACT on a
SERVICE_REQUEST scope.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from dealflow.errors import ValidationResult
from dealflow.models.deal import Contract, ContractScope, ContractStatus, ContractType
from dealflow.models.party import (
    BUYER_ONLY_ROLES,
    VENDOR_PARTY_TYPES,
    BuyerPartyType,
    ProviderPartyType,
)
from dealflow.persistence.identity import RoleOracle
from dealflow.persistence.store import EntityStore, EntityType

_BUYER_TYPES = [t.value for t in BuyerPartyType]
_PROVIDER_TYPES = [t.value for t in ProviderPartyType]
_PARENT_CONTRACT_TYPES = frozenset({
    ContractType.PROJECT_CONTRACT,
    ContractType.MEGA_PROJECT_CONTRACT,
})
_SIGNABLE = frozenset({ContractStatus.DRAFT, ContractStatus.SENT})


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


class ContractValidator:
    """Creation and signing checks for contracts.

    Usage:
        validator = ContractValidator(store, roles)
        result = validator.validate_creation(contract)
    """

    def __init__(self, store: EntityStore, roles: Optional[RoleOracle] = None) -> None:
        self._store = store
        self._roles = roles

    def validate_creation(self, contract: Contract) -> ValidationResult:
        errors: list[str] = []

        if not contract.scope_id:
            errors.append("scopeId is required")
        if not contract.buyer_party_id:
            errors.append("buyerPartyId is required")
        if contract.buyer_party_type not in _BUYER_TYPES:
            errors.append(f"Invalid buyerPartyType. Must be one of: {', '.join(_BUYER_TYPES)}")
        if not contract.provider_party_id:
            errors.append("providerPartyId is required")
        if contract.provider_party_type not in _PROVIDER_TYPES:
            errors.append(
                f"Invalid providerPartyType. Must be one of: {', '.join(_PROVIDER_TYPES)}"
            )

        if contract.contract_type == ContractType.SUB_CONTRACT:
            error = self.validate_sub_contract(contract)
            if error:
                errors.append(error)
        elif contract.parent_contract_id:
            errors.append("parentContractId should only be set for SUB_CONTRACT")

        if contract.provider_party_type == ProviderPartyType.SERVICE_PROVIDER.value:
            error = self.validate_service_provider_contract(contract)
            if error:
                errors.append(error)

        errors.extend(self._date_errors(contract))

        pricing = contract.terms.get("pricing")
        if pricing is not None and not pricing.get("currency"):
            errors.append("terms.pricing.currency is required")

        return ValidationResult(valid=not errors, errors=errors)

    def validate_sub_contract(self, contract: Contract) -> Optional[str]:
        """The first violated SUB_CONTRACT rule, or None."""
        if contract.provider_party_type != ProviderPartyType.SUB_CONTRACTOR.value:
            return "SubContract must have SUB_CONTRACTOR as provider"
        if contract.buyer_party_type not in VENDOR_PARTY_TYPES:
            return "SubContract buyer must be VENDOR"
        if not contract.parent_contract_id:
            return "SubContract must have parentContractId"

        parent = self._store.get(EntityType.CONTRACT, contract.parent_contract_id)
        if parent is None:
            return "Parent contract not found"
        if parent.contract_type not in _PARENT_CONTRACT_TYPES:
            return "Parent contract must be PROJECT_CONTRACT or MEGA_PROJECT_CONTRACT"
        if parent.provider_party_type not in VENDOR_PARTY_TYPES:
            return "Parent contract provider must be VENDOR"

        if self._roles is not None:
            if self._roles.role_of(contract.buyer_party_id) in BUYER_ONLY_ROLES:
                return "SubContractor cannot contract directly with Beneficiary"
        return None

    @staticmethod
    def validate_service_provider_contract(contract: Contract) -> Optional[str]:
        if contract.scope_type in (ContractScope.PROJECT, ContractScope.MEGA_PROJECT):
            return "ServiceProvider cannot contract for Projects/MegaProjects directly"
        if contract.contract_type != ContractType.SERVICE_CONTRACT:
            return "ServiceProvider contracts must be SERVICE_CONTRACT type"
        if contract.scope_type != ContractScope.SERVICE_REQUEST:
            return "ServiceProvider contracts must reference SERVICE_REQUEST"
        return None

    @staticmethod
    def _date_errors(contract: Contract) -> list[str]:
        errors = []
        start = end = None
        if contract.start_date:
            start = _parse_date(contract.start_date)
            if start is None:
                errors.append("Invalid startDate")
        if contract.end_date:
            end = _parse_date(contract.end_date)
            if end is None:
                errors.append("Invalid endDate")
        if start is not None and end is not None and end <= start:
            errors.append("endDate must be after startDate")
        return errors

    def validate_signing(self, contract_id: str, signer_id: str) -> ValidationResult:
        errors: list[str] = []
        if not contract_id:
            errors.append("Contract ID is required")
        if not signer_id:
            errors.append("Signer ID is required")
        if errors:
            return ValidationResult.fail(errors)

        contract = self._store.get(EntityType.CONTRACT, contract_id)
        if contract is None:
            return ValidationResult.fail(["Contract not found"])

        if contract.status not in _SIGNABLE:
            errors.append(
                "Contract must be in DRAFT or SENT status to be signed. "
                f"Current status: {contract.status.value}"
            )
        if signer_id not in contract.parties:
            errors.append("Signer must be either the buyer or provider party")
        if signer_id in contract.signed_by:
            errors.append("Signer has already signed this contract")
        return ValidationResult(valid=not errors, errors=errors)
