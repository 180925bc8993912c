"""Engagement legality — an engagement needs a live contract of the right type.

Creation is allowed against a SIGNED or ACTIVE contract. A PLANNED
engagement may also be created against a DRAFT or SENT contract, which
is how awarding sets up the engagement before signing. The engagement
type must match ENGAGEMENT_TYPE_FOR_CONTRACT.
"""

from __future__ import annotations

from typing import Optional

from dealflow.errors import ValidationResult
from dealflow.models.deal import (
    ENGAGEMENT_TYPE_FOR_CONTRACT,
    AssignedScope,
    ContractStatus,
    EngagementStatus,
    EngagementType,
)
from dealflow.persistence.store import EntityStore, EntityType

_LIVE_CONTRACT = frozenset({ContractStatus.SIGNED, ContractStatus.ACTIVE})
_UNSIGNED_CONTRACT = frozenset({ContractStatus.DRAFT, ContractStatus.SENT})
_SCOPE_TYPES = ", ".join(s.value for s in AssignedScope)


def _scope_type(value) -> Optional[AssignedScope]:
    try:
        return AssignedScope(value)
    except ValueError:
        return None


class EngagementLegalityValidator:
    """Checks engagement creation and scope assignment against its contract.

    Usage:
        validator = EngagementLegalityValidator(store)
        result = validator.validate_creation(contract_id, EngagementType.ADVISORY)
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def validate_creation(
        self,
        contract_id: str,
        engagement_type: EngagementType,
        status: EngagementStatus = EngagementStatus.PLANNED,
        assigned_scope_type: Optional[str] = None,
        assigned_scope_id: Optional[str] = None,
    ) -> ValidationResult:
        errors: list[str] = []

        if not contract_id:
            errors.append("Engagement must have contractId")
        else:
            contract = self._store.get(EntityType.CONTRACT, contract_id)
            if contract is None:
                errors.append("Contract not found")
            else:
                early_plan = (
                    status == EngagementStatus.PLANNED
                    and contract.status in _UNSIGNED_CONTRACT
                )
                if contract.status not in _LIVE_CONTRACT and not early_plan:
                    errors.append(
                        "Contract must be SIGNED or ACTIVE to create engagement. "
                        f"Current status: {contract.status.value}"
                    )
                expected = ENGAGEMENT_TYPE_FOR_CONTRACT[contract.contract_type]
                if engagement_type != expected:
                    errors.append(
                        f"Engagement type {engagement_type.value} does not match contract "
                        f"type {contract.contract_type.value}. Expected: {expected.value}"
                    )

        if assigned_scope_id and not assigned_scope_type:
            errors.append(
                "assignedToScopeType is required when assignedToScopeId is provided"
            )
        if assigned_scope_type and _scope_type(assigned_scope_type) is None:
            errors.append(f"Invalid assignedToScopeType. Must be one of: {_SCOPE_TYPES}")

        return ValidationResult(valid=not errors, errors=errors)

    def validate_scope_assignment(
        self, engagement_id: str, scope_type: Optional[str], scope_id: Optional[str],
    ) -> ValidationResult:
        errors: list[str] = []
        if not scope_type:
            errors.append("Scope type is required")
        elif _scope_type(scope_type) is None:
            errors.append(f"Invalid scope type. Must be one of: {_SCOPE_TYPES}")
        if not scope_id:
            errors.append("Scope ID is required")

        engagement = self._store.get(EntityType.ENGAGEMENT, engagement_id)
        if engagement is None:
            errors.append("Engagement not found")
        else:
            contract = self._store.get(EntityType.CONTRACT, engagement.contract_id)
            if contract is None:
                errors.append("Contract not found")
            elif contract.status not in _LIVE_CONTRACT:
                errors.append("Can only assign engagements with active contracts to scope")

        return ValidationResult(valid=not errors, errors=errors)
