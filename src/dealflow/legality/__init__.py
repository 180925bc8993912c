"""Legality — role, party and scope rules for proposals, contracts and engagements."""

from dealflow.legality.contract_validator import ContractValidator
from dealflow.legality.engagement_validator import EngagementLegalityValidator
from dealflow.legality.proposal_validator import (
    BIDDING_VENDOR_ROLES,
    ProposalLegalityValidator,
    ProposalValidation,
    validate_subproject_completeness,
)

__all__ = [
    "BIDDING_VENDOR_ROLES",
    "ContractValidator",
    "EngagementLegalityValidator",
    "ProposalLegalityValidator",
    "ProposalValidation",
    "validate_subproject_completeness",
]
