"""Core data models for the deal-formation engine."""

from dealflow.models.deal import (
    AssignedScope,
    BidScope,
    Contract,
    ContractScope,
    ContractStatus,
    ContractType,
    Engagement,
    EngagementStatus,
    EngagementType,
    Proposal,
    ProposalStatus,
    ProposalType,
    TargetType,
)
from dealflow.models.match import MatchCriteria, MatchResult
from dealflow.models.opportunity import (
    Availability,
    BudgetRange,
    CollaborationModel,
    IntentType,
    Location,
    MatchingModel,
    Opportunity,
    OpportunityAttributes,
    OpportunityStatus,
    PaymentMode,
    ServiceItem,
    Timeline,
)
from dealflow.models.party import Role, UserAccount
from dealflow.models.project import Project, ProjectBudget, ProjectScope, SubProject

__all__ = [
    "AssignedScope",
    "Availability",
    "BidScope",
    "BudgetRange",
    "CollaborationModel",
    "Contract",
    "ContractScope",
    "ContractStatus",
    "ContractType",
    "Engagement",
    "EngagementStatus",
    "EngagementType",
    "IntentType",
    "Location",
    "MatchCriteria",
    "MatchResult",
    "MatchingModel",
    "Opportunity",
    "OpportunityAttributes",
    "OpportunityStatus",
    "PaymentMode",
    "Project",
    "ProjectBudget",
    "ProjectScope",
    "Proposal",
    "ProposalStatus",
    "ProposalType",
    "Role",
    "ServiceItem",
    "SubProject",
    "TargetType",
    "Timeline",
    "UserAccount",
]
