"""Lifecycle — proposal, contract and engagement state machines, and awarding."""

from dealflow.lifecycle.award import AwardEngine, AwardOutcome, AwardPlan
from dealflow.lifecycle.contract_state_machine import ContractStateMachine
from dealflow.lifecycle.engagement_state_machine import EngagementStateMachine
from dealflow.lifecycle.proposal_state_machine import AWARDABLE, ProposalStateMachine

__all__ = [
    "AWARDABLE",
    "AwardEngine",
    "AwardOutcome",
    "AwardPlan",
    "ContractStateMachine",
    "EngagementStateMachine",
    "ProposalStateMachine",
]
