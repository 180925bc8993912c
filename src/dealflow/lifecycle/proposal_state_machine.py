"""Proposal lifecycle.

    DRAFT → SUBMITTED → UNDER_REVIEW → SHORTLISTED → NEGOTIATION → AWARDED → COMPLETED
    REJECTED reachable from SUBMITTED, UNDER_REVIEW, SHORTLISTED, NEGOTIATION

Awarding is legal only from SHORTLISTED or NEGOTIATION. An awarded
proposal can only complete; it never re-enters the competition.
"""

from __future__ import annotations

from dealflow.lifecycle.state_machine import TransitionTable
from dealflow.models.deal import ProposalStatus

AWARDABLE = frozenset({ProposalStatus.SHORTLISTED, ProposalStatus.NEGOTIATION})


class ProposalStateMachine(TransitionTable):
    LABEL = "proposal"
    TRANSITIONS = {
        ProposalStatus.DRAFT: {ProposalStatus.SUBMITTED},
        ProposalStatus.SUBMITTED: {ProposalStatus.UNDER_REVIEW, ProposalStatus.REJECTED},
        ProposalStatus.UNDER_REVIEW: {ProposalStatus.SHORTLISTED, ProposalStatus.REJECTED},
        ProposalStatus.SHORTLISTED: {
            ProposalStatus.NEGOTIATION,
            ProposalStatus.AWARDED,
            ProposalStatus.REJECTED,
        },
        ProposalStatus.NEGOTIATION: {ProposalStatus.AWARDED, ProposalStatus.REJECTED},
        ProposalStatus.AWARDED: {ProposalStatus.COMPLETED},
        # Terminal
        ProposalStatus.REJECTED: set(),
        ProposalStatus.COMPLETED: set(),
    }
