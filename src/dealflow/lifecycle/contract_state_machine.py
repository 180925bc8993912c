"""Contract lifecycle.

    DRAFT → SENT → SIGNED → ACTIVE → COMPLETED
    SENT may return to DRAFT; DRAFT may be signed directly.
    Any non-terminal state → TERMINATED
"""

from __future__ import annotations

from dealflow.lifecycle.state_machine import TransitionTable
from dealflow.models.deal import ContractStatus


class ContractStateMachine(TransitionTable):
    LABEL = "contract"
    TRANSITIONS = {
        ContractStatus.DRAFT: {
            ContractStatus.SENT,
            ContractStatus.SIGNED,
            ContractStatus.TERMINATED,
        },
        ContractStatus.SENT: {
            ContractStatus.SIGNED,
            ContractStatus.DRAFT,
            ContractStatus.TERMINATED,
        },
        ContractStatus.SIGNED: {ContractStatus.ACTIVE, ContractStatus.TERMINATED},
        ContractStatus.ACTIVE: {ContractStatus.COMPLETED, ContractStatus.TERMINATED},
        ContractStatus.COMPLETED: set(),
        ContractStatus.TERMINATED: set(),
    }
