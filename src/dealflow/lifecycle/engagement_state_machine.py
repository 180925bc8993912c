"""Engagement lifecycle.

    PLANNED → {ACTIVE, CANCELED}
    ACTIVE  → {PAUSED, COMPLETED, CANCELED}
    PAUSED  → {ACTIVE, CANCELED}
    COMPLETED and CANCELED are terminal.
"""

from __future__ import annotations

from dealflow.lifecycle.state_machine import TransitionTable
from dealflow.models.deal import EngagementStatus


class EngagementStateMachine(TransitionTable):
    LABEL = "engagement"
    TRANSITIONS = {
        EngagementStatus.PLANNED: {EngagementStatus.ACTIVE, EngagementStatus.CANCELED},
        EngagementStatus.ACTIVE: {
            EngagementStatus.PAUSED,
            EngagementStatus.COMPLETED,
            EngagementStatus.CANCELED,
        },
        EngagementStatus.PAUSED: {EngagementStatus.ACTIVE, EngagementStatus.CANCELED},
        EngagementStatus.COMPLETED: set(),
        EngagementStatus.CANCELED: set(),
    }
