"""Audit sink — fire-and-forget recording of deal-formation actions.

Engines call ``record(action, entity_type, entity_id, description,
before_after)`` and never see a failure: a sink that cannot write logs
the problem and returns. The audit trail must not be able to veto a
business operation that has already been committed to the store.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from dealflow.persistence.event_log import EventKind, EventLog, EventRecord

logger = logging.getLogger(__name__)


# action name → event kind
_ACTION_KINDS: dict[str, EventKind] = {
    "deal_linking": EventKind.DEAL_LINKED,
    "deal_unlinking": EventKind.DEAL_UNLINKED,
    "opportunity_created": EventKind.OPPORTUNITY_CREATED,
    "proposal_created": EventKind.PROPOSAL_CREATED,
    "proposal_transition": EventKind.PROPOSAL_TRANSITION,
    "proposal_awarded": EventKind.PROPOSAL_AWARDED,
    "contract_created": EventKind.CONTRACT_CREATED,
    "contract_transition": EventKind.CONTRACT_TRANSITION,
    "engagement_created": EventKind.ENGAGEMENT_CREATED,
    "engagement_transition": EventKind.ENGAGEMENT_TRANSITION,
    "engagement_updated": EventKind.ENGAGEMENT_UPDATED,
}


class AuditSink(Protocol):
    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        description: str,
        before_after: Optional[dict[str, Any]] = None,
        actor_id: str = "system",
    ) -> None: ...


class EventLogAuditSink:
    """AuditSink backed by the hash-verified EventLog.

    Usage:
        sink = EventLogAuditSink(EventLog(storage_path=data_dir / "events.jsonl"))
        sink.record("deal_linking", "opportunity", need_id, "Linked 2 offers")
    """

    def __init__(self, event_log: Optional[EventLog] = None) -> None:
        self._event_log = event_log if event_log is not None else EventLog()
        self._event_counter = self._event_log.count

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        description: str,
        before_after: Optional[dict[str, Any]] = None,
        actor_id: str = "system",
    ) -> None:
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=_ACTION_KINDS.get(action, EventKind.GENERIC),
                actor_id=actor_id,
                payload={
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "description": description,
                    "before_after": before_after or {},
                },
            )
            self._event_log.append(event)
        except (ValueError, OSError, TypeError) as e:
            logger.warning(
                "Audit record dropped (%s %s/%s): %s", action, entity_type, entity_id, e,
            )

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"


class NullAuditSink:
    """Discards every record. For callers that audit elsewhere."""

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        description: str,
        before_after: Optional[dict[str, Any]] = None,
        actor_id: str = "system",
    ) -> None:
        logger.debug("Audit discarded: %s %s/%s", action, entity_type, entity_id)
