"""Matching model classifier — decides the topology of a Need's deal.

Decision order (first match wins):

1. Payment mode BARTER or HYBRID:
   - cycle back to the Need with >= 3 linked offers → CIRCULAR_EXCHANGE
   - more than one linked offer                     → GROUP_FORMATION
   - otherwise                                      → TWO_WAY_DEPENDENCY
2. More than one linked offer                         → GROUP_FORMATION
3. Collaboration model Consortium / JV / SPV          → GROUP_FORMATION
4. Otherwise                                          → ONE_WAY

Cycle detection walks the directed graph whose edges are
``opportunity → each id in opportunity.linked_offers``. The walk is an
explicit-stack DFS with a per-call visited set and a hard node limit,
so it is safe on arbitrarily deep or large graphs and on concurrent
calls.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from dealflow.errors import GraphTooLargeError, ValidationResult
from dealflow.models.opportunity import (
    GROUP_COLLABORATION_MODELS,
    IntentType,
    MatchingModel,
    Opportunity,
    PaymentMode,
)
from dealflow.persistence.store import EntityStore, EntityType
from dealflow.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)

BARTER_MODES = frozenset({PaymentMode.BARTER, PaymentMode.HYBRID})


class CycleStatus(str, enum.Enum):
    CYCLE_FOUND = "cycle_found"
    NO_CYCLE = "no_cycle"
    LIMIT_EXCEEDED = "limit_exceeded"


@dataclass(frozen=True)
class CycleCheck:
    """Result of a cycle search rooted at one opportunity.

    ``path`` lists the ids from the root to the node that links back to
    it; empty unless a cycle was found.
    """
    status: CycleStatus
    path: list[str] = field(default_factory=list)
    nodes_visited: int = 0

    @property
    def found(self) -> bool:
        return self.status == CycleStatus.CYCLE_FOUND


class CycleDetector:
    """Finds a directed cycle that returns to the starting opportunity.

    Usage:
        detector = CycleDetector(store, max_nodes=1000)
        check = detector.detect(need)
        if check.found: ...
    """

    def __init__(self, store: EntityStore, max_nodes: int = 1000) -> None:
        self._store = store
        self._max_nodes = max_nodes

    def detect(self, root: Opportunity, strict: bool = False) -> CycleCheck:
        """Search for a path root → ... → root.

        With ``strict=True`` an oversized graph raises GraphTooLargeError
        instead of returning a LIMIT_EXCEEDED result.
        """
        root_id = root.opportunity_id
        visited: set[str] = {root_id}
        parent: dict[str, str] = {}
        stack: list[str] = [root_id]

        while stack:
            node_id = stack.pop()
            if node_id == root_id:
                neighbours = list(root.linked_offers)
            else:
                node = self._store.get(EntityType.OPPORTUNITY, node_id)
                if node is None:
                    continue
                neighbours = list(node.linked_offers)

            for next_id in neighbours:
                if next_id == root_id:
                    return CycleCheck(
                        status=CycleStatus.CYCLE_FOUND,
                        path=self._path_to(node_id, parent, root_id),
                        nodes_visited=len(visited),
                    )
                if next_id in visited:
                    continue
                if len(visited) >= self._max_nodes:
                    if strict:
                        raise GraphTooLargeError(root_id, self._max_nodes)
                    logger.warning(
                        "Cycle search from %s stopped at node limit %d",
                        root_id, self._max_nodes,
                    )
                    return CycleCheck(
                        status=CycleStatus.LIMIT_EXCEEDED,
                        nodes_visited=len(visited),
                    )
                visited.add(next_id)
                parent[next_id] = node_id
                stack.append(next_id)

        return CycleCheck(status=CycleStatus.NO_CYCLE, nodes_visited=len(visited))

    @staticmethod
    def _path_to(node_id: str, parent: dict[str, str], root_id: str) -> list[str]:
        path = [node_id]
        while path[-1] != root_id:
            path.append(parent[path[-1]])
        path.reverse()
        return path


_DESCRIPTIONS: dict[MatchingModel, dict[str, str]] = {
    MatchingModel.ONE_WAY: {
        "name": "One-Way Matching",
        "description": "A Need is matched with one or more Offers. Standard marketplace matching.",
        "use_case": "Standard project matching, service requests, simple collaborations",
    },
    MatchingModel.TWO_WAY_DEPENDENCY: {
        "name": "Two-Way Dependency Matching",
        "description": (
            "Bidirectional matching for barter deals. Both parties' needs "
            "and offers must match each other."
        ),
        "use_case": "Barter transactions, service-for-service exchanges",
    },
    MatchingModel.GROUP_FORMATION: {
        "name": "Group Formation",
        "description": "Multiple Offers are matched to one Need.",
        "use_case": "Consortiums, JVs, SPVs, multi-party projects",
    },
    MatchingModel.CIRCULAR_EXCHANGE: {
        "name": "Circular Exchange",
        "description": "Multiple parties form a closed loop of needs and offers.",
        "use_case": "Multi-party barter, circular service exchanges",
    },
}


class MatchingModelClassifier:
    """Classifies a Need into one of the four matching topologies.

    Usage:
        classifier = MatchingModelClassifier(store, resolver)
        model = classifier.classify(need)
    """

    def __init__(
        self,
        store: EntityStore,
        resolver: Optional[PolicyResolver] = None,
    ) -> None:
        resolver = resolver or PolicyResolver()
        self._min_circular_links = resolver.circular_exchange_config()["minimum_links"]
        self._detector = CycleDetector(store, max_nodes=resolver.graph_max_nodes())

    @property
    def detector(self) -> CycleDetector:
        return self._detector

    def classify(self, need: Opportunity) -> MatchingModel:
        links = len(need.linked_offers)

        if need.payment_mode in BARTER_MODES:
            if links >= self._min_circular_links and self.has_circular_dependencies(need):
                return MatchingModel.CIRCULAR_EXCHANGE
            if links > 1:
                return MatchingModel.GROUP_FORMATION
            return MatchingModel.TWO_WAY_DEPENDENCY

        if links > 1:
            return MatchingModel.GROUP_FORMATION

        if need.collaboration_model in GROUP_COLLABORATION_MODELS:
            return MatchingModel.GROUP_FORMATION

        return MatchingModel.ONE_WAY

    def has_circular_dependencies(self, need: Opportunity) -> bool:
        """True when the linkage graph leads back to ``need``.

        An oversized graph counts as "no cycle" (logged by the detector).
        """
        return self._detector.detect(need).found

    def validate_compatibility(
        self,
        need: Opportunity,
        offer: Opportunity,
        model: MatchingModel,
    ) -> ValidationResult:
        """Check that a pair structurally fits the given topology."""
        errors: list[str] = []
        if model == MatchingModel.ONE_WAY:
            if need.intent_type != IntentType.REQUEST_SERVICE:
                errors.append("One-Way matching requires Need to have REQUEST_SERVICE intent")
            if offer.intent_type != IntentType.OFFER_SERVICE:
                errors.append("One-Way matching requires Offer to have OFFER_SERVICE intent")
        elif model == MatchingModel.TWO_WAY_DEPENDENCY:
            if need.payment_mode not in BARTER_MODES:
                errors.append(
                    "Two-Way Dependency matching requires Need to have Barter or Hybrid payment mode"
                )
            if offer.payment_mode not in BARTER_MODES:
                errors.append(
                    "Two-Way Dependency matching requires Offer to have Barter or Hybrid payment mode"
                )
        elif model == MatchingModel.GROUP_FORMATION:
            if len(need.linked_offers) < 2:
                errors.append("Group Formation requires Need to link to multiple Offers")
        elif model == MatchingModel.CIRCULAR_EXCHANGE:
            if not self.has_circular_dependencies(need):
                errors.append("Circular Exchange requires circular dependency chain")
        else:
            raise ValueError(f"Unhandled matching model: {model!r}")

        return ValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def describe(model: MatchingModel) -> dict[str, Any]:
        return dict(_DESCRIPTIONS[model])
