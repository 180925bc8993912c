"""Deal graph — links Offers to a Need and keeps its topology current.

Linking is partial-success: each offer is checked on its own and the
ones that pass are merged into the Need, while the rest are reported
per offer. The merge always starts from a fresh read of the Need, so a
concurrent writer degrades to "last write wins" rather than dropped
links. The cached ``matching_model`` is recomputed in the same update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from dealflow.matching.classifier import MatchingModelClassifier
from dealflow.matching.mirroring import SemanticMirror
from dealflow.models.opportunity import (
    IntentType,
    MatchingModel,
    Opportunity,
    PaymentMode,
)
from dealflow.persistence.audit import AuditSink, NullAuditSink
from dealflow.persistence.store import EntityStore, EntityType
from dealflow.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)

# Distinct payment modes that may still be linked.
_INTERCHANGEABLE_MODES = frozenset({PaymentMode.CASH, PaymentMode.HYBRID})


@dataclass(frozen=True)
class CompatibilityCheck:
    compatible: bool
    reason: str


@dataclass(frozen=True)
class LinkResult:
    success: bool
    linked_offers: list[str] = field(default_factory=list)
    matching_model: Optional[MatchingModel] = None
    errors: list[str] = field(default_factory=list)


class DealLinker:
    """Maintains ``linked_offers`` on Need opportunities.

    Usage:
        linker = DealLinker(store, classifier, audit)
        result = linker.link("OPP-need", ["OPP-a", "OPP-b"])
        if not result.success: ...
    """

    def __init__(
        self,
        store: EntityStore,
        classifier: Optional[MatchingModelClassifier] = None,
        audit: Optional[AuditSink] = None,
        resolver: Optional[PolicyResolver] = None,
    ) -> None:
        resolver = resolver or PolicyResolver()
        self._store = store
        self._classifier = classifier or MatchingModelClassifier(store, resolver)
        self._audit = audit or NullAuditSink()
        self._mirror = SemanticMirror(resolver)

    def check_compatibility(self, need: Opportunity, offer: Opportunity) -> CompatibilityCheck:
        if (
            need.payment_mode != offer.payment_mode
            and {need.payment_mode, offer.payment_mode} != _INTERCHANGEABLE_MODES
        ):
            return CompatibilityCheck(
                False,
                f"Payment mode mismatch: Need is {need.payment_mode.value}, "
                f"Offer is {offer.payment_mode.value}",
            )
        if not self._mirror.apply_all(need, offer).overall_compatible:
            return CompatibilityCheck(False, "Skills/attributes do not match")
        return CompatibilityCheck(True, "Compatible")

    def link(self, need_id: str, offer_ids: Sequence[str]) -> LinkResult:
        if not need_id:
            return LinkResult(success=False, errors=["Need ID is required"])
        if not offer_ids:
            return LinkResult(success=False, errors=["At least one offer ID is required"])

        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        if need is None:
            return LinkResult(success=False, errors=["Need opportunity not found"])
        if need.intent_type != IntentType.REQUEST_SERVICE:
            return LinkResult(
                success=False,
                errors=["Can only link offers to REQUEST_SERVICE opportunities"],
            )

        errors: list[str] = []
        accepted: list[str] = []
        for offer_id in offer_ids:
            offer = self._store.get(EntityType.OPPORTUNITY, offer_id)
            if offer is None:
                errors.append(f"Offer {offer_id} not found")
                continue
            if offer.intent_type != IntentType.OFFER_SERVICE:
                errors.append(f"Offer {offer_id} must have OFFER_SERVICE intent")
                continue
            check = self.check_compatibility(need, offer)
            if not check.compatible:
                errors.append(f"Offer {offer_id} is not compatible: {check.reason}")
                continue
            accepted.append(offer_id)

        if not accepted:
            logger.info("No offers linked to %s: %s", need_id, "; ".join(errors))
            return LinkResult(success=False, errors=errors)

        fresh = self._store.get(EntityType.OPPORTUNITY, need_id)
        if fresh is None:
            return LinkResult(success=False, errors=errors + ["Need opportunity not found"])
        before = list(fresh.linked_offers)
        after = list(dict.fromkeys(before + accepted))

        updated = self._write_links(fresh, after)
        if updated is None:
            return LinkResult(success=False, errors=errors + ["Failed to update need opportunity"])

        self._audit.record(
            "deal_linking",
            "opportunity",
            need_id,
            f"Linked {len(accepted)} offer(s) to need {need_id}",
            {"before": {"linked_offers": before}, "after": {"linked_offers": after}},
        )
        return LinkResult(
            success=True,
            linked_offers=after,
            matching_model=updated.matching_model,
            errors=errors,
        )

    def unlink(self, need_id: str, offer_ids: Sequence[str]) -> LinkResult:
        if not need_id:
            return LinkResult(success=False, errors=["Need ID is required"])
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        if need is None:
            return LinkResult(success=False, errors=["Need opportunity not found"])

        removed = set(offer_ids)
        before = list(need.linked_offers)
        after = [oid for oid in before if oid not in removed]

        updated = self._write_links(need, after)
        if updated is None:
            return LinkResult(success=False, errors=["Failed to update need opportunity"])

        self._audit.record(
            "deal_unlinking",
            "opportunity",
            need_id,
            f"Unlinked {len(before) - len(after)} offer(s) from need {need_id}",
            {"before": {"linked_offers": before}, "after": {"linked_offers": after}},
        )
        return LinkResult(
            success=True,
            linked_offers=after,
            matching_model=updated.matching_model,
        )

    def linked_offers(self, need_id: str) -> list[Opportunity]:
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        if need is None:
            return []
        offers = (self._store.get(EntityType.OPPORTUNITY, oid) for oid in need.linked_offers)
        return [o for o in offers if o is not None]

    def is_linked(self, need_id: str, offer_id: str) -> bool:
        need = self._store.get(EntityType.OPPORTUNITY, need_id)
        return need is not None and offer_id in need.linked_offers

    def _write_links(self, need: Opportunity, links: list[str]) -> Optional[Opportunity]:
        model = self._classifier.classify(replace(need, linked_offers=links))
        return self._store.update(
            EntityType.OPPORTUNITY,
            need.opportunity_id,
            {"linked_offers": links, "matching_model": model},
        )
