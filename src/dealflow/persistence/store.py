"""Entity store — the persistence collaborator the engines read and write.

Engines depend only on the EntityStore protocol. InMemoryEntityStore is
the reference implementation: it deep-copies on every read and write so
no caller ever holds a reference into the store's own state, keeps a
per-entity version counter, and can mirror its contents to a JSON file.

The store does not serialize concurrent writers. Callers that
read-modify-write (the deal linker) always re-read immediately before
writing, so a non-atomic store degrades to last-write-wins.
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from dealflow.models.deal import Contract, Engagement, Proposal
from dealflow.models.opportunity import Opportunity
from dealflow.models.party import UserAccount
from dealflow.models.project import Project

logger = logging.getLogger(__name__)


class EntityType(str, enum.Enum):
    OPPORTUNITY = "opportunity"
    PROPOSAL = "proposal"
    CONTRACT = "contract"
    ENGAGEMENT = "engagement"
    USER = "user"
    PROJECT = "project"


# (id attribute, deserializer) per entity type
_ENTITY_META: dict[EntityType, tuple[str, Callable[[dict[str, Any]], Any]]] = {
    EntityType.OPPORTUNITY: ("opportunity_id", Opportunity.from_dict),
    EntityType.PROPOSAL: ("proposal_id", Proposal.from_dict),
    EntityType.CONTRACT: ("contract_id", Contract.from_dict),
    EntityType.ENGAGEMENT: ("engagement_id", Engagement.from_dict),
    EntityType.USER: ("user_id", UserAccount.from_dict),
    EntityType.PROJECT: ("project_id", Project.from_dict),
}


def entity_id(entity_type: EntityType, entity: Any) -> str:
    return getattr(entity, _ENTITY_META[entity_type][0])


class EntityStore(Protocol):
    """Storage contract consumed by the engines."""

    def get(self, entity_type: EntityType, entity_id: str) -> Optional[Any]: ...

    def get_all(self, entity_type: EntityType) -> list[Any]: ...

    def create(self, entity_type: EntityType, entity: Any) -> Any: ...

    def update(
        self, entity_type: EntityType, entity_id: str, patch: dict[str, Any],
    ) -> Optional[Any]: ...

    def delete(self, entity_type: EntityType, entity_id: str) -> bool: ...


class InMemoryEntityStore:
    """Dict-backed EntityStore with optional JSON file persistence.

    Usage:
        store = InMemoryEntityStore()
        store.create(EntityType.OPPORTUNITY, need)
        fresh = store.get(EntityType.OPPORTUNITY, need.opportunity_id)

    Persistent:
        store = InMemoryEntityStore(storage_path=data_dir / "entities.json")
        # Loaded on construction, rewritten after every mutation.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._entities: dict[EntityType, dict[str, Any]] = {t: {} for t in EntityType}
        self._versions: dict[tuple[EntityType, str], int] = {}
        self._storage_path = storage_path

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def get(self, entity_type: EntityType, entity_id: str) -> Optional[Any]:
        entity = self._entities[entity_type].get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    def get_all(self, entity_type: EntityType) -> list[Any]:
        return [copy.deepcopy(e) for e in self._entities[entity_type].values()]

    def create(self, entity_type: EntityType, entity: Any) -> Any:
        """Insert a new entity. Raises ValueError if the id is taken."""
        eid = entity_id(entity_type, entity)
        if eid in self._entities[entity_type]:
            raise ValueError(f"{entity_type.value} already exists: {eid}")
        self._entities[entity_type][eid] = copy.deepcopy(entity)
        self._versions[(entity_type, eid)] = 1
        self._save()
        return copy.deepcopy(entity)

    def update(
        self, entity_type: EntityType, entity_id: str, patch: dict[str, Any],
    ) -> Optional[Any]:
        """Apply a field patch. Returns the updated entity, or None if missing.

        Unknown field names raise TypeError.
        """
        current = self._entities[entity_type].get(entity_id)
        if current is None:
            return None
        updated = dataclasses.replace(current, **copy.deepcopy(patch))
        self._entities[entity_type][entity_id] = updated
        self._versions[(entity_type, entity_id)] = self.version(entity_type, entity_id) + 1
        self._save()
        return copy.deepcopy(updated)

    def delete(self, entity_type: EntityType, entity_id: str) -> bool:
        if entity_id not in self._entities[entity_type]:
            return False
        del self._entities[entity_type][entity_id]
        self._versions.pop((entity_type, entity_id), None)
        self._save()
        return True

    def version(self, entity_type: EntityType, entity_id: str) -> int:
        """Write count for an entity (0 if it does not exist)."""
        return self._versions.get((entity_type, entity_id), 0)

    def count(self, entity_type: EntityType) -> int:
        return len(self._entities[entity_type])

    def _save(self) -> None:
        if self._storage_path is None:
            return
        payload = {
            t.value: {eid: e.to_dict() for eid, e in entities.items()}
            for t, entities in self._entities.items()
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._storage_path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, ensure_ascii=False)
        tmp.replace(self._storage_path)
        logger.debug("Persisted entity store to %s", self._storage_path)

    def _load_from_file(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        for entity_type, (_, from_dict) in _ENTITY_META.items():
            for eid, raw in (data.get(entity_type.value) or {}).items():
                self._entities[entity_type][eid] = from_dict(raw)
                self._versions[(entity_type, eid)] = 1
        logger.info(
            "Loaded entity store from %s (%d entities)",
            path, sum(len(v) for v in self._entities.values()),
        )
