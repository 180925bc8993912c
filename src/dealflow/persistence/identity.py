"""Identity collaborators — role lookup and coarse permission gating.

Roles are resolved through a RoleOracle. The store-backed oracle keeps
its lookups in a RoleCache that the caller owns and invalidates; there
is no module-level cache.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from dealflow.models.party import Role
from dealflow.persistence.store import EntityStore, EntityType

logger = logging.getLogger(__name__)


class RoleOracle(Protocol):
    def role_of(self, user_id: str) -> Optional[Role]: ...


class PermissionOracle(Protocol):
    def is_allowed(self, user_id: str, action: str) -> bool: ...


class RoleCache:
    """Caller-owned role lookup cache with explicit invalidation."""

    def __init__(self) -> None:
        self._roles: dict[str, Optional[Role]] = {}

    def get(self, user_id: str) -> tuple[bool, Optional[Role]]:
        """Return (hit, role). A cached None means "known missing"."""
        if user_id in self._roles:
            return True, self._roles[user_id]
        return False, None

    def put(self, user_id: str, role: Optional[Role]) -> None:
        self._roles[user_id] = role

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop one user's entry, or everything when user_id is None."""
        if user_id is None:
            self._roles.clear()
        else:
            self._roles.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._roles)


class StoreRoleOracle:
    """Resolves roles from USER entities in the store."""

    def __init__(self, store: EntityStore, cache: Optional[RoleCache] = None) -> None:
        self._store = store
        self._cache = cache

    def role_of(self, user_id: str) -> Optional[Role]:
        if self._cache is not None:
            hit, role = self._cache.get(user_id)
            if hit:
                return role
        user = self._store.get(EntityType.USER, user_id)
        role = user.role if user is not None else None
        if role is None:
            logger.debug("No role for user %s", user_id)
        if self._cache is not None:
            self._cache.put(user_id, role)
        return role


class AllowAllPermissions:
    """Permission oracle that grants everything."""

    def is_allowed(self, user_id: str, action: str) -> bool:
        return True


class DenyListPermissions:
    """Permission oracle that denies listed (user, action) pairs."""

    def __init__(self, denied: Optional[set[tuple[str, str]]] = None) -> None:
        self._denied = set(denied or ())

    def deny(self, user_id: str, action: str) -> None:
        self._denied.add((user_id, action))

    def is_allowed(self, user_id: str, action: str) -> bool:
        return (user_id, action) not in self._denied
