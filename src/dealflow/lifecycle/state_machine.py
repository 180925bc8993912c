"""Shared transition-table machinery for the deal lifecycles.

Each lifecycle is a class holding a ``{from_state: {allowed_to_states}}``
table. Every state must appear as a key, so an unlisted state can never
fall through to a default. Terminal states map to an empty set.

Fail-closed: invalid transitions return errors. There are no implicit
transitions.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar


class TransitionTable:
    """Validates and applies transitions against ``TRANSITIONS``.

    Pure computation. Side effects (audit, persistence) are handled by
    the service layer.
    """

    LABEL: ClassVar[str] = "state"
    TRANSITIONS: ClassVar[dict[Any, set[Any]]] = {}

    @classmethod
    def validate_transition(cls, entity: Any, target: enum.Enum) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        current = entity.status
        if current not in cls.TRANSITIONS:
            raise ValueError(f"Unhandled {cls.LABEL} state: {current!r}")
        allowed = cls.TRANSITIONS[current]

        if target not in allowed:
            allowed_str = ", ".join(s.value for s in sorted(allowed, key=lambda x: x.value))
            return [
                f"Invalid {cls.LABEL} transition: {current.value} → {target.value}. "
                f"Allowed from {current.value}: [{allowed_str}]"
            ]
        return []

    @classmethod
    def apply_transition(cls, entity: Any, target: enum.Enum) -> list[str]:
        """Validate and apply. On success mutates ``entity.status``."""
        errors = cls.validate_transition(entity, target)
        if errors:
            return errors
        entity.status = target
        return []

    @classmethod
    def is_terminal(cls, state: enum.Enum) -> bool:
        return not cls.TRANSITIONS.get(state)

    @classmethod
    def valid_transitions(cls, state: enum.Enum) -> set[Any]:
        return set(cls.TRANSITIONS.get(state, set()))
