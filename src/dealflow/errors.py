"""Exception taxonomy for the deal-formation engine.

Pure scoring functions never raise. Validators return
ValidationResult values. Engines raise one of the exceptions below on
top-level failures, and the service facade turns them into
ServiceResult errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class DealflowError(Exception):
    """Base class for all engine errors."""


class ValidationError(DealflowError):
    """One or more business rules were violated."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class NotFoundError(DealflowError):
    """A referenced entity does not exist in the store."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class StateTransitionError(DealflowError):
    """A lifecycle transition is not allowed from the current state."""


class AuthorizationError(DealflowError):
    """The acting party may not perform this operation."""


class GraphTooLargeError(DealflowError):
    """Deal-graph traversal exceeded the configured node limit."""

    def __init__(self, start_id: str, limit: int) -> None:
        self.start_id = start_id
        self.limit = limit
        super().__init__(
            f"Deal graph from {start_id} exceeds node limit of {limit}"
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a legality check. ``errors`` is empty when valid."""
    valid: bool
    errors: list[str] = field(default_factory=list)

    @staticmethod
    def ok() -> ValidationResult:
        return ValidationResult(valid=True, errors=[])

    @staticmethod
    def fail(errors: list[str]) -> ValidationResult:
        return ValidationResult(valid=False, errors=list(errors))

    def raise_if_invalid(self) -> None:
        if not self.valid:
            raise ValidationError(self.errors)
