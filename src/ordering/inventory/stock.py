"""Typed stock operations.

Every change to an inventory counter goes through one of two operations:
``AdjustBy`` (relative, used by checkout and restock) or ``SetTo`` (absolute,
used when stock is counted). ``apply_stock_operation`` is the single place
where the non-negative rule is enforced.
"""

from dataclasses import dataclass

from protean.exceptions import ValidationError

from ordering.errors import InsufficientStock


@dataclass(frozen=True)
class AdjustBy:
    delta: int


@dataclass(frozen=True)
class SetTo:
    value: int


def apply_stock_operation(current: int, operation, label: str | None = None) -> int:
    """Return the counter value after ``operation``, refusing to go below zero."""
    current = current or 0

    if isinstance(operation, AdjustBy):
        new_value = current + operation.delta
        if new_value < 0:
            raise InsufficientStock(label, available=current, requested=-operation.delta)
        return new_value

    if isinstance(operation, SetTo):
        if operation.value < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})
        return operation.value

    raise ValidationError({"stock_quantity": [f"Unsupported stock operation: {operation!r}"]})
