"""
Error Taxonomy - Exceptions and warnings raised by the planning core

- ValidationError: malformed or out-of-range input, rejected at the boundary
- UnassignableWorkOrderWarning: a work order no workstation can fully serve
- InternalInvariantViolation: a produced chromosome broke totality (a bug)

Timeouts are not errors; they are reported in the optimization result.
"""


class ValidationError(ValueError):
    """Raised when caller-supplied data is malformed or out of range."""


class UnassignableWorkOrderWarning(UserWarning):
    """Emitted when a work order requires skills that no workstation has."""


class InternalInvariantViolation(RuntimeError):
    """
    Raised when a schedule is missing or duplicating a work order.

    This never happens when the initializer and operators are correct, so it
    is treated as a defect and always propagates.
    """
