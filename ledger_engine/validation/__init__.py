"""Pre-dispatch validation package."""

from ledger_engine.validation.validator import (
    MutationValidator,
    ValidationError,
    ValidationIssue,
)

__all__ = ["MutationValidator", "ValidationError", "ValidationIssue"]
