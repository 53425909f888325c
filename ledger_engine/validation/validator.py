"""
Pre-Dispatch Validation

DESIGN DECISION: Local mutations are validated BEFORE anything is sent to
the data service. A rejected request never reaches the network, and the
caller gets every issue at once so it can render them inline.

Validation never silently fixes input. The only normalization is
quantizing a valid amount to the 2-decimal currency representation.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field

from ledger_engine.models.transaction import Transaction, to_money


MAX_DESCRIPTION_LENGTH = 200


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'too_long')"
    )
    message: str
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
    )


class ValidationError(Exception):
    """A mutation request was rejected before dispatch."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


class MutationValidator:
    """Validates append and move requests."""

    def validate_append(
        self,
        amount,
        description: Optional[str] = None,
    ) -> Decimal:
        """
        Validate an append request.

        Returns:
            The amount quantized to two decimals

        Raises:
            ValidationError: If any check fails
        """
        issues = []
        normalized: Optional[Decimal] = None

        try:
            normalized = Decimal(str(amount)) if amount is not None else None
        except (InvalidOperation, TypeError, ValueError):
            normalized = None

        if normalized is None or not normalized.is_finite():
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing" if amount is None else "invalid_format",
                message="Amount must be a number",
            ))
        elif normalized <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))
        elif normalized != normalized.quantize(Decimal("0.01")):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot have more than two decimal places",
            ))

        if description is not None and len(description.strip()) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters",
            ))

        if issues:
            raise ValidationError(issues)
        return to_money(normalized)

    def validate_move(
        self,
        transaction: Optional[Transaction],
        target_ledger_id: int,
    ) -> None:
        """
        Validate a move-to-ledger request.

        Raises:
            ValidationError: If the transaction is unknown or already there
        """
        issues = []
        if transaction is None:
            issues.append(ValidationIssue(
                field="transaction_id",
                issue_type="missing",
                message="Transaction is not in the current list",
            ))
        elif transaction.ledger_id == target_ledger_id:
            issues.append(ValidationIssue(
                field="ledger_id",
                issue_type="invalid_value",
                message="Transaction is already in this ledger",
            ))

        if issues:
            raise ValidationError(issues)
