"""
Two-Stage Snapshot Integrity Validation

DESIGN DECISION: A fetched snapshot is checked in two distinct stages:

STAGE 1 - REFERENCES:
- Every transaction's account exists
- Every transaction's category still exists (categories can be deleted
  out from under their transactions)
- Every referenced debt exists

STAGE 2 - CONSISTENCY:
- A debt's amount paid does not exceed its total owed
- A debt's stored remaining balance equals total owed minus amount paid

WHY: The store decides deletion policy, so dangling references are data
we have to live with. They are reported, never raised; aggregation keeps
working on whatever resolves.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for a human to reconcile.
"""

from finance_ledger.models.ledger import ValidationIssue, ValidationResult
from finance_ledger.models.snapshot import LedgerSnapshot


class SnapshotValidator:
    """Checks a snapshot for data-integrity problems."""

    def _validate_references(self, snapshot: LedgerSnapshot) -> list[ValidationIssue]:
        account_ids = {a.id for a in snapshot.accounts}
        category_ids = {c.id for c in snapshot.categories}
        debt_ids = {d.id for d in snapshot.debts}

        issues = []
        for t in snapshot.transactions:
            if t.account_id not in account_ids:
                issues.append(ValidationIssue(
                    entity_type="transaction",
                    entity_id=t.id,
                    issue_type="missing_account",
                    message=f"Transaction {t.id} references unknown account {t.account_id}",
                    severity="error",
                ))
            if t.category_id is None or t.category_id not in category_ids:
                issues.append(ValidationIssue(
                    entity_type="transaction",
                    entity_id=t.id,
                    issue_type="missing_category",
                    message=(
                        f"Transaction {t.id} references a missing or deleted "
                        f"category ({t.category_id})"
                    ),
                    severity="error",
                ))
            if t.debt_id is not None and t.debt_id not in debt_ids:
                issues.append(ValidationIssue(
                    entity_type="transaction",
                    entity_id=t.id,
                    issue_type="missing_debt",
                    message=f"Transaction {t.id} references unknown debt {t.debt_id}",
                    severity="warning",
                ))
        return issues

    def _validate_consistency(self, snapshot: LedgerSnapshot) -> list[ValidationIssue]:
        issues = []
        for debt in snapshot.debts:
            if debt.amount_paid > debt.total_owed:
                issues.append(ValidationIssue(
                    entity_type="debt",
                    entity_id=debt.id,
                    issue_type="overpaid",
                    message=(
                        f"Debt {debt.id} has {debt.amount_paid} paid against "
                        f"{debt.total_owed} owed"
                    ),
                    severity="error",
                ))
            expected = debt.total_owed - debt.amount_paid
            if debt.remaining_balance != expected:
                issues.append(ValidationIssue(
                    entity_type="debt",
                    entity_id=debt.id,
                    issue_type="remaining_balance_mismatch",
                    message=(
                        f"Debt {debt.id} reports {debt.remaining_balance} remaining, "
                        f"expected {expected}"
                    ),
                    severity="warning",
                ))
        return issues

    def validate(self, snapshot: LedgerSnapshot) -> ValidationResult:
        reference_issues = self._validate_references(snapshot)
        consistency_issues = self._validate_consistency(snapshot)
        return ValidationResult(
            references_valid=not any(i.severity == "error" for i in reference_issues),
            consistency_valid=not any(i.severity == "error" for i in consistency_issues),
            issues=reference_issues + consistency_issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One-paragraph summary suitable for showing next to a dashboard."""
        if not result.issues:
            return "All records are consistent."
        lines = [f"Found {len(result.issues)} issue(s) that need attention:"]
        for issue in result.issues:
            lines.append(f"- [{issue.severity}] {issue.message}")
        return "\n".join(lines)
