from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from .exceptions import TillValidationError


@dataclass(frozen=True)
class TillValidationIssue:
    field: str
    reason: str


@dataclass(frozen=True)
class TillValidationResult:
    ok: bool
    issues: list[TillValidationIssue]

    def first_reason(self) -> str | None:
        if not self.issues:
            return None
        issue = self.issues[0]
        return f"{issue.field} {issue.reason}"


def _require_non_empty(value: str | None, field: str, issues: list[TillValidationIssue]) -> None:
    if value is None or not str(value).strip():
        issues.append(TillValidationIssue(field=field, reason="is required"))


def _require_non_negative(value: Decimal | None, field: str, issues: list[TillValidationIssue]) -> None:
    if value is None:
        issues.append(TillValidationIssue(field=field, reason="is required"))
    elif not value.is_finite():
        issues.append(TillValidationIssue(field=field, reason="must be a finite number"))
    elif value < 0:
        issues.append(TillValidationIssue(field=field, reason="must be >= 0"))


def _check_cash_counts(
    counts: Mapping[str, int] | None, field: str, issues: list[TillValidationIssue]
) -> None:
    if not counts:
        return
    for denomination, count in counts.items():
        try:
            value = Decimal(str(denomination))
        except ArithmeticError:
            value = None
        if value is None or not value.is_finite() or value <= 0:
            issues.append(TillValidationIssue(field=field, reason=f"has invalid denomination {denomination!r}"))
        if not isinstance(count, int) or isinstance(count, bool):
            issues.append(TillValidationIssue(field=field, reason=f"has non-integer count for {denomination}"))
        elif count < 0:
            issues.append(TillValidationIssue(field=field, reason=f"has negative count for {denomination}"))


def parse_amount(value: Any, field: str) -> Decimal:
    """Decimal from user or caller input; rejects text and NaN/Infinity."""
    try:
        amount = Decimal(str(value).strip())
    except ArithmeticError:
        amount = None
    if amount is None or not amount.is_finite():
        raise TillValidationError([TillValidationIssue(field=field, reason=f"must be a number, got {value!r}")])
    return amount


def validate_open_till_payload(
    *,
    pos_id: str | None,
    branch_id: str | None,
    opening_amount: Decimal | None,
    cash_counts: Mapping[str, int] | None = None,
    user_id: str | None = None,
    require_user: bool = False,
) -> TillValidationResult:
    issues: list[TillValidationIssue] = []
    _require_non_empty(pos_id, "pos_id", issues)
    _require_non_empty(branch_id, "branch_id", issues)
    if require_user:
        _require_non_empty(user_id, "user_id", issues)
    _require_non_negative(opening_amount, "opening_amount", issues)
    _check_cash_counts(cash_counts, "cash_counts", issues)
    return TillValidationResult(ok=not issues, issues=issues)


def validate_close_till_payload(
    *,
    declared_closing_amount: Decimal | None,
    system_closing_amount: Decimal | None = None,
    pos_id: str | None = None,
    branch_id: str | None = None,
    till_session_id: str | None = None,
    cash_counts: Mapping[str, int] | None = None,
    require_backend_fields: bool = False,
) -> TillValidationResult:
    """Validate a close payload.

    The local store only needs the amounts; the backend additionally needs
    the terminal, branch and session id (``require_backend_fields``).
    """
    issues: list[TillValidationIssue] = []
    if require_backend_fields:
        _require_non_empty(pos_id, "pos_id", issues)
        _require_non_empty(branch_id, "branch_id", issues)
        _require_non_empty(till_session_id, "till_session_id", issues)
    _require_non_negative(declared_closing_amount, "declared_closing_amount", issues)
    if system_closing_amount is not None:
        _require_non_negative(system_closing_amount, "system_closing_amount", issues)
    _check_cash_counts(cash_counts, "cash_counts", issues)
    return TillValidationResult(ok=not issues, issues=issues)
