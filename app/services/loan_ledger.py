"""
Loan ledger reconciliation.

A loan's remaining balance, current month, total principal paid, status and
completion timestamp are derived from its transactions. Whenever the
transaction set changes, the caller reloads the full set and passes it to
``reconcile``; the result is written back in the same database transaction
as the change. Derived fields are never adjusted incrementally.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from app.models.loan import LoanStatus

# Balances at or below this count as paid off. Absorbs rounding drift from
# splitting a principal into equal monthly instalments (e.g. 1000 / 3).
COMPLETION_EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class LoanDerivedState:
    remaining: Decimal
    current_month: int
    total_principal_paid: Decimal
    status: LoanStatus
    completed_at: Optional[datetime]


def completion_status(current_month: int, remaining: Decimal, months: int) -> LoanStatus:
    """Status of a loan given its derived month and balance.

    A loan is complete once its term is reached, even with a balance left
    over (the short balance is forgiven), or once its balance is exhausted,
    even before the term ends.
    """
    if current_month >= months or remaining <= COMPLETION_EPSILON:
        return LoanStatus.COMPLETED
    if current_month > 0:
        return LoanStatus.ACTIVE
    return LoanStatus.PENDING


def reconcile(
    principal: Decimal,
    months: int,
    transactions: Iterable,
    completed_at: Optional[datetime] = None,
) -> LoanDerivedState:
    """Recompute a loan's derived fields from its surviving transactions.

    ``transactions`` is any iterable of objects with ``month`` and ``amount``
    attributes. Sum and max are order-independent, so the input order does
    not affect the result.

    ``completed_at`` is the loan's current completion timestamp. It is kept
    when the loan is still complete and cleared when it is not; this
    function never mints a new timestamp.
    """
    remaining = Decimal(principal)
    current_month = 0
    total_principal_paid = Decimal("0")

    for txn in transactions:
        amount = Decimal(txn.amount)
        remaining -= amount
        current_month = max(current_month, txn.month)
        total_principal_paid += amount

    status = completion_status(current_month, remaining, months)

    return LoanDerivedState(
        remaining=remaining,
        current_month=current_month,
        total_principal_paid=total_principal_paid,
        status=status,
        completed_at=completed_at if status == LoanStatus.COMPLETED else None,
    )


def reconcile_loan(loan, transactions: Iterable) -> LoanDerivedState:
    """Reconcile using a loan record's principal, term and completion timestamp."""
    return reconcile(loan.principal, loan.months, transactions, completed_at=loan.completed_at)


def apply_derived_state(loan, state: LoanDerivedState) -> None:
    """Copy a reconciliation result onto a loan record."""
    loan.remaining = state.remaining
    loan.current_month = state.current_month
    loan.total_principal_paid = state.total_principal_paid
    loan.status = state.status
    loan.completed_at = state.completed_at
