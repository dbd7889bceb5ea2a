"""
Service-level tests for app/services/loan.py.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import InvalidOperationError, NotFoundError, PermissionDeniedError, PersistenceError
from app.models import Loan, LoanStatus, LoanTransaction, Savings, SavingsTransaction, SequenceStatus
from app.services.cycle import create_cycle
from app.services.loan import (
    delete_loan, delete_loan_transaction, disburse_sequence, get_loan, give_loan, list_loans, repay_loan, update_loan
)


def transaction_count(db, loan):
    return db.query(LoanTransaction).filter(LoanTransaction.loan_id == loan.id).count()


# ---------------------------------------------------------------------------
# delete_loan_transaction
# ---------------------------------------------------------------------------

class TestDeleteLoanTransaction:

    def test_deleting_final_payment_reopens_loan(self, db, make_loan, add_payments):
        loan = make_loan("1200.00", 12)
        transactions = add_payments(loan, [(m, "100.00") for m in range(1, 13)])
        assert loan.status == LoanStatus.COMPLETED
        assert loan.completed_at is not None

        result = delete_loan_transaction(db, transactions[-1].id)

        assert result.id == loan.id
        assert result.remaining == Decimal("100.00")
        assert result.current_month == 11
        assert result.total_principal_paid == Decimal("1100.00")
        assert result.status == LoanStatus.ACTIVE
        assert result.completed_at is None
        assert transaction_count(db, loan) == 11

    def test_deleting_only_payment_returns_to_pending(self, db, make_loan, add_payments):
        loan = make_loan("500.00", 10)
        transactions = add_payments(loan, [(1, "50.00")])

        result = delete_loan_transaction(db, transactions[0].id)

        assert result.remaining == Decimal("500.00")
        assert result.current_month == 0
        assert result.status == LoanStatus.PENDING

    def test_deleting_middle_payment_keeps_current_month(self, db, make_loan, add_payments):
        loan = make_loan("1000.00", 10)
        transactions = add_payments(loan, [(1, "100.00"), (2, "100.00"), (3, "100.00")])

        result = delete_loan_transaction(db, transactions[1].id)

        assert result.current_month == 3
        assert result.remaining == Decimal("800.00")

    def test_unknown_transaction_raises_not_found(self, db):
        import uuid
        with pytest.raises(NotFoundError):
            delete_loan_transaction(db, uuid.uuid4())

    def test_commit_failure_leaves_everything_unchanged(self, db, make_loan, add_payments, monkeypatch):
        loan = make_loan("1200.00", 12)
        transactions = add_payments(loan, [(m, "100.00") for m in range(1, 13)])
        completed_at = loan.completed_at

        def failing_commit():
            raise SQLAlchemyError("disk I/O error")

        with monkeypatch.context() as m:
            m.setattr(db, "commit", failing_commit)
            with pytest.raises(PersistenceError):
                delete_loan_transaction(db, transactions[-1].id)

        db.expire_all()
        loan = db.query(Loan).filter(Loan.id == loan.id).one()
        assert transaction_count(db, loan) == 12
        assert loan.remaining == Decimal("0.00")
        assert loan.current_month == 12
        assert loan.status == LoanStatus.COMPLETED
        assert loan.completed_at == completed_at


# ---------------------------------------------------------------------------
# repay_loan
# ---------------------------------------------------------------------------

class TestRepayLoan:

    def test_instalments_complete_loan_and_stamp_completion(self, db, admin, make_loan):
        loan = make_loan("300.00", 3, disbursed_at=datetime(2024, 1, 1))

        first = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 1, 15))
        assert first["transaction"].month == 1
        assert first["transaction"].amount == Decimal("100.00")
        assert first["loan"].status == LoanStatus.ACTIVE
        assert first["loan"].completed_at is None

        repay_loan(db, loan.id, admin, payment_date=datetime(2024, 2, 14))
        last = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 3, 15))

        assert last["transaction"].month == 3
        assert last["transaction"].remaining == Decimal("0.00")
        assert last["loan"].status == LoanStatus.COMPLETED
        assert last["loan"].remaining == Decimal("0.00")
        assert last["loan"].completed_at == datetime(2024, 3, 15)
        assert last["payment"]["missed_months"] == 0
        assert last["payment"]["is_late"] is False

    def test_completed_loan_rejects_further_repayment(self, db, admin, make_loan, add_payments):
        loan = make_loan("300.00", 3)
        add_payments(loan, [(1, "100.00"), (2, "100.00"), (3, "100.00")])

        with pytest.raises(InvalidOperationError, match="Loan already completed"):
            repay_loan(db, loan.id, admin, payment_date=datetime(2024, 4, 1))
        assert transaction_count(db, loan) == 3

    def test_missed_months_are_skipped_and_penalised(self, db, admin, make_loan):
        loan = make_loan("1000.00", 10, disbursed_at=datetime(2024, 1, 1))

        result = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 3, 5))

        payment = result["payment"]
        assert payment["expected_month"] == 3
        assert payment["missed_months"] == 2
        assert payment["late_penalty"] == Decimal("10.00")
        assert payment["total"] == Decimal("110.00")
        assert payment["is_late"] is True
        assert result["transaction"].month == 3
        assert result["loan"].current_month == 3
        assert result["loan"].remaining == Decimal("900.00")
        assert result["loan"].late_payment_penalty == Decimal("10.00")

    def test_late_flag_with_overdue_months_charges_penalty(self, db, admin, make_loan):
        loan = make_loan("1000.00", 10, disbursed_at=datetime(2024, 1, 1))

        result = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 1, 20), is_late=True, overdue_months=1)

        assert result["payment"]["late_penalty"] == Decimal("5.00")
        assert result["payment"]["missed_months"] == 0
        assert result["payment"]["is_late"] is True
        assert result["transaction"].month == 1
        # Penalty never reduces the principal balance
        assert result["loan"].remaining == Decimal("900.00")

    def test_overdue_months_without_late_flag_are_ignored(self, db, admin, make_loan):
        loan = make_loan("1000.00", 10, disbursed_at=datetime(2024, 1, 1))

        result = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 1, 20), is_late=False, overdue_months=1)

        assert result["payment"]["late_penalty"] == Decimal("0.00")
        assert result["payment"]["is_late"] is False

    def test_overdue_months_add_to_missed_months(self, db, admin, make_loan):
        loan = make_loan("1000.00", 10, disbursed_at=datetime(2024, 1, 1))

        result = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 3, 5), is_late=True, overdue_months=3)

        assert result["payment"]["missed_months"] == 2
        assert result["payment"]["late_penalty"] == Decimal("25.00")

    def test_overdue_months_equal_to_missed_months_are_not_charged_twice(self, db, admin, make_loan):
        loan = make_loan("1000.00", 10, disbursed_at=datetime(2024, 1, 1))

        result = repay_loan(db, loan.id, admin, payment_date=datetime(2024, 3, 5), is_late=True, overdue_months=2)

        assert result["payment"]["late_penalty"] == Decimal("10.00")

    def test_uneven_split_completes_at_term_end(self, db, admin, make_loan):
        loan = make_loan("1000.00", 3, disbursed_at=datetime(2024, 1, 1))

        for payment_date in (datetime(2024, 1, 10), datetime(2024, 2, 10), datetime(2024, 3, 10)):
            result = repay_loan(db, loan.id, admin, payment_date=payment_date)

        assert result["payment"]["monthly_amount"] == Decimal("333.33")
        assert result["loan"].remaining == Decimal("0.01")
        assert result["loan"].status == LoanStatus.COMPLETED

    def test_borrower_can_repay_own_loan(self, db, member, make_loan):
        loan = make_loan("500.00", 5)
        result = repay_loan(db, loan.id, member.user, payment_date=datetime(2024, 1, 10))
        assert result["loan"].current_month == 1

    def test_other_member_cannot_repay(self, db, member, other_member, make_loan):
        loan = make_loan("500.00", 5, borrower=member)
        with pytest.raises(PermissionDeniedError, match="You can only repay your own loans"):
            repay_loan(db, loan.id, other_member.user, payment_date=datetime(2024, 1, 10))

    def test_unknown_loan_raises_not_found(self, db, admin):
        import uuid
        with pytest.raises(NotFoundError):
            repay_loan(db, uuid.uuid4(), admin)


# ---------------------------------------------------------------------------
# give_loan
# ---------------------------------------------------------------------------

class TestGiveLoan:

    def test_deducts_principal_proportionally(self, db, funded_members):
        member, other_member = funded_members

        loan = give_loan(db, member.id, Decimal("400.00"), 4, reason="School fees")

        assert loan.status == LoanStatus.PENDING
        assert loan.remaining == Decimal("400.00")
        assert loan.current_month == 0
        assert loan.disbursed_at is not None
        assert db.query(Savings).filter(Savings.member_id == member.id).one().total_amount == Decimal("2700.00")
        assert db.query(Savings).filter(Savings.member_id == other_member.id).one().total_amount == Decimal("900.00")
        deductions = db.query(SavingsTransaction).filter(SavingsTransaction.amount < 0).all()
        assert sorted(d.amount for d in deductions) == [Decimal("-300.00"), Decimal("-100.00")]

    def test_insufficient_savings_changes_nothing(self, db, funded_members):
        member, _ = funded_members

        with pytest.raises(InvalidOperationError, match="Insufficient savings"):
            give_loan(db, member.id, Decimal("5000.00"), 10)

        assert db.query(Loan).count() == 0
        assert db.query(SavingsTransaction).filter(SavingsTransaction.amount < 0).count() == 0
        totals = sorted(s.total_amount for s in db.query(Savings).all())
        assert totals == [Decimal("1000.00"), Decimal("3000.00")]

    def test_no_savings_at_all(self, db, member):
        with pytest.raises(InvalidOperationError, match="No savings available"):
            give_loan(db, member.id, Decimal("100.00"), 10)

    def test_unknown_guarantor(self, db, funded_members):
        import uuid
        member, _ = funded_members
        with pytest.raises(NotFoundError, match="Guarantor 1 not found"):
            give_loan(db, member.id, Decimal("100.00"), 10, guarantor1_id=uuid.uuid4())

    def test_unknown_borrower(self, db, funded_members):
        import uuid
        with pytest.raises(NotFoundError, match="Member not found"):
            give_loan(db, uuid.uuid4(), Decimal("100.00"), 10)

    def test_unknown_cycle(self, db, funded_members):
        import uuid
        member, _ = funded_members
        with pytest.raises(NotFoundError, match="Cycle not found"):
            give_loan(db, member.id, Decimal("100.00"), 10, cycle_id=uuid.uuid4())
        assert db.query(Loan).count() == 0

    def test_disbursal_time_is_naive_utc(self, db, funded_members):
        member, _ = funded_members
        before = datetime.now(timezone.utc).replace(tzinfo=None)

        loan = give_loan(db, member.id, Decimal("100.00"), 10)

        assert loan.disbursed_at.tzinfo is None
        assert before - timedelta(seconds=1) <= loan.disbursed_at <= datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# disburse_sequence
# ---------------------------------------------------------------------------

class TestDisburseSequence:

    @pytest.fixture
    def cycle(self, db, funded_members):
        member, other_member = funded_members
        return create_cycle(db, [other_member.id, member.id], Decimal("500.00"), datetime(2024, 4, 1))

    def test_pays_out_slot_as_cycle_loan(self, db, funded_members, cycle):
        member, other_member = funded_members
        slot = cycle.sequences[0]

        loan = disburse_sequence(db, slot.id, disbursed_at=datetime(2024, 4, 10), guarantor1_id=member.id)

        assert loan.member_id == other_member.id
        assert loan.cycle_id == cycle.id
        assert loan.sequence_id == slot.id
        assert loan.principal == Decimal("1000.00")
        assert loan.months == 10
        assert loan.status == LoanStatus.PENDING
        assert loan.guarantor1_id == member.id
        db.refresh(slot)
        db.refresh(cycle)
        assert slot.status == SequenceStatus.DISBURSED
        assert slot.disbursed_at == datetime(2024, 4, 10)
        assert cycle.current_month == 1
        assert db.query(Savings).filter(Savings.member_id == member.id).one().total_amount == Decimal("2250.00")
        assert db.query(Savings).filter(Savings.member_id == other_member.id).one().total_amount == Decimal("750.00")

    def test_slot_cannot_be_paid_twice(self, db, cycle):
        slot = cycle.sequences[0]
        disburse_sequence(db, slot.id)

        with pytest.raises(InvalidOperationError, match="Loan already disbursed"):
            disburse_sequence(db, slot.id)
        assert db.query(Loan).count() == 1

    def test_unknown_slot(self, db):
        import uuid
        with pytest.raises(NotFoundError, match="Loan sequence not found"):
            disburse_sequence(db, uuid.uuid4())

    def test_insufficient_savings_leaves_slot_pending(self, db, funded_members):
        member, other_member = funded_members
        cycle = create_cycle(db, [member.id, other_member.id], Decimal("5000.00"))
        slot = cycle.sequences[0]

        with pytest.raises(InvalidOperationError, match="Insufficient savings"):
            disburse_sequence(db, slot.id)

        db.refresh(slot)
        assert slot.status == SequenceStatus.PENDING
        assert slot.disbursed_at is None
        assert db.query(Loan).count() == 0


# ---------------------------------------------------------------------------
# Other loan operations
# ---------------------------------------------------------------------------

class TestLoanAccess:

    def test_admin_sees_all_loans(self, db, admin, member, other_member, make_loan):
        make_loan(borrower=member)
        make_loan(borrower=other_member)
        assert len(list_loans(db, admin)) == 2

    def test_member_sees_only_own_loans(self, db, member, other_member, make_loan):
        own = make_loan(borrower=member)
        make_loan(borrower=other_member)
        loans = list_loans(db, member.user)
        assert [loan.id for loan in loans] == [own.id]

    def test_member_cannot_view_others_loan(self, db, member, other_member, make_loan):
        loan = make_loan(borrower=other_member)
        with pytest.raises(PermissionDeniedError):
            get_loan(db, loan.id, member.user)

    def test_update_changes_reason_only(self, db, make_loan):
        loan = make_loan()
        updated = update_loan(db, loan.id, reason="Medical")
        assert updated.reason == "Medical"
        assert updated.status == LoanStatus.PENDING

    def test_delete_removes_loan_and_transactions(self, db, make_loan, add_payments):
        loan = make_loan()
        add_payments(loan, [(1, "100.00"), (2, "100.00")])
        loan_id = loan.id

        delete_loan(db, loan_id)

        assert db.query(Loan).filter(Loan.id == loan_id).count() == 0
        assert db.query(LoanTransaction).filter(LoanTransaction.loan_id == loan_id).count() == 0
