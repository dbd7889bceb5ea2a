"""
HTTP tests for /api/members and /api/savings.
"""
import uuid
from datetime import datetime
from decimal import Decimal

from app.models import Loan, Member, Savings, User
from app.services.cycle import create_cycle
from app.services.savings import record_deposit


def new_member_payload(**overrides):
    payload = {
        "member_code": "M010",
        "name": "Lakshmi Rao",
        "email": "lakshmi@example.com",
        "password": "Password123",
        "account_number": " 1234567890 ",
        "phone": "9876543210",
    }
    payload.update(overrides)
    return payload


class TestMembersEndpoints:

    def test_admin_creates_member_with_login(self, admin_client, db):
        response = admin_client.post("/api/members", json=new_member_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["member_code"] == "M010"
        assert body["email"] == "lakshmi@example.com"
        assert body["account_number"] == "1234567890"
        user = db.query(User).filter(User.email == "lakshmi@example.com").one()
        assert user.role.value == "USER"
        assert str(user.id) == body["user_id"]

    def test_duplicate_email(self, admin_client, member):
        response = admin_client.post("/api/members", json=new_member_payload(email=member.email))
        assert response.status_code == 400
        assert response.json()["detail"] == "User with this email already exists"

    def test_duplicate_member_code(self, admin_client, member):
        response = admin_client.post("/api/members", json=new_member_payload(member_code=member.member_code))
        assert response.status_code == 400
        assert response.json()["detail"] == "Member code already exists"

    def test_duplicate_account_number(self, admin_client):
        admin_client.post("/api/members", json=new_member_payload())
        response = admin_client.post("/api/members", json=new_member_payload(
            member_code="M011", email="other@example.com"
        ))
        assert response.status_code == 400
        assert response.json()["detail"] == "Account number already exists"

    def test_invalid_email_is_rejected(self, admin_client):
        response = admin_client.post("/api/members", json=new_member_payload(email="not-an-email"))
        assert response.status_code == 422

    def test_members_cannot_create_members(self, member_client):
        response = member_client.post("/api/members", json=new_member_payload())
        assert response.status_code == 403

    def test_list_members(self, member_client, other_member):
        response = member_client.get("/api/members")
        assert response.status_code == 200
        assert {m["member_code"] for m in response.json()} == {"M001", "M002"}

    def test_member_detail_includes_savings_and_loans(self, member_client, db, member, make_loan):
        record_deposit(db, member.id, Decimal("500.00"), datetime(2024, 1, 1))
        make_loan("200.00", 2)

        response = member_client.get(f"/api/members/{member.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["savings"]["total_amount"] == 500.0
        assert len(body["loans"]) == 1

    def test_unknown_member(self, member_client):
        response = member_client.get(f"/api/members/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Member not found"

    def test_update_syncs_login_account(self, admin_client, db, member):
        response = admin_client.put(f"/api/members/{member.id}", json={
            "name": "Asha D.",
            "email": "asha.new@example.com",
            "phone": "111",
        })

        assert response.status_code == 200
        assert response.json()["name"] == "Asha D."
        db.expire_all()
        user = db.query(User).filter(User.id == member.user_id).one()
        assert user.email == "asha.new@example.com"
        assert user.name == "Asha D."
        assert user.phone == "111"

    def test_update_rejects_email_of_another_user(self, admin_client, member, other_member):
        response = admin_client.put(f"/api/members/{member.id}", json={"email": other_member.email})
        assert response.status_code == 400
        assert response.json()["detail"] == "Email is already in use by another user"

    def test_delete_member_removes_account_savings_and_settled_loans(
        self, admin_client, db, member, other_member, make_loan, add_payments
    ):
        record_deposit(db, member.id, Decimal("500.00"), datetime(2024, 1, 1))
        settled = make_loan("200.00", 2, borrower=member)
        add_payments(settled, [(1, "100.00"), (2, "100.00")])
        guaranteed = make_loan("300.00", 3, borrower=other_member)
        guaranteed.guarantor1_id = member.id
        db.commit()
        member_id, user_id, guaranteed_id = member.id, member.user_id, guaranteed.id

        response = admin_client.delete(f"/api/members/{member_id}")

        assert response.status_code == 200
        assert response.json() == {"message": "Member and user account deleted successfully"}
        db.expire_all()
        assert db.query(Member).filter(Member.id == member_id).first() is None
        assert db.query(User).filter(User.id == user_id).first() is None
        assert db.query(Savings).filter(Savings.member_id == member_id).first() is None
        assert db.query(Loan).filter(Loan.member_id == member_id).count() == 0
        assert db.query(Loan).filter(Loan.id == guaranteed_id).one().guarantor1_id is None

    def test_member_with_open_loan_cannot_be_deleted(self, admin_client, member, make_loan):
        make_loan("200.00", 2, borrower=member)

        response = admin_client.delete(f"/api/members/{member.id}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete member with active or pending loans"
        assert admin_client.get(f"/api/members/{member.id}").status_code == 200

    def test_member_waiting_for_cycle_payout_cannot_be_deleted(self, admin_client, db, member):
        create_cycle(db, [member.id], Decimal("100.00"))

        response = admin_client.delete(f"/api/members/{member.id}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete member with a pending slot in an active cycle"

    def test_delete_unknown_member(self, admin_client):
        assert admin_client.delete(f"/api/members/{uuid.uuid4()}").status_code == 404

    def test_members_cannot_delete_members(self, member_client, other_member):
        assert member_client.delete(f"/api/members/{other_member.id}").status_code == 403


class TestSavingsEndpoints:

    def test_admin_records_deposit(self, admin_client, member):
        response = admin_client.post("/api/savings", json={
            "member_id": str(member.id),
            "amount": "750.00",
            "date": "2024-02-01T00:00:00",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["transaction"]["amount"] == 750.0
        assert body["savings"]["total_amount"] == 750.0

    def test_deposit_must_be_positive(self, admin_client, member):
        response = admin_client.post("/api/savings", json={
            "member_id": str(member.id), "amount": "-5.00", "date": "2024-02-01T00:00:00"
        })
        assert response.status_code == 422

    def test_members_cannot_record_deposits(self, member_client, member):
        response = member_client.post("/api/savings", json={
            "member_id": str(member.id), "amount": "5.00", "date": "2024-02-01T00:00:00"
        })
        assert response.status_code == 403

    def test_delete_transaction_recomputes_total(self, admin_client, db, member):
        first, savings = record_deposit(db, member.id, Decimal("100.00"), datetime(2024, 1, 1))
        record_deposit(db, member.id, Decimal("40.00"), datetime(2024, 2, 1))

        response = admin_client.delete(f"/api/savings/transactions/{first.id}")

        assert response.status_code == 200
        assert response.json()["savings"]["total_amount"] == 40.0
        detail = admin_client.get(f"/api/savings/{savings.id}").json()
        assert [t["amount"] for t in detail["transactions"]] == [40.0]

    def test_delete_unknown_transaction(self, admin_client):
        response = admin_client.delete(f"/api/savings/transactions/{uuid.uuid4()}")
        assert response.status_code == 404

    def test_unknown_savings(self, member_client):
        response = member_client.get(f"/api/savings/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Savings not found"
