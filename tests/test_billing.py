from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from societyhub.core.errors import NotFoundError, SocietyHubError
from societyhub.models.models import FlatBill, MaintenanceBill, PaymentTransaction
from societyhub.services import billing


def _run_bill(session, society, amount, month="2024-01", title="Maintenance"):
    bill, flat_bills = billing.create_maintenance_bill(
        session,
        society.id,
        bill_month=month,
        default_amount=Decimal(amount),
        due_date=date(2024, 1, 10),
        title=title,
    )
    session.commit()
    return bill, {flat_bill.flat_number: flat_bill for flat_bill in flat_bills}


def _pay(session, society, bill, flat_number, amount):
    payment = billing.record_payment(
        session,
        society.id,
        bill_id=bill.id,
        flat_number=flat_number,
        amount_paid=Decimal(amount),
        payment_method="cash",
        payment_date=date(2024, 1, 5),
    )
    session.commit()
    return payment


def test_first_bill_charges_default_amount(db_session, create_society, create_user):
    society = create_society()
    create_user(email="a101@example.com", society=society, flat_number="A-101")
    create_user(email="a102@example.com", society=society, flat_number="A-102")

    bill, flat_bills = _run_bill(db_session, society, "3000")

    assert bill.bill_year == 2024
    assert sorted(flat_bills) == ["A-101", "A-102"]
    for flat_bill in flat_bills.values():
        assert flat_bill.bill_amount == Decimal("3000")
        assert flat_bill.adjusted_amount == Decimal("3000")
        assert flat_bill.balance_due == Decimal("3000")
        assert flat_bill.total_paid == Decimal("0")
        assert flat_bill.status == "pending"


def test_zero_amount_bill_is_paid_immediately(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)

    _, flat_bills = _run_bill(db_session, society, "0")

    assert flat_bills["A-101"].adjusted_amount == Decimal("0")
    assert flat_bills["A-101"].status == "paid"


def test_outstanding_balance_is_carried_into_next_bill(db_session, create_society, create_user):
    society = create_society()
    create_user(email="a101@example.com", society=society, flat_number="A-101")
    create_user(email="a102@example.com", society=society, flat_number="A-102")

    january, january_bills = _run_bill(db_session, society, "500")
    _pay(db_session, society, january, "A-102", "500")

    _, february_bills = _run_bill(db_session, society, "3000", month="2024-02")

    assert february_bills["A-101"].adjusted_amount == Decimal("3500")
    assert february_bills["A-101"].status == "pending"
    assert february_bills["A-102"].adjusted_amount == Decimal("3000")
    assert february_bills["A-102"].status == "pending"

    db_session.refresh(january_bills["A-101"])
    assert january_bills["A-101"].balance_due == Decimal("0")


def test_credit_larger_than_new_charge_is_clamped_to_zero(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)

    january, january_bills = _run_bill(db_session, society, "1000")
    _pay(db_session, society, january, "A-101", "3000")
    db_session.refresh(january_bills["A-101"])
    assert january_bills["A-101"].balance_due == Decimal("-2000")
    assert january_bills["A-101"].status == "paid"

    _, february_bills = _run_bill(db_session, society, "1500", month="2024-02")

    assert february_bills["A-101"].adjusted_amount == Decimal("0")
    assert february_bills["A-101"].balance_due == Decimal("0")
    assert february_bills["A-101"].status == "paid"
    db_session.refresh(january_bills["A-101"])
    assert january_bills["A-101"].balance_due == Decimal("0")


def test_bill_run_without_flats_writes_nothing(db_session, create_society):
    society = create_society()

    with pytest.raises(SocietyHubError) as exc:
        _run_bill(db_session, society, "3000")

    assert exc.value.message == "No flats found in this society"
    assert db_session.query(MaintenanceBill).count() == 0
    assert db_session.query(FlatBill).count() == 0


def test_failure_midway_rolls_back_whole_bill_run(db_session, create_society, create_user, monkeypatch):
    society = create_society()
    create_user(email="a101@example.com", society=society, flat_number="A-101")
    create_user(email="a102@example.com", society=society, flat_number="A-102")
    january, _ = _run_bill(db_session, society, "500")

    original = billing._carry_forward_flat
    calls = {"count": 0}

    def _fail_on_second_flat(session, bill, flat, default_amount):
        calls["count"] += 1
        if calls["count"] == 2:
            raise RuntimeError("database went away")
        return original(session, bill, flat, default_amount)

    monkeypatch.setattr(billing, "_carry_forward_flat", _fail_on_second_flat)

    with pytest.raises(RuntimeError):
        _run_bill(db_session, society, "3000", month="2024-02")

    assert calls["count"] == 2
    assert db_session.query(MaintenanceBill).count() == 1
    flat_bills = db_session.query(FlatBill).all()
    assert len(flat_bills) == 2
    assert all(flat_bill.bill_id == january.id for flat_bill in flat_bills)
    assert all(flat_bill.balance_due == Decimal("500") for flat_bill in flat_bills)


def test_payments_move_flat_bill_from_partial_to_paid(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)
    bill, flat_bills = _run_bill(db_session, society, "3000")

    _pay(db_session, society, bill, "A-101", "1000")
    flat_bill = db_session.get(FlatBill, flat_bills["A-101"].id)
    assert flat_bill.total_paid == Decimal("1000")
    assert flat_bill.balance_due == Decimal("2000")
    assert flat_bill.status == "partial"

    _pay(db_session, society, bill, "A-101", "2000")
    db_session.refresh(flat_bill)
    assert flat_bill.total_paid == Decimal("3000")
    assert flat_bill.balance_due == Decimal("0")
    assert flat_bill.status == "paid"
    assert db_session.query(PaymentTransaction).count() == 2


def test_payment_for_unbilled_flat_is_rejected(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)
    bill, _ = _run_bill(db_session, society, "3000")

    with pytest.raises(NotFoundError) as exc:
        _pay(db_session, society, bill, "Z-999", "100")

    assert exc.value.message == "Unable to find bill for selected flat"
    assert db_session.query(PaymentTransaction).count() == 0


def test_payment_amount_must_be_positive(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)
    bill, _ = _run_bill(db_session, society, "3000")

    with pytest.raises(SocietyHubError):
        _pay(db_session, society, bill, "A-101", "0")


def test_defaulters_are_unpaid_flats_of_latest_bill(db_session, create_society, create_user):
    society = create_society()
    create_user(email="a101@example.com", society=society, flat_number="A-101", name="Asha")
    create_user(email="a101b@example.com", society=society, flat_number="A-101", name="Bala")
    create_user(email="a102@example.com", society=society, flat_number="A-102")
    create_user(email="a103@example.com", society=society, flat_number="A-103")
    _run_bill(db_session, society, "1000")
    bill, _ = _run_bill(db_session, society, "2000", month="2024-02")
    _pay(db_session, society, bill, "A-102", "3000")
    _pay(db_session, society, bill, "A-103", "100")

    latest, defaulters = billing.list_defaulters(db_session, society.id)

    assert latest.id == bill.id
    assert [flat_bill.flat_number for flat_bill in defaulters] == ["A-101", "A-103"]
    assert [flat_bill.status for flat_bill in defaulters] == ["pending", "partial"]
    assert [resident.name for resident in defaulters[0].flat.residents] == ["Asha", "Bala"]


def test_defaulters_without_any_bill_is_empty(db_session, create_society):
    society = create_society()

    bill, defaulters = billing.list_defaulters(db_session, society.id)

    assert bill is None
    assert defaulters == []


def test_collection_stats_and_flat_balance(db_session, create_society, create_user):
    society = create_society()
    resident = create_user(email="a101@example.com", society=society, flat_number="A-101")
    create_user(email="a102@example.com", society=society, flat_number="A-102")
    bill, _ = _run_bill(db_session, society, "1000", month="2024-03")
    _pay(db_session, society, bill, "A-102", "1000")
    _pay(db_session, society, bill, "A-101", "400")

    stats = billing.collection_stats(db_session, society.id, today=date(2024, 3, 15))

    assert stats.latest_bill.id == bill.id
    assert stats.total_flats == 2
    assert stats.paid_flats == 1
    assert stats.pending_flats == 1
    assert stats.total_collected == Decimal("1400")
    assert stats.total_pending == Decimal("600")
    assert stats.collection_percent == 50
    assert [current.id for current in stats.current_month_bills] == [bill.id]
    assert billing.flat_balance(db_session, resident.flat_id) == Decimal("600")


def test_payment_history_is_newest_first_and_limited(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)
    bill, _ = _run_bill(db_session, society, "3000")
    first = _pay(db_session, society, bill, "A-101", "100")
    second = _pay(db_session, society, bill, "A-101", "200")

    history = billing.list_payment_history(db_session, society.id, limit=1)

    assert [payment.id for payment in history] == [second.id]
    assert history[0].flat_bill.bill.title == "Maintenance"
    assert first.id != second.id


def test_compute_adjusted_amount_clamps_credit():
    assert billing.compute_adjusted_amount(Decimal("3000"), Decimal("500")) == Decimal("3500.00")
    assert billing.compute_adjusted_amount(Decimal("1000"), Decimal("-2500")) == Decimal("0.00")
    assert billing.derive_status(Decimal("-1"), Decimal("10")) == "paid"
    assert billing.derive_status(Decimal("5"), Decimal("0")) == "pending"


def test_late_payment_on_absorbed_bill_becomes_credit(db_session, create_society, create_user):
    society = create_society()
    resident = create_user(society=society)
    january, january_bills = _run_bill(db_session, society, "3000")
    _, february_bills = _run_bill(db_session, society, "3000", month="2024-02")
    assert billing.flat_balance(db_session, resident.flat_id) == Decimal("6000")

    _pay(db_session, society, january, "A-101", "1000")

    db_session.refresh(january_bills["A-101"])
    db_session.refresh(february_bills["A-101"])
    assert january_bills["A-101"].balance_due == Decimal("-1000")
    assert january_bills["A-101"].total_paid == Decimal("1000")
    assert january_bills["A-101"].status == "paid"
    assert february_bills["A-101"].balance_due == Decimal("6000")
    assert billing.flat_balance(db_session, resident.flat_id) == Decimal("5000")

    _, march_bills = _run_bill(db_session, society, "3000", month="2024-03")
    assert march_bills["A-101"].adjusted_amount == Decimal("8000")
    assert billing.flat_balance(db_session, resident.flat_id) == Decimal("8000")


def test_defaulters_of_absorbed_bill_are_empty(db_session, create_society, create_user):
    society = create_society()
    create_user(society=society)
    january, _ = _run_bill(db_session, society, "3000")
    february, _ = _run_bill(db_session, society, "3000", month="2024-02")

    _, older = billing.list_defaulters(db_session, society.id, january.id)
    latest, current = billing.list_defaulters(db_session, society.id)

    assert older == []
    assert latest.id == february.id
    assert [flat_bill.flat_number for flat_bill in current] == ["A-101"]


def test_recording_payment_locks_the_flat_bill_row(db_session, create_society, create_user, monkeypatch):
    society = create_society()
    create_user(society=society)
    bill, _ = _run_bill(db_session, society, "3000")

    query = billing.flat_bill_query(db_session, society.id, bill.id, "A-101", lock=True)
    compiled = str(query.statement.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE OF flat_bills" in compiled

    seen = {}
    original = billing.get_flat_bill

    def _spy(session, society_id, bill_id, flat_number, lock=False):
        seen["lock"] = lock
        return original(session, society_id, bill_id, flat_number, lock=lock)

    monkeypatch.setattr(billing, "get_flat_bill", _spy)
    _pay(db_session, society, bill, "A-101", "500")

    assert seen["lock"] is True
