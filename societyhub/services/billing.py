"""Maintenance billing: bill runs with balance carry-forward, payments and defaulters.

A bill run fans one ``MaintenanceBill`` out into one ``FlatBill`` per flat of
the society. Whatever a flat still owes (or has paid in advance) on its earlier
FlatBills is folded into the new FlatBill and the earlier balances are zeroed.
The run is a single unit of work: every FlatBill is written, or none is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..constants import PAYMENT_METHODS
from ..core.errors import NotFoundError, SocietyHubError
from ..models.models import Flat, FlatBill, MaintenanceBill, PaymentTransaction, User

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _ensure_decimal(amount: Decimal | float | int | None) -> Decimal:
    if amount is None:
        return ZERO
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def compute_adjusted_amount(default_amount: Decimal, prior_balance: Decimal) -> Decimal:
    """New charge plus carried balance, clamped at zero.

    A credit larger than the new charge is not carried past zero.
    """
    adjusted = _ensure_decimal(default_amount) + _ensure_decimal(prior_balance)
    return max(ZERO, adjusted).quantize(CENT)


def derive_status(balance_due: Decimal, total_paid: Decimal) -> str:
    if _ensure_decimal(balance_due) <= ZERO:
        return "paid"
    if _ensure_decimal(total_paid) > ZERO:
        return "partial"
    return "pending"


def _carry_forward_flat(session: Session, bill: MaintenanceBill, flat: Flat, default_amount: Decimal) -> FlatBill:
    prior_bills: Sequence[FlatBill] = (
        session.query(FlatBill)
        .filter(FlatBill.flat_id == flat.id, FlatBill.bill_id != bill.id)
        .order_by(FlatBill.id.asc())
        .with_for_update()
        .all()
    )
    prior_balance = sum((_ensure_decimal(row.balance_due) for row in prior_bills), ZERO)
    for row in prior_bills:
        row.balance_due = ZERO
        session.add(row)

    adjusted = compute_adjusted_amount(default_amount, prior_balance)
    flat_bill = FlatBill(
        bill_id=bill.id,
        flat_id=flat.id,
        society_id=flat.society_id,
        flat_number=flat.flat_number,
        bill_amount=default_amount,
        adjusted_amount=adjusted,
        balance_due=adjusted,
        total_paid=ZERO,
        status="paid" if adjusted == ZERO else "pending",
    )
    session.add(flat_bill)
    session.flush()
    if prior_balance:
        logger.debug(
            "Flat %s carried %s into bill %s (adjusted %s)",
            flat.flat_number,
            prior_balance,
            bill.id,
            adjusted,
        )
    return flat_bill


def create_maintenance_bill(
    session: Session,
    society_id: int,
    *,
    bill_month: str,
    default_amount: Decimal,
    due_date: date,
    title: str,
    description: Optional[str] = None,
    created_by: Optional[User] = None,
) -> Tuple[MaintenanceBill, List[FlatBill]]:
    default_amount = _ensure_decimal(default_amount).quantize(CENT)
    if default_amount < ZERO:
        raise SocietyHubError("Bill amount cannot be negative")

    flats: Sequence[Flat] = (
        session.query(Flat)
        .filter(Flat.society_id == society_id)
        .order_by(Flat.flat_number.asc())
        .all()
    )
    if not flats:
        raise SocietyHubError("No flats found in this society")

    try:
        bill = MaintenanceBill(
            society_id=society_id,
            bill_month=bill_month,
            bill_year=int(bill_month.split("-")[0]),
            default_amount=default_amount,
            due_date=due_date,
            title=title,
            description=description,
            created_by_user_id=created_by.id if created_by else None,
        )
        session.add(bill)
        session.flush()

        flat_bills = [_carry_forward_flat(session, bill, flat, default_amount) for flat in flats]
    except Exception:
        session.rollback()
        logger.exception("Bill run for society %s failed; nothing was written", society_id)
        raise

    logger.info("Created bill %s (%s) for %d flats in society %s", bill.id, bill.bill_month, len(flat_bills), society_id)
    return bill, flat_bills


def get_bill(session: Session, society_id: int, bill_id: int) -> MaintenanceBill:
    bill = session.get(MaintenanceBill, bill_id)
    if not bill or bill.society_id != society_id:
        raise NotFoundError("Bill not found")
    return bill


def latest_bill(session: Session, society_id: int) -> Optional[MaintenanceBill]:
    return (
        session.query(MaintenanceBill)
        .filter(MaintenanceBill.society_id == society_id)
        .order_by(MaintenanceBill.created_at.desc(), MaintenanceBill.id.desc())
        .first()
    )


def list_bills(session: Session, society_id: int, bill_month: Optional[str] = None) -> List[MaintenanceBill]:
    query = session.query(MaintenanceBill).filter(MaintenanceBill.society_id == society_id)
    if bill_month:
        query = query.filter(MaintenanceBill.bill_month == bill_month)
    return query.order_by(MaintenanceBill.created_at.desc(), MaintenanceBill.id.desc()).all()


def flat_bill_query(session: Session, society_id: int, bill_id: int, flat_number: str, lock: bool = False):
    query = (
        session.query(FlatBill)
        .join(Flat, Flat.id == FlatBill.flat_id)
        .filter(
            FlatBill.society_id == society_id,
            FlatBill.bill_id == bill_id,
            Flat.flat_number == flat_number.strip(),
        )
    )
    if lock:
        query = query.with_for_update(of=FlatBill)
    return query


def get_flat_bill(
    session: Session,
    society_id: int,
    bill_id: int,
    flat_number: str,
    lock: bool = False,
) -> FlatBill:
    flat_bill = flat_bill_query(session, society_id, bill_id, flat_number, lock=lock).first()
    if not flat_bill:
        raise NotFoundError("Unable to find bill for selected flat")
    return flat_bill


def apply_payment(flat_bill: FlatBill, amount: Decimal) -> FlatBill:
    """Credit a payment against the FlatBill's current balance.

    A FlatBill already folded into a later bill has a zero balance, so a late
    payment on it becomes a credit that the next bill run carries forward.
    """
    flat_bill.total_paid = _ensure_decimal(flat_bill.total_paid) + amount
    flat_bill.balance_due = _ensure_decimal(flat_bill.balance_due) - amount
    flat_bill.status = derive_status(flat_bill.balance_due, flat_bill.total_paid)
    return flat_bill


def record_payment(
    session: Session,
    society_id: int,
    *,
    bill_id: int,
    flat_number: str,
    amount_paid: Decimal,
    payment_method: str,
    payment_date: date,
    transaction_reference: Optional[str] = None,
    remarks: Optional[str] = None,
    recorded_by: Optional[User] = None,
) -> PaymentTransaction:
    amount = _ensure_decimal(amount_paid).quantize(CENT)
    if amount <= ZERO:
        raise SocietyHubError("Payment amount must be greater than zero")
    if payment_method not in PAYMENT_METHODS:
        raise SocietyHubError(f"Unknown payment method {payment_method}")

    flat_bill = get_flat_bill(session, society_id, bill_id, flat_number, lock=True)
    payment = PaymentTransaction(
        flat_bill_id=flat_bill.id,
        flat_id=flat_bill.flat_id,
        society_id=society_id,
        flat_number=flat_bill.flat_number,
        amount_paid=amount,
        payment_method=payment_method,
        payment_date=payment_date,
        transaction_reference=transaction_reference,
        remarks=remarks,
        recorded_by_user_id=recorded_by.id if recorded_by else None,
    )
    session.add(payment)
    apply_payment(flat_bill, amount)
    session.add(flat_bill)
    session.flush()
    logger.info(
        "Recorded payment %s of %s for flat %s on bill %s (status %s)",
        payment.id,
        amount,
        flat_bill.flat_number,
        bill_id,
        flat_bill.status,
    )
    return payment


def list_payment_history(session: Session, society_id: int, limit: int = 50) -> List[PaymentTransaction]:
    return (
        session.query(PaymentTransaction)
        .options(joinedload(PaymentTransaction.flat_bill).joinedload(FlatBill.bill))
        .filter(PaymentTransaction.society_id == society_id)
        .order_by(PaymentTransaction.recorded_at.desc(), PaymentTransaction.id.desc())
        .limit(limit)
        .all()
    )


def list_flat_payments(session: Session, flat_id: int) -> List[PaymentTransaction]:
    return (
        session.query(PaymentTransaction)
        .options(joinedload(PaymentTransaction.flat_bill).joinedload(FlatBill.bill))
        .filter(PaymentTransaction.flat_id == flat_id)
        .order_by(PaymentTransaction.payment_date.desc(), PaymentTransaction.id.desc())
        .all()
    )


def list_defaulters(
    session: Session,
    society_id: int,
    bill_id: Optional[int] = None,
) -> Tuple[Optional[MaintenanceBill], List[FlatBill]]:
    bill = get_bill(session, society_id, bill_id) if bill_id else latest_bill(session, society_id)
    if not bill:
        return None, []
    defaulters = (
        session.query(FlatBill)
        .options(joinedload(FlatBill.flat).joinedload(Flat.residents))
        .filter(FlatBill.bill_id == bill.id, FlatBill.status != "paid", FlatBill.balance_due > 0)
        .order_by(FlatBill.flat_number.asc())
        .all()
    )
    return bill, defaulters


def flat_balance(session: Session, flat_id: int) -> Decimal:
    """Outstanding amount for a flat: positive is owed, negative is an advance."""
    total = (
        session.query(func.coalesce(func.sum(FlatBill.balance_due), 0))
        .filter(FlatBill.flat_id == flat_id)
        .scalar()
    )
    return _ensure_decimal(total).quantize(CENT)


@dataclass
class CollectionStats:
    latest_bill: Optional[MaintenanceBill] = None
    total_flats: int = 0
    paid_flats: int = 0
    pending_flats: int = 0
    total_collected: Decimal = ZERO
    total_pending: Decimal = ZERO
    current_month_bills: List[MaintenanceBill] = field(default_factory=list)

    @property
    def collection_percent(self) -> int:
        if not self.total_flats:
            return 0
        return round(self.paid_flats * 100 / self.total_flats)


def collection_stats(session: Session, society_id: int, today: Optional[date] = None) -> CollectionStats:
    today = today or date.today()
    stats = CollectionStats(current_month_bills=list_bills(session, society_id, bill_month=today.strftime("%Y-%m")))
    bill = latest_bill(session, society_id)
    if not bill:
        return stats

    flat_bills = session.query(FlatBill).filter(FlatBill.bill_id == bill.id).all()
    stats.latest_bill = bill
    stats.total_flats = len(flat_bills)
    stats.paid_flats = sum(1 for flat_bill in flat_bills if flat_bill.status == "paid")
    stats.pending_flats = stats.total_flats - stats.paid_flats
    stats.total_collected = sum((_ensure_decimal(fb.total_paid) for fb in flat_bills), ZERO)
    stats.total_pending = sum((_ensure_decimal(fb.balance_due) for fb in flat_bills), ZERO)
    return stats
