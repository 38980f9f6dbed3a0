from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..api.dependencies import get_db, get_flat_for_user
from ..auth.jwt import get_current_user, require_admin
from ..config import settings
from ..models.models import FlatBill, MaintenanceBill, PaymentTransaction, User
from ..schemas.schemas import (
    BillCreate,
    BillRunRead,
    DefaulterRead,
    DefaultersList,
    FlatBillRead,
    MaintenanceBillRead,
    PaymentCreate,
    PaymentHistoryRead,
    PaymentRead,
    PaymentRecordResult,
    PaymentsOverview,
    ResidentContact,
    ResidentPaymentSummary,
)
from ..services import billing
from ..services.audit import audit_log
from ..utils.csv_utils import defaulters_to_csv

router = APIRouter()


def _csv_response(filename: str, content: str) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-store",
    }
    return Response(content=content, media_type="text/csv", headers=headers)


def _history_entry(payment: PaymentTransaction) -> PaymentHistoryRead:
    bill = payment.flat_bill.bill if payment.flat_bill else None
    return PaymentHistoryRead(
        **PaymentRead.model_validate(payment).model_dump(),
        bill_title=bill.title if bill else None,
        bill_amount=payment.flat_bill.adjusted_amount if payment.flat_bill else None,
    )


def _defaulter_entry(flat_bill: FlatBill) -> DefaulterRead:
    residents = flat_bill.flat.residents if flat_bill.flat else []
    return DefaulterRead(
        **FlatBillRead.model_validate(flat_bill).model_dump(),
        residents=[ResidentContact.model_validate(resident) for resident in residents],
    )


@router.post("/bills", response_model=BillRunRead, status_code=status.HTTP_201_CREATED)
def create_bill(
    payload: BillCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> BillRunRead:
    bill, flat_bills = billing.create_maintenance_bill(
        db,
        actor.society_id,
        bill_month=payload.bill_month,
        default_amount=payload.default_amount,
        due_date=payload.due_date,
        title=payload.title,
        description=payload.description,
        created_by=actor,
    )
    audit_log(
        db_session=db,
        actor_user_id=actor.id,
        action="billing.bill_run",
        target_entity_type="MaintenanceBill",
        target_entity_id=str(bill.id),
        after={
            "bill_month": bill.bill_month,
            "default_amount": str(bill.default_amount),
            "flats_billed": len(flat_bills),
        },
        society_id=actor.society_id,
        commit=False,
    )
    db.commit()
    db.refresh(bill)
    for flat_bill in flat_bills:
        db.refresh(flat_bill)
    return BillRunRead(
        bill=MaintenanceBillRead.model_validate(bill),
        flats_billed=len(flat_bills),
        flat_bills=[FlatBillRead.model_validate(flat_bill) for flat_bill in flat_bills],
    )


@router.get("/bills", response_model=List[MaintenanceBillRead])
def list_bills(
    bill_month: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[MaintenanceBill]:
    return billing.list_bills(db, user.society_id, bill_month=bill_month)


@router.get("/bills/{bill_id}/flats/{flat_number}", response_model=FlatBillRead)
def get_flat_bill(
    bill_id: int,
    flat_number: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> FlatBill:
    return billing.get_flat_bill(db, actor.society_id, bill_id, flat_number)


@router.post("/payments", response_model=PaymentRecordResult, status_code=status.HTTP_201_CREATED)
def record_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> PaymentRecordResult:
    try:
        payment = billing.record_payment(
            db,
            actor.society_id,
            bill_id=payload.bill_id,
            flat_number=payload.flat_number,
            amount_paid=payload.amount_paid,
            payment_method=payload.payment_method,
            payment_date=payload.payment_date,
            transaction_reference=payload.transaction_reference,
            remarks=payload.remarks,
            recorded_by=actor,
        )
        audit_log(
            db_session=db,
            actor_user_id=actor.id,
            action="billing.payment_recorded",
            target_entity_type="PaymentTransaction",
            target_entity_id=str(payment.id),
            after={
                "flat_number": payment.flat_number,
                "amount_paid": str(payment.amount_paid),
                "payment_method": payment.payment_method,
            },
            society_id=actor.society_id,
            commit=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)
    flat_bill = db.get(FlatBill, payment.flat_bill_id)
    return PaymentRecordResult(
        payment=PaymentRead.model_validate(payment),
        flat_bill=FlatBillRead.model_validate(flat_bill),
    )


@router.get("/payments", response_model=List[PaymentHistoryRead])
def list_payments(
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> List[PaymentHistoryRead]:
    payments = billing.list_payment_history(db, actor.society_id, limit=settings.payment_history_limit)
    return [_history_entry(payment) for payment in payments]


@router.get("/defaulters", response_model=DefaultersList)
def list_defaulters(
    bill_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> DefaultersList:
    bill, defaulters = billing.list_defaulters(db, actor.society_id, bill_id)
    return DefaultersList(
        bill=MaintenanceBillRead.model_validate(bill) if bill else None,
        defaulters=[_defaulter_entry(flat_bill) for flat_bill in defaulters],
    )


@router.get("/defaulters.csv")
def export_defaulters(
    bill_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> Response:
    bill, defaulters = billing.list_defaulters(db, actor.society_id, bill_id)
    month = bill.bill_month if bill else date.today().strftime("%Y-%m")
    return _csv_response(f"defaulters-{month}.csv", defaulters_to_csv(defaulters))


@router.get("/overview", response_model=PaymentsOverview)
def payments_overview(
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> PaymentsOverview:
    stats = billing.collection_stats(db, actor.society_id)
    return PaymentsOverview(
        latest_bill=MaintenanceBillRead.model_validate(stats.latest_bill) if stats.latest_bill else None,
        total_flats=stats.total_flats,
        paid_flats=stats.paid_flats,
        pending_flats=stats.pending_flats,
        total_collected=stats.total_collected,
        total_pending=stats.total_pending,
        collection_percent=stats.collection_percent,
        current_month_bills=[MaintenanceBillRead.model_validate(bill) for bill in stats.current_month_bills],
    )


@router.get("/me", response_model=ResidentPaymentSummary)
def resident_summary(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ResidentPaymentSummary:
    flat = get_flat_for_user(db, user)
    if not flat:
        return ResidentPaymentSummary()

    bill = billing.latest_bill(db, user.society_id)
    flat_bill = None
    if bill:
        flat_bill = (
            db.query(FlatBill)
            .filter(FlatBill.bill_id == bill.id, FlatBill.flat_id == flat.id)
            .first()
        )
    payments = billing.list_flat_payments(db, flat.id)
    return ResidentPaymentSummary(
        flat_number=flat.flat_number,
        latest_bill=MaintenanceBillRead.model_validate(bill) if bill else None,
        flat_bill=FlatBillRead.model_validate(flat_bill) if flat_bill else None,
        payments=[_history_entry(payment) for payment in payments],
        balance=billing.flat_balance(db, flat.id),
    )
