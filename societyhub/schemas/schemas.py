import re
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..config import settings

BILL_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

RoleName = Literal["RESIDENT", "SECRETARY", "CHAIRMAN"]
NoticeTypeName = Literal["general", "maintenance", "urgent"]
ComplaintStatusName = Literal["open", "acknowledged", "resolved", "cleared"]
VehicleTypeName = Literal["2-wheeler", "4-wheeler", "auto", "commercial"]
PaymentMethodName = Literal["cash", "upi", "cheque", "bank_transfer", "neft"]


def _required_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


class SocietyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: Optional[str] = None
    city: Optional[str] = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    society_id: int
    flat_id: Optional[int] = None
    flat_number: Optional[str] = None
    email: str
    name: str
    phone: Optional[str] = None
    role: RoleName
    is_active: bool
    created_at: datetime


class SignupRequest(BaseModel):
    society_id: int
    name: str
    email: EmailStr
    phone: str
    flat_number: str
    password: str
    confirm_password: str

    @field_validator("name", "phone", "flat_number")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)

    @field_validator("password")
    @classmethod
    def password_long_enough(cls, value: str) -> str:
        if len(value) < settings.min_password_length:
            raise ValueError(f"Password must be at least {settings.min_password_length} characters")
        return value

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_expires_in: int
    user: UserRead
    society: SocietyRead


class TokenRefreshRequest(BaseModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    flat_number: Optional[str] = None

    @field_validator("name", "phone", "flat_number")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_long_enough(cls, value: str) -> str:
        if len(value) < settings.min_password_length:
            raise ValueError(f"Password must be at least {settings.min_password_length} characters")
        return value


class MemberRoleUpdate(BaseModel):
    role: RoleName


class VehicleCreate(BaseModel):
    number_plate: str
    vehicle_type: VehicleTypeName
    color: Optional[str] = None
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None

    @field_validator("number_plate")
    @classmethod
    def normalise_plate(cls, value: str) -> str:
        plate = value.strip().upper()
        if not plate:
            raise ValueError("Number plate and vehicle type are required")
        return plate


class VehicleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    society_id: int
    user_id: int
    flat_id: Optional[int] = None
    number_plate: str
    vehicle_type: str
    color: Optional[str] = None
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    created_at: datetime


class VehicleOwnerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    phone: Optional[str] = None
    email: str
    flat_number: Optional[str] = None


class VehicleSearchResult(VehicleRead):
    owner: VehicleOwnerRead


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    flat_number: Optional[str] = None
    role: str


class NoticeCreate(BaseModel):
    title: str
    description: str
    notice_type: NoticeTypeName = "general"

    @field_validator("title", "description")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)


class NoticeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    society_id: int
    title: str
    description: str
    notice_type: str
    created_at: datetime
    created_by_user_id: Optional[int] = None
    creator: Optional[UserSummary] = None


class ComplaintCreate(BaseModel):
    title: str
    description: str

    @field_validator("title", "description")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)


class ComplaintStatusUpdate(BaseModel):
    status: ComplaintStatusName


class ComplaintRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    society_id: int
    title: str
    description: str
    status: str
    created_at: datetime
    cleared_at: Optional[datetime] = None
    filed_by_user_id: Optional[int] = None
    filed_by: Optional[UserSummary] = None


class BillCreate(BaseModel):
    bill_month: str
    default_amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    due_date: date
    title: str
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)

    @field_validator("bill_month")
    @classmethod
    def bill_month_format(cls, value: str) -> str:
        value = value.strip()
        if not BILL_MONTH_PATTERN.match(value):
            raise ValueError("bill_month must use the YYYY-MM format")
        return value


class MaintenanceBillRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    society_id: int
    bill_month: str
    bill_year: int
    default_amount: Decimal
    due_date: date
    title: str
    description: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: datetime


class FlatBillRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bill_id: int
    flat_id: int
    flat_number: str
    bill_amount: Decimal
    adjusted_amount: Decimal
    balance_due: Decimal
    total_paid: Decimal
    status: str


class BillRunRead(BaseModel):
    bill: MaintenanceBillRead
    flats_billed: int
    flat_bills: List[FlatBillRead]


class PaymentCreate(BaseModel):
    bill_id: int
    flat_number: str
    amount_paid: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethodName = "cash"
    payment_date: date = Field(default_factory=date.today)
    transaction_reference: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("flat_number")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    flat_bill_id: int
    flat_id: int
    flat_number: str
    amount_paid: Decimal
    payment_method: str
    payment_date: date
    transaction_reference: Optional[str] = None
    remarks: Optional[str] = None
    recorded_by_user_id: Optional[int] = None
    recorded_at: datetime


class PaymentHistoryRead(PaymentRead):
    bill_title: Optional[str] = None
    bill_amount: Optional[Decimal] = None


class PaymentRecordResult(BaseModel):
    payment: PaymentRead
    flat_bill: FlatBillRead


class ResidentContact(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    phone: Optional[str] = None
    email: str


class DefaulterRead(FlatBillRead):
    residents: List[ResidentContact] = []


class DefaultersList(BaseModel):
    bill: Optional[MaintenanceBillRead] = None
    defaulters: List[DefaulterRead] = []


class PaymentsOverview(BaseModel):
    latest_bill: Optional[MaintenanceBillRead] = None
    total_flats: int = 0
    paid_flats: int = 0
    pending_flats: int = 0
    total_collected: Decimal = Decimal("0")
    total_pending: Decimal = Decimal("0")
    collection_percent: int = 0
    current_month_bills: List[MaintenanceBillRead] = []


class ResidentPaymentSummary(BaseModel):
    flat_number: Optional[str] = None
    latest_bill: Optional[MaintenanceBillRead] = None
    flat_bill: Optional[FlatBillRead] = None
    payments: List[PaymentHistoryRead] = []
    balance: Decimal = Decimal("0")


class AuditLogActor(BaseModel):
    id: Optional[int] = None
    email: Optional[str] = None
    name: Optional[str] = None


class AuditLogEntry(BaseModel):
    id: int
    timestamp: datetime
    action: str
    target_entity_type: Optional[str] = None
    target_entity_id: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None
    actor: AuditLogActor


class AuditLogList(BaseModel):
    items: List[AuditLogEntry]
    total: int
