from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship as orm_relationship

from ..config import Base
from ..constants import ADMIN_ROLES


def utcnow():
    return datetime.now(timezone.utc)


class Society(Base):
    __tablename__ = "societies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    flats = orm_relationship("Flat", back_populates="society", cascade="all, delete-orphan")
    users = orm_relationship("User", back_populates="society", cascade="all, delete-orphan")


class Flat(Base):
    __tablename__ = "flats"
    __table_args__ = (UniqueConstraint("society_id", "flat_number", name="uq_flat_society_number"),)

    id = Column(Integer, primary_key=True, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    flat_number = Column(String, nullable=False)
    owner_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL", use_alter=True), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    society = orm_relationship("Society", back_populates="flats")
    owner = orm_relationship("User", foreign_keys=[owner_user_id], post_update=True)
    residents = orm_relationship(
        "User",
        back_populates="flat",
        foreign_keys="User.flat_id",
        order_by="User.name",
    )
    vehicles = orm_relationship("Vehicle", back_populates="flat")
    flat_bills = orm_relationship("FlatBill", back_populates="flat")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("society_id", "email", name="uq_user_society_email"),)

    id = Column(Integer, primary_key=True, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    flat_id = Column(Integer, ForeignKey("flats.id", ondelete="SET NULL"), nullable=True, index=True)
    email = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="RESIDENT")
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    society = orm_relationship("Society", back_populates="users")
    flat = orm_relationship("Flat", back_populates="residents", foreign_keys=[flat_id])
    vehicles = orm_relationship("Vehicle", back_populates="user")
    audit_logs = orm_relationship("AuditLog", back_populates="actor")

    @property
    def flat_number(self):
        return self.flat.flat_number if self.flat else None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def has_any_role(self, *role_names: str) -> bool:
        return self.role in set(role_names)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=True, index=True)
    actor_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String, nullable=False)
    target_entity_type = Column(String, nullable=True)
    target_entity_id = Column(String, nullable=True)
    before = Column(Text, nullable=True)
    after = Column(Text, nullable=True)

    actor = orm_relationship("User", back_populates="audit_logs")


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (UniqueConstraint("society_id", "number_plate", name="uq_vehicle_society_plate"),)

    id = Column(Integer, primary_key=True, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    flat_id = Column(Integer, ForeignKey("flats.id", ondelete="SET NULL"), nullable=True, index=True)
    number_plate = Column(String, nullable=False, index=True)
    vehicle_type = Column(String, nullable=False)
    color = Column(String, nullable=True)
    vehicle_brand = Column(String, nullable=True)
    vehicle_model = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = orm_relationship("User", back_populates="vehicles")
    flat = orm_relationship("Flat", back_populates="vehicles")


class Notice(Base):
    __tablename__ = "notices"

    id = Column(Integer, primary_key=True, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    notice_type = Column(String, nullable=False, default="general")
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    creator = orm_relationship("User")


class Complaint(Base):
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    filed_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="open")
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    cleared_at = Column(DateTime, nullable=True)

    filed_by = orm_relationship("User")


class MaintenanceBill(Base):
    __tablename__ = "maintenance_bills"

    id = Column(Integer, primary_key=True, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    bill_month = Column(String, nullable=False, index=True)  # YYYY-MM
    bill_year = Column(Integer, nullable=False)
    default_amount = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    creator = orm_relationship("User")
    flat_bills = orm_relationship(
        "FlatBill",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="FlatBill.flat_number",
    )


class FlatBill(Base):
    __tablename__ = "flat_bills"
    __table_args__ = (UniqueConstraint("bill_id", "flat_id", name="uq_flat_bill_bill_flat"),)

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("maintenance_bills.id", ondelete="CASCADE"), nullable=False, index=True)
    flat_id = Column(Integer, ForeignKey("flats.id", ondelete="CASCADE"), nullable=False, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    flat_number = Column(String, nullable=False)
    bill_amount = Column(Numeric(10, 2), nullable=False)
    adjusted_amount = Column(Numeric(10, 2), nullable=False)
    balance_due = Column(Numeric(10, 2), nullable=False, default=0)
    total_paid = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    bill = orm_relationship("MaintenanceBill", back_populates="flat_bills")
    flat = orm_relationship("Flat", back_populates="flat_bills")
    payments = orm_relationship("PaymentTransaction", back_populates="flat_bill")


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    flat_bill_id = Column(Integer, ForeignKey("flat_bills.id", ondelete="RESTRICT"), nullable=False, index=True)
    flat_id = Column(Integer, ForeignKey("flats.id", ondelete="CASCADE"), nullable=False, index=True)
    society_id = Column(Integer, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    flat_number = Column(String, nullable=False)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String, nullable=False, default="cash")
    payment_date = Column(Date, nullable=False)
    transaction_reference = Column(String, nullable=True)
    remarks = Column(Text, nullable=True)
    recorded_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    recorded_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    flat_bill = orm_relationship("FlatBill", back_populates="payments")
    recorder = orm_relationship("User")
