#!/usr/bin/env python
"""
Seed script to populate the database with a demo society for local development.

Usage:
    python scripts/seed_data.py --residents 6
"""

import argparse
from datetime import date, timedelta
from decimal import Decimal

from societyhub.config import Base, SessionLocal, engine
from societyhub.models.models import Society, User
from societyhub.services import accounts, billing, complaints, notices, vehicles

DEMO_SOCIETY = "Green Valley Residency"
DEMO_PASSWORD = "changeme"


def create_committee(session, society: Society) -> User:
    chairman = accounts.find_user_by_email(session, society.id, "chairman@example.com")
    if chairman:
        return chairman

    chairman = accounts.register_resident(
        session,
        society,
        name="Society Chairman",
        email="chairman@example.com",
        phone="9000000001",
        flat_number="A-101",
        password=DEMO_PASSWORD,
        role="CHAIRMAN",
    )
    accounts.register_resident(
        session,
        society,
        name="Society Secretary",
        email="secretary@example.com",
        phone="9000000002",
        flat_number="A-102",
        password=DEMO_PASSWORD,
        role="SECRETARY",
    )
    return chairman


def create_resident_bundle(session, society: Society, index: int) -> User:
    resident = accounts.register_resident(
        session,
        society,
        name=f"Test Resident {index}",
        email=f"resident{index}@example.com",
        phone=f"98{index:08d}",
        flat_number=f"B-{100 + index}",
        password=DEMO_PASSWORD,
    )
    vehicles.add_vehicle(
        session,
        resident,
        number_plate=f"MH12AB{1000 + index}",
        vehicle_type="4-wheeler" if index % 2 else "2-wheeler",
        color="White",
        vehicle_brand=None,
        vehicle_model=None,
    )
    if index == 1:
        complaints.file_complaint(
            session,
            filer=resident,
            title="Lift not working",
            description="The lift in B wing stops between floors.",
        )
    return resident


def seed_database(residents: int) -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        society = session.query(Society).filter(Society.name == DEMO_SOCIETY).first()
        if not society:
            society = accounts.create_society(session, name=DEMO_SOCIETY, address="MG Road", city="Pune")
        chairman = create_committee(session, society)

        existing = session.query(User).filter(User.society_id == society.id, User.role == "RESIDENT").count()
        targets = max(residents, 0)
        for offset in range(targets):
            create_resident_bundle(session, society, existing + offset + 1)

        notices.create_notice(
            session,
            author=chairman,
            title="Water supply maintenance",
            description="Water supply will be off on Sunday from 10am to 2pm.",
            notice_type="maintenance",
        )
        session.commit()

        today = date.today()
        bill, flat_bills = billing.create_maintenance_bill(
            session,
            society.id,
            bill_month=today.strftime("%Y-%m"),
            default_amount=Decimal("2500.00"),
            due_date=today + timedelta(days=10),
            title=f"Maintenance {today:%B %Y}",
            created_by=chairman,
        )
        billing.record_payment(
            session,
            society.id,
            bill_id=bill.id,
            flat_number=flat_bills[0].flat_number,
            amount_paid=Decimal("2500.00"),
            payment_method="upi",
            payment_date=today,
            recorded_by=chairman,
        )
        session.commit()
        print(
            f"Seed complete. Society '{society.name}' (id {society.id}) with {targets} new residents "
            f"and bill {bill.bill_month} for {len(flat_bills)} flats (password: '{DEMO_PASSWORD}')."
        )


def main():
    parser = argparse.ArgumentParser(description="Seed the SocietyHub database with a demo society.")
    parser.add_argument("--residents", type=int, default=6, help="Number of resident accounts to create")
    args = parser.parse_args()
    seed_database(args.residents)


if __name__ == "__main__":
    main()
