"""Create a society together with its first CHAIRMAN account.

Run: `python -m societyhub.manage_create_society --name "Green Valley" --email chair@example.com --password changeme --flat A-101`
"""

import argparse
from contextlib import contextmanager

from societyhub.config import Base, SessionLocal, engine
from societyhub.core.errors import SocietyHubError
from societyhub.services import accounts


@contextmanager
def session_scope():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="Create a society and its CHAIRMAN")
    parser.add_argument("--name", required=True, help="Society name")
    parser.add_argument("--address")
    parser.add_argument("--city")
    parser.add_argument("--email", required=True, help="Chairman email")
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default="Society Chairman")
    parser.add_argument("--phone", default="")
    parser.add_argument("--flat", required=True, help="Chairman's flat number, e.g. A-101")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    try:
        with session_scope() as db:
            society = accounts.create_society(db, name=args.name, address=args.address, city=args.city)
            chairman = accounts.register_resident(
                db,
                society,
                name=args.full_name,
                email=args.email,
                phone=args.phone,
                flat_number=args.flat,
                password=args.password,
                role="CHAIRMAN",
            )
            print(f"Created society {society.id} ({society.name}) with CHAIRMAN user {chairman.id}")
    except SocietyHubError as exc:
        raise SystemExit(exc.message) from exc


if __name__ == "__main__":
    main()
