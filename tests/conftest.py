import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from societyhub.config import Base  # noqa: E402
import societyhub.config as app_config  # noqa: E402
import societyhub.main as app_main  # noqa: E402
from societyhub.core.rate_limit import limiter  # noqa: E402
# Import the full models module so all tables (including audit_logs) register with Base metadata.
from societyhub.models import models as _all_models  # noqa: E402,F401
from societyhub.models.models import Flat, Society, User  # noqa: E402
from societyhub.services import accounts  # noqa: E402

SQLITE_CONNECT_ARGS = {"check_same_thread": False}


@pytest.fixture(scope="session", autouse=True)
def _configure_global_test_db(tmp_path_factory):
    """Configure the app-wide SessionLocal/engine so TestClient uses a DB with all tables."""
    db_dir = tmp_path_factory.mktemp("globaldb")
    db_path = db_dir / "app.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args=SQLITE_CONNECT_ARGS)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    app_config.SessionLocal = SessionLocal
    app_config.engine = engine
    app_main.SessionLocal = SessionLocal
    app_main.engine = engine
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def db_session(tmp_path) -> Generator[Session, None, None]:
    """Provide a fresh SQLite database for each test."""
    db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args=SQLITE_CONNECT_ARGS)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def create_society(db_session: Session) -> Callable[..., Society]:
    def _create(name: str = "Green Valley Residency") -> Society:
        existing = db_session.query(Society).filter(Society.name == name).first()
        if existing:
            return existing
        society = accounts.create_society(db_session, name=name, city="Pune")
        db_session.commit()
        return society

    return _create


@pytest.fixture
def create_flat(db_session: Session, create_society) -> Callable[..., Flat]:
    def _create(flat_number: str = "A-101", society: Optional[Society] = None) -> Flat:
        society = society or create_society()
        flat = accounts.find_or_create_flat(db_session, society, flat_number)
        db_session.commit()
        return flat

    return _create


@pytest.fixture
def create_user(db_session: Session, create_society) -> Callable[..., User]:
    def _create(
        email: str = "user@example.com",
        role_name: str = "RESIDENT",
        society: Optional[Society] = None,
        flat_number: str = "A-101",
        name: Optional[str] = None,
        phone: str = "9876543210",
    ) -> User:
        society = society or create_society()
        user = accounts.register_resident(
            db_session,
            society,
            name=name or email.split("@")[0].title(),
            email=email,
            phone=phone,
            flat_number=flat_number,
            password="changeme",
            role=role_name,
        )
        db_session.commit()
        return user

    return _create

