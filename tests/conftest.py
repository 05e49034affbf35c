"""
Pytest configuration and shared fixtures for the booking core tests.
"""
import os
import tempfile
from datetime import date, datetime
from decimal import Decimal

# Environment must be in place before any app module reads config
_TEST_DIR = tempfile.mkdtemp(prefix="booking-core-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR}/app.db"
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["REDIS_URL"] = ""
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.models.booking import Booking, SelectedService
from app.models.enums import BookingStatus, PaymentMethod, ServiceCategory
from app.models.payment import Payment
from app.models.project import WeddingProject
from app.models.service_listing import ServiceListing
from app.services.auto_cancellation import AutoCancellationScanner

COUPLE_ID = 101
VENDOR_ID = 201
OTHER_VENDOR_ID = 202


class FakeNotifier:
    """Records every notification; can be told to fail for some recipients."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def notify(self, kind, recipient_user_id, payload):
        if recipient_user_id in self.fail_for:
            raise RuntimeError(f"delivery to {recipient_user_id} failed")
        self.sent.append((kind, recipient_user_id, payload))

    def kinds(self, recipient_user_id=None):
        return [
            kind for kind, recipient, _ in self.sent
            if recipient_user_id is None or recipient == recipient_user_id
        ]


# ---------------------------------------------------------------------
# DATABASE
# ---------------------------------------------------------------------
@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions can share one database."""
    engine = create_engine(
        f"sqlite:///{tmp_path}/bookings.db",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def scanner(session_factory, notifier):
    return AutoCancellationScanner(session_factory=session_factory, notifier=notifier)


# ---------------------------------------------------------------------
# FACTORIES
# ---------------------------------------------------------------------
@pytest.fixture
def make_listing(db):
    def factory(vendor_id=VENDOR_ID, category=ServiceCategory.CATERING.value, price="1000.00",
                fee_tiers=None, is_active=True):
        listing = ServiceListing(
            vendor_id=vendor_id,
            name=f"{category} package",
            category=category,
            price=Decimal(price),
            is_active=is_active,
            cancellation_fee_tiers=fee_tiers,
        )
        db.add(listing)
        db.commit()
        return listing

    return factory


@pytest.fixture
def make_project(db):
    def factory(wedding_date=date(2025, 6, 1), couple_id=COUPLE_ID):
        project = WeddingProject(couple_id=couple_id, project_name="Our wedding", wedding_date=wedding_date)
        db.add(project)
        db.commit()
        return project

    return factory


@pytest.fixture
def make_booking(db, make_listing):
    def factory(
        status=BookingStatus.PENDING_VENDOR_CONFIRMATION,
        project=None,
        vendor_id=VENDOR_ID,
        couple_id=COUPLE_ID,
        category=ServiceCategory.CATERING.value,
        reserved_date=None,
        price="10000.00",
        deposit_due_date=None,
        final_due_date=None,
        depends_on=None,
        payments=(),
        fee_tiers=None,
    ):
        listing = make_listing(vendor_id=vendor_id, category=category, price=price, fee_tiers=fee_tiers)
        booking = Booking(
            couple_id=couple_id,
            vendor_id=vendor_id,
            project_id=project.id if project else None,
            reserved_date=reserved_date or (project.wedding_date if project else date(2025, 6, 1)),
            status=status,
            deposit_due_date=deposit_due_date,
            final_due_date=final_due_date,
            depends_on_venue_booking_id=depends_on.id if depends_on else None,
            selected_services=[
                SelectedService(service_listing_id=listing.id, quantity=1, total_price=Decimal(price))
            ],
        )
        for payment_type, amount in payments:
            booking.payments.append(Payment(
                payment_type=payment_type,
                amount=Decimal(amount),
                payment_method=PaymentMethod.CREDIT_CARD,
                payment_date=datetime(2025, 1, 1, 12, 0),
            ))
        db.add(booking)
        db.commit()
        return booking

    return factory


@pytest.fixture
def make_venue(db, make_booking):
    def factory(project, status=BookingStatus.CONFIRMED, vendor_id=OTHER_VENDOR_ID, **kwargs):
        venue = make_booking(
            status=status,
            project=project,
            vendor_id=vendor_id,
            category=ServiceCategory.VENUE.value,
            **kwargs,
        )
        if status in (BookingStatus.PENDING_DEPOSIT_PAYMENT, BookingStatus.CONFIRMED,
                      BookingStatus.PENDING_FINAL_PAYMENT, BookingStatus.COMPLETED):
            project.venue_booking_id = venue.id
            db.commit()
        return venue

    return factory


# ---------------------------------------------------------------------
# API
# ---------------------------------------------------------------------
@pytest.fixture
def auth_header():
    def build(user_id, role):
        token = jwt.encode({"sub": str(user_id), "role": role}, "test-secret", algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def client(session_factory, notifier, scanner):
    from app.core.dependencies import get_db, get_notifier, get_scanner
    from app.main import app

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_scanner] = lambda: scanner

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
