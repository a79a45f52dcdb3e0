"""Test configuration and fixtures."""

import json
import uuid
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_flutterwave_client, get_pesapal_client
from app.core.config import settings
from app.db.session import Base, get_db
from app.main import app
from app.models.agent import Agent
from app.models.agent_earning import AgentEarning  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
from app.models.booking import Booking
from app.models.booking_item import BookingAccommodation, BookingActivity  # noqa: F401
from app.models.email_log import EmailLog  # noqa: F401
from app.models.payment import Payment
from app.models.setting import Setting  # noqa: F401
from app.models.tour import ItineraryDay, Tour
from app.services.flutterwave_client import FlutterwaveError
from app.services.idempotency_guard import notification_guard
from app.services.pesapal_client import PesapalError

FLW_HASH = "test-secret-hash"


class FakePesapal:
    """Stands in for PesapalClient; answers GetTransactionStatus from a dict keyed by tracking id."""

    def __init__(self):
        self.statuses = {}
        self.orders = {}  # tracking id -> (merchant reference, amount, currency)
        self.calls = []
        self.error = None

    def order(self, order_tracking_id, merchant_ref, amount=1000.0, currency="USD"):
        self.orders[order_tracking_id] = (merchant_ref, amount, currency)

    def get_transaction_status(self, order_tracking_id):
        self.calls.append(order_tracking_id)
        if self.error:
            raise self.error
        merchant_ref, amount, currency = self.orders.get(order_tracking_id, (None, None, None))
        tx = {
            "status_code": 1,
            "payment_status_description": "Completed",
            "payment_method": "Visa",
            "confirmation_code": f"CONF-{order_tracking_id}",
            "payment_account": "476173**0010",
            "merchant_reference": merchant_ref,
            "amount": amount,
            "currency": currency,
        }
        tx.update(self.statuses.get(order_tracking_id, {}))
        return tx


class FakeFlutterwave:
    """Stands in for FlutterwaveClient; verify_transaction answers from `transactions`."""

    def __init__(self):
        self.transactions = {}
        self.calls = []
        self.error = None

    def verify_transaction(self, transaction_id):
        self.calls.append(str(transaction_id))
        if self.error:
            raise self.error
        try:
            return self.transactions[str(transaction_id)]
        except KeyError:
            raise FlutterwaveError(f"Transaction {transaction_id} not found")

    def approve(self, tx_id, tx_ref, status="successful", amount=1000, payment_type="card"):
        self.transactions[str(tx_id)] = {
            "id": tx_id,
            "tx_ref": tx_ref,
            "flw_ref": f"FLW-{tx_id}",
            "status": status,
            "amount": amount,
            "currency": "USD",
            "payment_type": payment_type,
            "processor_response": "Approved" if status == "successful" else "Declined",
            "card": {"first_6digits": "553188", "last_4digits": "2950", "type": "MASTERCARD"},
        }


@pytest.fixture(scope="function")
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope="function")
def db(engine):
    TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSession()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    notification_guard.clear()
    monkeypatch.setattr(settings, "FLW_SECRET_HASH", FLW_HASH)
    monkeypatch.setattr(settings, "PAYMENTS_SANDBOX", False)
    yield
    notification_guard.clear()


@pytest.fixture
def fake_pesapal():
    return FakePesapal()


@pytest.fixture
def fake_flw():
    return FakeFlutterwave()


@pytest.fixture
def dispatched(monkeypatch):
    """Booking ids handed to the post-commit notifier."""
    calls = []
    monkeypatch.setattr("app.api.v1.routes.webhooks.dispatch_booking_confirmation", calls.append)
    monkeypatch.setattr("app.api.v1.routes.payments.dispatch_booking_confirmation", calls.append)
    return calls


@pytest.fixture
def client(db, fake_pesapal, fake_flw, dispatched):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pesapal_client] = lambda: fake_pesapal
    app.dependency_overrides[get_flutterwave_client] = lambda: fake_flw
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def agent(db):
    a = Agent(id=str(uuid.uuid4()), business_name="Kilima Safaris", business_email="ops@kilima.example", business_phone="+255 700 000 001")
    db.add(a)
    db.commit()
    return a


@pytest.fixture
def tour(db, agent):
    t = Tour(id=str(uuid.uuid4()), agent_id=agent.id, slug="serengeti-3-days", title="Serengeti Express", destination="Tanzania", duration_days=3, duration_nights=2)
    db.add(t)
    db.add(ItineraryDay(id=str(uuid.uuid4()), tour_id=t.id, day_number=1, title="Arusha to Serengeti", location="Serengeti",
                        description="Drive west through the highlands.", meals_csv="Lunch,Dinner", activities_csv="Game drive", overnight="Seronera Camp"))
    db.add(ItineraryDay(id=str(uuid.uuid4()), tour_id=t.id, day_number=2, title="Central Serengeti", location="Serengeti",
                        description="Full day following the migration.", meals_csv="Breakfast,Lunch,Dinner", activities_csv="Game drive,Balloon safari", overnight="Seronera Camp"))
    db.commit()
    return t


@pytest.fixture
def make_booking(db, agent, tour):
    def _make(booking_ref="BK100", total="1000.00", agent_earnings="880.00", status="PENDING", payment_status="PENDING", payment_type="FULL"):
        b = Booking(
            id=str(uuid.uuid4()),
            booking_ref=booking_ref,
            user_id=str(uuid.uuid4()),
            tour_id=tour.id,
            agent_id=agent.id,
            start_date=date(2026, 12, 1),
            end_date=date(2026, 12, 3),
            adults=2,
            contact_name="Jane Traveller",
            contact_email="jane@example.com",
            currency="USD",
            total_amount=Decimal(total),
            platform_commission=Decimal(total) - Decimal(agent_earnings),
            agent_earnings=Decimal(agent_earnings),
            payment_type=payment_type,
            status=status,
            payment_status=payment_status,
        )
        db.add(b)
        db.commit()
        return b
    return _make


@pytest.fixture
def make_payment(db):
    def _make(booking, provider_ref="TX1", provider="flutterwave", amount="1000.00", status="PENDING", payment_type="FULL", provider_order_id=None):
        p = Payment(
            id=str(uuid.uuid4()),
            booking_id=booking.id,
            provider=provider,
            provider_ref=provider_ref,
            provider_order_id=provider_order_id,
            amount=Decimal(amount),
            currency="USD",
            payment_type=payment_type,
            status=status,
        )
        db.add(p)
        db.commit()
        return p
    return _make


@pytest.fixture
def booking(make_booking):
    return make_booking()


@pytest.fixture
def payment(make_payment, booking):
    return make_payment(booking)


@pytest.fixture
def pesapal_payment(make_payment, booking, fake_pesapal):
    fake_pesapal.order("OT-1", "SP-BK100-1")
    return make_payment(booking, provider="pesapal", provider_ref="SP-BK100-1", provider_order_id="OT-1")


def charge_event(tx_ref="TX1", tx_id=123, status="successful", event="charge.completed", amount=1000):
    return {
        "event": event,
        "data": {
            "id": tx_id,
            "tx_ref": tx_ref,
            "flw_ref": f"FLW-{tx_id}",
            "status": status,
            "amount": amount,
            "currency": "USD",
            "payment_type": "card",
            "processor_response": "Approved",
            "card": {"first_6digits": "553188", "last_4digits": "2950", "type": "MASTERCARD", "token": "flw-t1nf-secret"},
        },
    }


def post_flutterwave(client, payload, verif_hash=FLW_HASH):
    headers = {"Content-Type": "application/json"}
    if verif_hash is not None:
        headers["verif-hash"] = verif_hash
    body = payload if isinstance(payload, (bytes, str)) else json.dumps(payload)
    return client.post("/api/v1/webhooks/flutterwave", content=body, headers=headers)


@pytest.fixture
def pesapal_error():
    return PesapalError("Pesapal 503 on /api/Transactions/GetTransactionStatus: {}")
