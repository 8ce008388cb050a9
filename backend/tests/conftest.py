"""
Pytest fixtures for ShareWardrobe backend tests.

Provides the app on in-memory SQLite, a per-test table wipe, user/item
factories, token helpers and fake external gateways.
"""

from datetime import datetime
from decimal import Decimal
from itertools import count

import pytest

from sharewardrobe import create_app
from sharewardrobe.extensions import db
from sharewardrobe.models import CartLine, Item, User
from sharewardrobe.models.catalog import AVAILABILITY_SELL_ONLY, ITEM_STATUS_AVAILABLE
from sharewardrobe.models.commerce import LINE_TYPE_BUY
from sharewardrobe.models.users import ROLE_ADMIN, ROLE_USER
from sharewardrobe.services import session_service
from sharewardrobe.services.delivery_gateway import DeliveryGateway, DeliveryResult
from sharewardrobe.services.gateways import EXTENSION_KEY, Gateways
from sharewardrobe.services.notification_service import NotificationSink
from sharewardrobe.services.payment_gateway import PaymentGateway, PaymentResult

T0 = datetime(2026, 3, 1, 12, 0, 0)

_phone_seq = count(1)


# =============================================================================
# FAKE GATEWAYS
# =============================================================================

class FakePaymentGateway(PaymentGateway):
    def __init__(self, succeed: bool = True, raises: bool = False):
        self.succeed = succeed
        self.raises = raises
        self.requests = []

    def create_payment(self, request):
        self.requests.append(request)
        if self.raises:
            raise RuntimeError("payment provider timed out")
        if not self.succeed:
            return PaymentResult(success=False, error="declined")
        return PaymentResult(success=True, transaction_id=f"TXN_TEST_{request.order_id}")


class FakeDeliveryGateway(DeliveryGateway):
    def __init__(self, raises: bool = False, status: str = "pending"):
        self.raises = raises
        self.status = status
        self.requests = []
        self.cancelled = []

    def request_delivery(self, request):
        self.requests.append(request)
        if self.raises:
            raise RuntimeError("courier API unreachable")
        return DeliveryResult(success=True, tracking_id=f"TRK_{len(self.requests)}")

    def get_status(self, tracking_id):
        return self.status

    def cancel_delivery(self, tracking_id):
        if self.raises:
            raise RuntimeError("courier API unreachable")
        self.cancelled.append(tracking_id)
        return True


class RecordingNotificationSink(NotificationSink):
    def __init__(self):
        self.sent = []

    def send_notification(self, user_id, type, message):
        self.sent.append((user_id, type, message))


# =============================================================================
# APP & DATABASE
# =============================================================================

@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'WAREHOUSE_ADDRESS': 'Test Warehouse',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test; schema is kept."""
    with app.app_context():
        db.session.remove()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def fakes(app):
    """Install fake gateways for the duration of one test."""
    original = app.extensions[EXTENSION_KEY]
    gateways = Gateways(
        payment=FakePaymentGateway(),
        delivery=FakeDeliveryGateway(),
        notifications=RecordingNotificationSink(),
    )
    app.extensions[EXTENSION_KEY] = gateways
    yield gateways
    app.extensions[EXTENSION_KEY] = original


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_user(db_session):
    def _make(role=ROLE_USER, balance="0.00", status="active", address="House 1, Road 2, Dhaka", phone=None):
        user = User(
            phone=phone or f"+88017{next(_phone_seq):08d}",
            password_hash="x",
            role=role,
            status=status,
            balance=Decimal(balance),
            address=address,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def buyer(make_user):
    return make_user()


@pytest.fixture
def seller(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=ROLE_ADMIN)


@pytest.fixture
def make_item(db_session, seller):
    def _make(
        sell_price="500.00",
        rent_price=None,
        availability=AVAILABILITY_SELL_ONLY,
        quantity=5,
        status=ITEM_STATUS_AVAILABLE,
        owner=None,
    ):
        item = Item(
            seller_id=(owner or seller).id,
            type="saree",
            description="Silk saree",
            sell_price=Decimal(sell_price) if sell_price is not None else None,
            rent_price=Decimal(rent_price) if rent_price is not None else None,
            availability=availability,
            quantity=quantity,
            status=status,
        )
        db_session.add(item)
        db_session.commit()
        return item
    return _make


@pytest.fixture
def add_line(db_session):
    """Put a line straight into a cart, bypassing add-to-cart validation."""
    def _add(user, item, quantity=1, type=LINE_TYPE_BUY, negotiated_price=None, negotiated_expires_at=None):
        line = CartLine(
            user_id=user.id,
            item_id=item.id,
            quantity=quantity,
            type=type,
            negotiated_price=Decimal(negotiated_price) if negotiated_price is not None else None,
            negotiated_expires_at=negotiated_expires_at,
        )
        db_session.add(line)
        db_session.commit()
        return line
    return _add


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def token_for(db_session):
    """Issue a session token for a user without going through bcrypt."""
    def _token(user):
        _, token = session_service.create_session(user.id)
        return token
    return _token
