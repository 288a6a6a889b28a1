"""Shared test doubles: settings without a .env file, a recording gateway and a fresh SQLite store."""

from storefront.core.config import Settings
from storefront.core.exceptions import GatewayError
from storefront.infrastructure.database import create_db_engine, create_session_factory, init_db
from storefront.interfaces.IPaymentGateway import IPaymentGateway

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET=KEY_SECRET,
        RAZORPAY_WEBHOOK_SECRET=WEBHOOK_SECRET,
        DB_CONNECT_RETRIES=1,
        DB_CONNECT_WAIT_SECONDS=0,
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def fresh_session_factory():
    """A new in-memory database per call, so tests are fully isolated."""
    engine = create_db_engine("sqlite://")
    init_db(engine, max_retries=1, wait_seconds=0)
    return create_session_factory(engine)


class FakeGateway(IPaymentGateway):
    def __init__(self, error: Exception = None):
        self.calls = []
        self.error = error
        self.reachable = True

    def create_order(self, amount, currency, receipt, payment_capture=True):
        self.calls.append(
            {"amount": amount, "currency": currency, "receipt": receipt, "payment_capture": payment_capture}
        )
        if self.error:
            raise self.error
        return {
            "id": f"order_test{len(self.calls)}",
            "entity": "order",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }

    def ping(self):
        if not self.reachable:
            raise GatewayError("Payment gateway unreachable")


def shipping_info(**overrides):
    info = {
        "firstName": "A",
        "lastName": "B",
        "email": "a@b.com",
        "phone": "9999999999",
        "address": "X",
        "city": "Y",
        "state": "Z",
        "zipCode": "123456",
    }
    info.update(overrides)
    return info


def cod_order_payload(**overrides):
    payload = {
        "user_id": "user-1",
        "items": [{"id": "p1", "name": "Shirt", "price": 499, "quantity": 2}],
        "total_amount": 998,
        "payment_method": "cod",
        "shipping_info": shipping_info(),
    }
    payload.update(overrides)
    return payload
