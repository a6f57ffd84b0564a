from decimal import Decimal
import httpx
import pytest
import pytest_asyncio

from app.core.config import Settings
from app.models.order import OrderRecord, OrderStatus
from app.services.gateway import SSLCommerzClient
from app.services.order_store import InMemoryOrderStore


@pytest.fixture
def test_settings():
    return Settings(
        SSLCOMMERZ_STORE_ID="teststore",
        SSLCOMMERZ_STORE_PASSWORD="teststore@ssl",
        SSLCOMMERZ_IS_LIVE=False,
        BASE_URL="https://shop.example.com/",
        ORDER_STORE_BACKEND="memory",
        GATEWAY_MAX_ATTEMPTS=3,
        GATEWAY_RETRY_BACKOFF_SECONDS=0,
    )


class GatewayStub:
    """Scripted SSLCommerz endpoints behind an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.session_response = {
            "status": "SUCCESS",
            "GatewayPageURL": "https://sandbox.sslcommerz.com/EasyCheckOut/testcde",
            "sessionkey": "testcde",
        }
        self.validation_response = {
            "APIConnect": "DONE",
            "status": "VALIDATED",
            "amount": "49.99",
            "currency": "BDT",
        }
        # exceptions raised (in order) before a response is served
        self.errors = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.errors:
            raise self.errors.pop(0)(f"simulated {request.url.path}", request=request)
        if "validationserverAPI" in request.url.path:
            body = self.validation_response
        else:
            body = self.session_response
        if isinstance(body, str):
            return httpx.Response(self.status_code, text=body)
        return httpx.Response(self.status_code, json=body)

    @property
    def validation_calls(self):
        return [r for r in self.requests if "validationserverAPI" in r.url.path]


@pytest.fixture
def gateway_stub():
    return GatewayStub()


@pytest.fixture
def gateway(test_settings, gateway_stub):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(gateway_stub.handler))
    return SSLCommerzClient.from_settings(test_settings, http_client=http_client)


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def checkout_payload():
    return {
        "items": [
            {"productId": "p1", "name": "Wireless Mouse", "quantity": 1, "price": 29.99},
            {"productId": "p2", "name": "Mouse Pad", "quantity": 2, "price": 10.00},
        ],
        "totalPrice": 49.99,
        "customerInfo": {
            "fullName": "Rahim Uddin",
            "email": "rahim@example.com",
            "address": "12 Lake Road",
            "city": "Dhaka",
            "postalCode": "1205",
        },
    }


@pytest_asyncio.fixture
async def stored_order(store):
    order = OrderRecord(
        tran_id="txn_test",
        status=OrderStatus.INITIATED,
        total_amount=Decimal("49.99"),
        currency="BDT",
    )
    await store.create(order)
    return order
