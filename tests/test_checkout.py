from decimal import Decimal
from urllib.parse import parse_qs
import httpx
import pytest

from app.core.exceptions import ConfigurationError, GatewayError
from app.models.order import CheckoutRequest, OrderStatus
from app.services import checkout as checkout_service
from app.services.checkout import build_order_context, generate_transaction_id, initiate_payment


def test_transaction_ids_are_unique():
    ids = {generate_transaction_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(i.startswith("txn_") for i in ids)


def test_build_order_context(checkout_payload, test_settings):
    checkout = CheckoutRequest(**checkout_payload)
    context = build_order_context(checkout, "txn_abc", test_settings)

    assert context["total_amount"] == "49.99"
    assert context["currency"] == "BDT"
    assert context["tran_id"] == "txn_abc"
    assert context["success_url"] == "https://shop.example.com/order-confirmation?status=success&tran_id=txn_abc"
    assert context["fail_url"] == "https://shop.example.com/order-confirmation?status=fail&tran_id=txn_abc"
    assert context["cancel_url"] == "https://shop.example.com/cart?status=cancel&tran_id=txn_abc"
    assert context["ipn_url"] == "https://shop.example.com/api/sslcommerz/ipn"
    assert context["product_name"] == "Wireless Mouse, Mouse Pad"
    assert context["num_of_item"] == 3
    assert context["cus_name"] == "Rahim Uddin"
    assert context["cus_phone"] == "01000000000"
    assert context["ship_city"] == "Dhaka"
    assert context["cus_country"] == "Bangladesh"
    assert "store_passwd" not in context


def test_amount_is_formatted_with_two_decimals(checkout_payload, test_settings):
    checkout_payload["totalPrice"] = 100
    context = build_order_context(CheckoutRequest(**checkout_payload), "txn_abc", test_settings)
    assert context["total_amount"] == "100.00"


@pytest.mark.asyncio
async def test_initiate_payment_returns_redirect(checkout_payload, gateway, gateway_stub, store, test_settings):
    payment = await initiate_payment(CheckoutRequest(**checkout_payload), gateway, store, test_settings)

    assert payment.gateway_page_url == "https://sandbox.sslcommerz.com/EasyCheckOut/testcde"
    order = await store.get(payment.tran_id)
    assert order.status == OrderStatus.INITIATED
    assert order.total_amount == Decimal("49.99")
    assert order.customer_email == "rahim@example.com"
    assert len(order.items) == 2

    sent = parse_qs(gateway_stub.requests[0].content.decode())
    assert sent["tran_id"] == [payment.tran_id]


@pytest.mark.asyncio
async def test_gateway_failure_carries_reason(checkout_payload, gateway, gateway_stub, store, test_settings):
    gateway_stub.session_response = {"status": "FAILED", "failedreason": "Invalid total_amount"}

    with pytest.raises(GatewayError) as exc:
        await initiate_payment(CheckoutRequest(**checkout_payload), gateway, store, test_settings)

    assert exc.value.reason == "Invalid total_amount"
    assert exc.value.status_code == 500
    (order,) = store.orders.values()
    assert order.status == OrderStatus.FAILED
    assert order.gateway_status == "Invalid total_amount"


@pytest.mark.asyncio
async def test_success_without_url_uses_default_reason(checkout_payload, gateway, gateway_stub, store, test_settings):
    gateway_stub.session_response = {"status": "SUCCESS"}

    with pytest.raises(GatewayError) as exc:
        await initiate_payment(CheckoutRequest(**checkout_payload), gateway, store, test_settings)
    assert exc.value.reason == checkout_service.DEFAULT_FAILED_REASON


@pytest.mark.asyncio
async def test_transport_failure_marks_order_failed(checkout_payload, gateway, gateway_stub, store, test_settings):
    gateway_stub.errors = [httpx.ConnectError] * 3
    with pytest.raises(GatewayError) as exc:
        await initiate_payment(CheckoutRequest(**checkout_payload), gateway, store, test_settings)
    assert exc.value.reason
    (order,) = store.orders.values()
    assert order.status == OrderStatus.FAILED


@pytest.mark.asyncio
async def test_missing_base_url(checkout_payload, gateway, gateway_stub, store, test_settings):
    test_settings.BASE_URL = ""
    with pytest.raises(ConfigurationError):
        await initiate_payment(CheckoutRequest(**checkout_payload), gateway, store, test_settings)
    assert gateway_stub.requests == []
    assert store.orders == {}


@pytest.mark.asyncio
async def test_missing_credentials(checkout_payload, gateway, gateway_stub, store, test_settings):
    gateway.store_password = ""
    with pytest.raises(ConfigurationError):
        await initiate_payment(CheckoutRequest(**checkout_payload), gateway, store, test_settings)
    assert gateway_stub.requests == []
