from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
import logging
import uuid

from app.core.config import Settings
from app.core.exceptions import ConfigurationError, GatewayError
from app.models.order import CheckoutRequest, OrderRecord, OrderStatus
from app.services.gateway import SSLCommerzClient
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
DEFAULT_PRODUCT_NAME = "E-commerce Product(s)"
DEFAULT_FAILED_REASON = "Unknown error from SSLCommerz. Check server logs for full API response."


@dataclass
class InitiatedPayment:
    tran_id: str
    gateway_page_url: str


def generate_transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex}"


def format_amount(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP))


def build_order_context(checkout: CheckoutRequest, tran_id: str, settings: Settings) -> dict:
    """Build the session request sent to the gateway for one checkout attempt."""
    base_url = settings.BASE_URL.rstrip("/")
    customer = checkout.customer_info
    product_name = ", ".join(item.name for item in checkout.items) or DEFAULT_PRODUCT_NAME

    return {
        "total_amount": format_amount(checkout.total_price),
        "currency": settings.DEFAULT_CURRENCY,
        "tran_id": tran_id,
        "success_url": f"{base_url}/order-confirmation?status=success&tran_id={tran_id}",
        "fail_url": f"{base_url}/order-confirmation?status=fail&tran_id={tran_id}",
        "cancel_url": f"{base_url}/cart?status=cancel&tran_id={tran_id}",
        "ipn_url": f"{base_url}{settings.API_PREFIX}/ipn",
        "shipping_method": "NO",
        "product_name": product_name,
        "product_category": settings.PRODUCT_CATEGORY,
        "product_profile": settings.PRODUCT_PROFILE,
        "num_of_item": sum(item.quantity for item in checkout.items),
        "cus_name": customer.full_name,
        "cus_email": customer.email,
        "cus_add1": customer.address,
        "cus_city": customer.city,
        "cus_postcode": customer.postal_code,
        "cus_country": settings.DEFAULT_COUNTRY,
        "cus_phone": customer.phone or settings.DEFAULT_PHONE,
        "ship_name": customer.full_name,
        "ship_add1": customer.address,
        "ship_city": customer.city,
        "ship_postcode": customer.postal_code,
        "ship_country": settings.DEFAULT_COUNTRY,
    }


def ensure_checkout_configured(gateway: SSLCommerzClient, settings: Settings) -> None:
    if not gateway.is_configured:
        logger.error("SSLCOMMERZ_STORE_ID or SSLCOMMERZ_STORE_PASSWORD not set in environment variables.")
        raise ConfigurationError("Payment gateway server configuration error. Admin check required.")
    if not settings.BASE_URL:
        logger.error("BASE_URL is not set in environment variables. This is required for callback URLs.")
        raise ConfigurationError("Application base URL configuration error. Admin check required.")


async def initiate_payment(
    checkout: CheckoutRequest,
    gateway: SSLCommerzClient,
    store: OrderStore,
    settings: Settings,
) -> InitiatedPayment:
    ensure_checkout_configured(gateway, settings)

    tran_id = generate_transaction_id()
    context = build_order_context(checkout, tran_id, settings)

    await store.create(
        OrderRecord(
            tran_id=tran_id,
            status=OrderStatus.INITIATED,
            total_amount=Decimal(context["total_amount"]),
            currency=context["currency"],
            customer_name=checkout.customer_info.full_name,
            customer_email=checkout.customer_info.email,
            items=[item.model_dump(mode="json") for item in checkout.items],
        )
    )
    logger.info(f"Initiating SSLCommerz payment {tran_id} for {context['total_amount']} {context['currency']}")

    try:
        result = await gateway.create_session(context)
    except GatewayError as e:
        await store.upsert_status(tran_id, OrderStatus.FAILED, gateway_status=e.reason)
        raise

    if not result.succeeded:
        reason = result.failed_reason or DEFAULT_FAILED_REASON
        logger.error(f"SSLCommerz init failed or missing GatewayPageURL for {tran_id}. Reason: {reason}")
        await store.upsert_status(tran_id, OrderStatus.FAILED, gateway_status=reason)
        raise GatewayError("Failed to get payment URL from SSLCommerz.", reason=reason)

    return InitiatedPayment(tran_id=tran_id, gateway_page_url=result.gateway_page_url)
