# app/routes/payments.py
from fastapi import APIRouter, Depends, Request, status
from app.core.config import Settings
from app.core.dependencies import get_checkout_gateway, get_gateway, get_order_store, get_settings
from app.core.exceptions import OrderNotFoundError, StorefrontError
from app.models.order import CheckoutRequest, OrderStatusResponse
from app.models.payment import InitiatePaymentResponse, IPNAcknowledgement
from app.services.checkout import initiate_payment
from app.services.gateway import SSLCommerzClient
from app.services.ipn import process_notification
from app.services.order_store import OrderStore
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


async def read_notification(request: Request) -> dict:
    """Gateways post IPNs form-encoded; JSON bodies are accepted as well."""
    content_type = request.headers.get("content-type", "")
    try:
        if "form" in content_type:
            data = dict(await request.form())
        else:
            data = await request.json()
    except Exception as e:
        logger.warning(f"Unreadable IPN body ({content_type or 'no content type'}): {e}")
        return {}
    return data if isinstance(data, dict) else {}


@router.post("/initiate-payment", response_model=InitiatePaymentResponse)
async def initiate_payment_route(
    checkout: CheckoutRequest,
    gateway: SSLCommerzClient = Depends(get_checkout_gateway),
    store: OrderStore = Depends(get_order_store),
    settings: Settings = Depends(get_settings),
):
    try:
        payment = await initiate_payment(checkout, gateway, store, settings)
        return InitiatePaymentResponse(
            gateway_page_url=payment.gateway_page_url,
            tran_id=payment.tran_id,
        )
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error processing initiate-payment request: {e}")
        raise StorefrontError(
            "Failed to initiate payment due to server error.",
            details=str(e) or "An unexpected error occurred processing the payment request.",
        )


@router.post("/ipn", response_model=IPNAcknowledgement, status_code=status.HTTP_200_OK)
async def sslcommerz_ipn(
    request: Request,
    gateway: SSLCommerzClient = Depends(get_gateway),
    store: OrderStore = Depends(get_order_store),
):
    """Receive an SSLCommerz IPN; non-200 responses make the gateway redeliver"""
    payload = await read_notification(request)
    logger.info(f"SSLCommerz IPN received for tran_id={payload.get('tran_id')}")

    try:
        await process_notification(payload, gateway, store)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error processing SSLCommerz IPN: {e}")
        raise StorefrontError("Failed to process IPN")

    return {"success": True, "message": "IPN received and validated"}


@router.get("/ipn")
async def ipn_listener_status():
    return {"message": "IPN listener is active"}


@router.get("/orders/{tran_id}", response_model=OrderStatusResponse)
async def get_order_status(
    tran_id: str,
    store: OrderStore = Depends(get_order_store),
):
    """Order status for the order-confirmation page"""
    order = await store.get(tran_id)
    if not order:
        raise OrderNotFoundError("Order not found")

    return {
        "tran_id": order.tran_id,
        "status": order.status,
        "gateway_status": order.gateway_status,
        "total_amount": float(order.total_amount),
        "currency": order.currency,
        "updated_at": order.updated_at,
    }
