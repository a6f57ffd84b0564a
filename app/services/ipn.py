"""Instant Payment Notification handling.

The notification body only tells us *which* transaction to look at. Its
status, amount and currency are never used to decide anything: the
transaction is re-fetched from the gateway validation API and that result
alone drives the order transition.
"""
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional
import logging

from app.core.exceptions import (
    MissingFieldError,
    RequestValidationError,
    TransactionMismatchError,
    ValidationAPIError,
)
from app.models.order import OrderStatus
from app.models.payment import GatewayStatus, NotificationOutcome
from app.services.checkout import CENT
from app.services.gateway import SSLCommerzClient
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("tran_id", "val_id", "status", "amount", "currency")

STATUS_TRANSITIONS = {
    GatewayStatus.VALID: OrderStatus.PAID,
    GatewayStatus.VALIDATED: OrderStatus.PAID,
    GatewayStatus.PENDING: OrderStatus.PENDING,
    GatewayStatus.FAILED: OrderStatus.FAILED,
    GatewayStatus.CANCELLED: OrderStatus.FAILED,
    GatewayStatus.EXPIRED: OrderStatus.FAILED,
    GatewayStatus.UNATTEMPTED: OrderStatus.FAILED,
}


def missing_fields(payload: Mapping) -> list:
    missing = []
    for field in REQUIRED_FIELDS:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def parse_amount(value) -> Optional[Decimal]:
    """Notified amount as a Decimal, or None unless it is a finite positive number."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def classify_status(gateway_status: Optional[str]) -> OrderStatus:
    try:
        return STATUS_TRANSITIONS[GatewayStatus(gateway_status)]
    except ValueError:
        return OrderStatus.UNHANDLED


def _same_amount(left: Decimal, right: Decimal) -> bool:
    try:
        return Decimal(left).quantize(CENT) == Decimal(right).quantize(CENT)
    except (InvalidOperation, TypeError):
        return False


async def process_notification(
    payload: Mapping,
    gateway: SSLCommerzClient,
    store: OrderStore,
) -> NotificationOutcome:
    missing = missing_fields(payload)
    if missing:
        logger.error(f"IPN data missing mandatory fields: {', '.join(missing)}")
        raise MissingFieldError(missing)

    if parse_amount(payload["amount"]) is None:
        logger.error(f"IPN for {payload['tran_id']} carries an invalid amount: {payload['amount']!r}")
        raise RequestValidationError("Invalid IPN amount", details={"amount": str(payload["amount"])})

    tran_id = str(payload["tran_id"])
    val_id = str(payload["val_id"])
    logger.info(f"Validating Transaction ID: {tran_id} with Validation ID: {val_id}")

    result = await gateway.validate(val_id)

    if not result.connected:
        logger.error(f"Validation API connection failed for {tran_id}: {result.api_connect}")
        raise ValidationAPIError("Validation API connection failed", details=result.api_connect)

    if result.tran_id and result.tran_id != tran_id:
        logger.error(f"Validation ID {val_id} belongs to {result.tran_id}, not {tran_id}")
        raise TransactionMismatchError("Transaction ID mismatch")

    order = await store.get(tran_id)
    if order is None:
        logger.warning(f"No order on record for transaction ID: {tran_id}; recording validated status")
    elif result.amount is None or not _same_amount(result.amount, order.total_amount) or (
        (result.currency or "").upper() != order.currency.upper()
    ):
        logger.error(
            f"Amount or currency mismatch for transaction ID: {tran_id} "
            f"(validated {result.amount} {result.currency}, expected {order.total_amount} {order.currency})"
        )
        raise TransactionMismatchError("Amount or currency mismatch")

    new_status = classify_status(result.status)
    applied = await store.upsert_status(
        tran_id,
        new_status,
        gateway_status=result.status,
        val_id=val_id,
        amount=result.amount,
        currency=result.currency,
        details={"bank_tran_id": result.bank_tran_id, "card_type": result.card_type},
    )

    if not applied:
        logger.info(f"Order {tran_id} already settled, ignoring redelivered {result.status} notification")
    elif new_status == OrderStatus.PAID:
        logger.info(f"Order {tran_id} successfully validated and marked as paid.")
    elif new_status == OrderStatus.PENDING:
        logger.info(f"Order {tran_id} status is pending.")
    elif new_status == OrderStatus.FAILED:
        logger.info(f"Order {tran_id} status is {result.status}.")
    else:
        logger.warning(f"Order {tran_id} has unhandled validated status: {result.status}")

    return NotificationOutcome(
        tran_id=tran_id,
        status=new_status,
        gateway_status=result.status,
        applied=applied,
    )
