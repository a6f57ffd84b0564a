"""Order persistence keyed by gateway transaction id.

``upsert_status`` is the only way an order changes state after creation. It
never moves an order out of a terminal status, so redelivered notifications
for an already settled transaction are no-ops.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
import json
import logging

import asyncpg

from app.core.database import log_activity
from app.models.order import OrderRecord, OrderStatus, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


class OrderStore(ABC):
    @abstractmethod
    async def create(self, order: OrderRecord) -> None:
        ...

    @abstractmethod
    async def get(self, tran_id: str) -> Optional[OrderRecord]:
        ...

    @abstractmethod
    async def upsert_status(
        self,
        tran_id: str,
        status: OrderStatus,
        *,
        gateway_status: Optional[str] = None,
        val_id: Optional[str] = None,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> bool:
        """Insert or move ``tran_id`` to ``status``; return False if it was already terminal.

        ``details`` is extra gateway data (bank transaction id, card type) kept
        with the activity record of the transition.
        """

    async def close(self) -> None:
        pass


class InMemoryOrderStore(OrderStore):
    def __init__(self):
        self.orders: Dict[str, OrderRecord] = {}
        self.history: List[dict] = []

    async def create(self, order: OrderRecord) -> None:
        now = datetime.now(timezone.utc)
        self.orders[order.tran_id] = order.model_copy(update={"created_at": now, "updated_at": now})
        self.history.append({"tran_id": order.tran_id, "action": "order_created", "status": order.status})

    async def get(self, tran_id: str) -> Optional[OrderRecord]:
        order = self.orders.get(tran_id)
        return order.model_copy() if order else None

    async def upsert_status(
        self,
        tran_id: str,
        status: OrderStatus,
        *,
        gateway_status: Optional[str] = None,
        val_id: Optional[str] = None,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> bool:
        now = datetime.now(timezone.utc)
        existing = self.orders.get(tran_id)
        if existing is None:
            self.orders[tran_id] = OrderRecord(
                tran_id=tran_id,
                status=status,
                total_amount=amount if amount is not None else Decimal("0"),
                currency=currency or "",
                gateway_status=gateway_status,
                val_id=val_id,
                created_at=now,
                updated_at=now,
            )
        elif existing.status in TERMINAL_STATUSES:
            return False
        else:
            self.orders[tran_id] = existing.model_copy(
                update={
                    "status": status,
                    "gateway_status": gateway_status,
                    "val_id": val_id or existing.val_id,
                    "updated_at": now,
                }
            )
        self.history.append(
            {
                "tran_id": tran_id,
                "action": f"status_{status.value}",
                "status": status,
                "gateway_status": gateway_status,
                "details": dict(details or {}),
            }
        )
        return True


class PostgresOrderStore(OrderStore):
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @staticmethod
    def _to_record(row) -> OrderRecord:
        data = dict(row)
        if isinstance(data.get("items"), str):
            data["items"] = json.loads(data["items"])
        return OrderRecord(**data)

    async def create(self, order: OrderRecord) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO orders (tran_id, status, total_amount, currency,
                                        customer_name, customer_email, items)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    """,
                    order.tran_id,
                    order.status.value,
                    order.total_amount,
                    order.currency,
                    order.customer_name,
                    order.customer_email,
                    json.dumps(order.items, default=str),
                )
                await log_activity(
                    conn,
                    "order_created",
                    order.tran_id,
                    {"total_amount": order.total_amount, "currency": order.currency},
                )

    async def get(self, tran_id: str) -> Optional[OrderRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM orders WHERE tran_id = $1", tran_id)
        return self._to_record(row) if row else None

    async def upsert_status(
        self,
        tran_id: str,
        status: OrderStatus,
        *,
        gateway_status: Optional[str] = None,
        val_id: Optional[str] = None,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> bool:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                changed = await conn.fetchval(
                    """
                    INSERT INTO orders (tran_id, status, gateway_status, val_id, total_amount, currency)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    ON CONFLICT (tran_id) DO UPDATE
                    SET status = EXCLUDED.status,
                        gateway_status = EXCLUDED.gateway_status,
                        val_id = COALESCE(EXCLUDED.val_id, orders.val_id),
                        updated_at = CURRENT_TIMESTAMP
                    WHERE orders.status NOT IN ('paid', 'failed')
                    RETURNING tran_id
                    """,
                    tran_id,
                    status.value,
                    gateway_status,
                    val_id,
                    amount if amount is not None else Decimal("0"),
                    currency or "",
                )
                if changed is None:
                    return False
                await log_activity(
                    conn,
                    f"status_{status.value}",
                    tran_id,
                    {**(details or {}), "gateway_status": gateway_status, "val_id": val_id},
                )
        return True

    async def close(self) -> None:
        await self.pool.close()
