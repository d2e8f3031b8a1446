"""Receipt delivery requests.

E-mail, SMS, PDF and printer integrations are not wired up yet; requests are
checked against the tenant's orders and acknowledged as accepted.
Contact details never reach the logs.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import OrderNotFound
from app.models.order import Order

logger = logging.getLogger(__name__)

DEFAULT_PRINTER = "default"


class ReceiptService:
    def __init__(self, db: Session):
        self.db = db

    def _require_order(self, tenant_id: str, order_id: str) -> str:
        found = (
            self.db.query(Order.id)
            .filter(Order.id == order_id, Order.tenant_id == tenant_id)
            .first()
        )
        if found is None:
            raise OrderNotFound()
        return found[0]

    def send(self, tenant_id: str, order_id: str, email: Optional[str] = None, phone: Optional[str] = None) -> dict:
        order_id = self._require_order(tenant_id, order_id)
        methods = {"email": bool(email), "sms": bool(phone)}
        logger.info(f"Receipt send requested for order {order_id} (tenant {tenant_id}, methods {methods})")
        return {
            "accepted": True,
            "message": "Receipt send request accepted",
            "order_id": order_id,
            "delivery_methods": methods,
        }

    def invoice(self, tenant_id: str, order_id: str) -> dict:
        order_id = self._require_order(tenant_id, order_id)
        logger.info(f"Invoice generation requested for order {order_id} (tenant {tenant_id})")
        return {
            "accepted": True,
            "message": "Invoice generation request accepted",
            "order_id": order_id,
        }

    def print_receipt(self, tenant_id: str, order_id: str, printer_id: Optional[str] = None) -> dict:
        order_id = self._require_order(tenant_id, order_id)
        printer_id = printer_id or DEFAULT_PRINTER
        logger.info(f"Receipt print requested for order {order_id} on printer {printer_id} (tenant {tenant_id})")
        return {
            "accepted": True,
            "message": "Receipt print request accepted",
            "order_id": order_id,
            "printer_id": printer_id,
        }
