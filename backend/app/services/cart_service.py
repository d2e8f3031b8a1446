"""Cart service: cart creation, cart reads and the shared totals calculation."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import CartNotFound, TableNotFound, TenantNotFound, ValidationFailed
from app.models.cart import Cart, CartItem
from app.models.menu import MenuItem
from app.models.tenant import DiningTable, Tenant
from app.schemas.cart import CartCreate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round to whole cents, half up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(
    lines: Iterable[Tuple[Decimal, int]],
    tax_rate: Optional[Decimal] = None,
) -> Dict[str, Decimal]:
    """Price a set of ``(unit_price, quantity)`` lines.

    The single source of cart, checkout and order-entry totals:
    ``subtotal`` is the sum of price x quantity, ``tax`` is the subtotal times
    the fixed tax rate, and ``total == subtotal + tax``. All three are rounded
    to cents, so the identity holds exactly on the wire too.
    """
    rate = settings.tax_rate if tax_rate is None else tax_rate
    subtotal = to_money(sum((Decimal(str(price)) * qty for price, qty in lines), Decimal("0")))
    tax = to_money(subtotal * rate)
    return {"subtotal": subtotal, "tax": tax, "total": subtotal + tax}


def resolve_active_tenant(db: Session, tenant_code: str) -> Tenant:
    tenant = (
        db.query(Tenant)
        .filter(Tenant.code == tenant_code, Tenant.is_active == True)
        .first()
    )
    if tenant is None:
        raise TenantNotFound()
    return tenant


def cart_lines(db: Session, cart_id: str) -> List[Tuple[CartItem, MenuItem]]:
    """Cart items joined to their live menu items."""
    return (
        db.query(CartItem, MenuItem)
        .join(MenuItem, CartItem.menu_item_id == MenuItem.id)
        .filter(CartItem.cart_id == cart_id)
        .order_by(CartItem.created_at, CartItem.id)
        .all()
    )


class CartService:
    """Public (unauthenticated) cart operations of the QR ordering flow."""

    def __init__(self, db: Session):
        self.db = db

    def create_cart(self, payload: CartCreate) -> Cart:
        tenant = resolve_active_tenant(self.db, payload.tenant_code)

        if payload.table_id:
            table = (
                self.db.query(DiningTable)
                .filter(DiningTable.id == payload.table_id, DiningTable.tenant_id == tenant.id)
                .first()
            )
            if table is None:
                raise TableNotFound()

        requested_ids = {item.menu_item_id for item in payload.items}
        known_ids = {
            row.id
            for row in self.db.query(MenuItem.id).filter(
                MenuItem.tenant_id == tenant.id,
                MenuItem.id.in_(requested_ids),
                MenuItem.is_active == True,
            )
        }
        missing = requested_ids - known_ids
        if missing:
            raise ValidationFailed(f"Unknown menu item: {sorted(missing)[0]}")

        cart = Cart(
            tenant_id=tenant.id,
            order_type=payload.order_type.value,
            table_id=payload.table_id,
        )
        cart.items = [
            CartItem(menu_item_id=item.menu_item_id, quantity=item.qty, note=item.note)
            for item in payload.items
        ]
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)

        logger.info(f"Cart {cart.id} created for tenant {tenant.id} with {len(cart.items)} items")
        return cart

    def get_cart(self, cart_id: str) -> dict:
        """Cart, its lines at current menu prices, and recomputed totals."""
        cart = self.db.query(Cart).filter(Cart.id == cart_id).first()
        if cart is None:
            raise CartNotFound()

        rows = cart_lines(self.db, cart.id)
        items = [
            {
                "id": cart_item.id,
                "menu_item_id": menu_item.id,
                "name": menu_item.name,
                "description": menu_item.description,
                "price": menu_item.price,
                "quantity": cart_item.quantity,
                "note": cart_item.note,
            }
            for cart_item, menu_item in rows
        ]
        totals = compute_totals((menu_item.price, cart_item.quantity) for cart_item, menu_item in rows)
        return {"cart": cart, "items": items, "totals": totals}
