"""Guest cart routes (public, QR ordering flow)."""

from fastapi import APIRouter, Request

from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.cart import CartCreate, CartCreated, CartDetail
from app.services.cart_service import CartService

router = APIRouter()


@router.post("", response_model=CartCreated)
@limiter.limit("30/minute")
def create_cart(request: Request, payload: CartCreate, db: DbSession):
    """Create a cart for an active tenant from a list of menu items."""
    cart = CartService(db).create_cart(payload)
    return {"cart_id": cart.id}


@router.get("/{cart_id}", response_model=CartDetail)
@limiter.limit("60/minute")
def get_cart(request: Request, cart_id: str, db: DbSession):
    """Cart lines at current menu prices with subtotal, tax and total."""
    return CartService(db).get_cart(cart_id)
