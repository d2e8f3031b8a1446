"""Public menu routes."""

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.menu import PublicMenu
from app.services.menu_service import MenuService

router = APIRouter()


@router.get("/public", response_model=PublicMenu)
@limiter.limit("120/minute")
def get_public_menu(
    request: Request,
    db: DbSession,
    tenant_code: str = Query(..., alias="tenantCode", min_length=1, max_length=50),
):
    """Active categories and items of a tenant, for guests."""
    return MenuService(db).public_menu(tenant_code)
