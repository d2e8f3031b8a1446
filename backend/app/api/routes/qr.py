"""QR table entry point (public)."""

from fastapi import APIRouter, Request

from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.menu import QrContext
from app.services.menu_service import MenuService

router = APIRouter()


@router.get("/{tenant_code}/{table_number}", response_model=QrContext)
@limiter.limit("120/minute")
def get_qr_context(request: Request, tenant_code: str, table_number: str, db: DbSession):
    return MenuService(db).qr_context(tenant_code, table_number)
