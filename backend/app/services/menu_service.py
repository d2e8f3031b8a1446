"""Guest-facing menu and QR table lookups."""

import logging

from sqlalchemy.orm import Session

from app.core.errors import TableNotFound
from app.models.menu import MenuCategory, MenuItem
from app.models.tenant import DiningTable
from app.services.cart_service import resolve_active_tenant

logger = logging.getLogger(__name__)


class MenuService:
    def __init__(self, db: Session):
        self.db = db

    def public_menu(self, tenant_code: str) -> dict:
        """Active categories and active items of an active tenant.

        Items are ordered by category order, then item order, then name.
        Items without a category are not listed.
        """
        tenant = resolve_active_tenant(self.db, tenant_code)

        categories = (
            self.db.query(MenuCategory)
            .filter(MenuCategory.tenant_id == tenant.id, MenuCategory.is_active == True)
            .order_by(MenuCategory.sort_order, MenuCategory.name)
            .all()
        )
        rows = (
            self.db.query(MenuItem, MenuCategory.name)
            .join(MenuCategory, MenuItem.category_id == MenuCategory.id)
            .filter(MenuItem.tenant_id == tenant.id, MenuItem.is_active == True)
            .order_by(MenuCategory.sort_order, MenuItem.sort_order, MenuItem.name)
            .all()
        )

        return {
            "categories": categories,
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "description": item.description,
                    "price": item.price,
                    "category_id": item.category_id,
                    "category_name": category_name,
                    "is_available": item.is_available,
                    "image_url": item.image_url,
                }
                for item, category_name in rows
            ],
        }

    def qr_context(self, tenant_code: str, table_number: str) -> dict:
        """Tenant branding and table details behind a table's QR code."""
        tenant = resolve_active_tenant(self.db, tenant_code)
        table = (
            self.db.query(DiningTable)
            .filter(DiningTable.tenant_id == tenant.id, DiningTable.table_number == table_number)
            .first()
        )
        if table is None:
            raise TableNotFound()

        return {
            "tenant": {
                "id": tenant.id,
                "name": tenant.name,
                "code": tenant.code,
                "branding": tenant.branding or {},
            },
            "table": {
                "id": table.id,
                "number": table.table_number,
                "section": table.section,
                "capacity": table.capacity,
            },
        }
