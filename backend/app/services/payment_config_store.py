"""
Payment Config Store

The one adapter that decides where a tenant's payment provider configuration
lives: the ``payment_providers`` table when it exists, otherwise a
process-local in-memory map (degraded mode for a not-yet-migrated database).

The in-memory map is guarded by a lock, lost on restart and not shared between
server instances; every use of it is logged at warning level.
"""

import logging
import threading
from typing import Dict, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.errors import NotConfigured
from app.db.errors import is_missing_table
from app.models.payment import PaymentProviderConfig
from app.schemas.payments import PaymentConfigIn
from app.services.payments.base import ProviderSettings

logger = logging.getLogger(__name__)


def settings_from_row(row: PaymentProviderConfig) -> ProviderSettings:
    return ProviderSettings(
        provider=row.provider,
        live_mode=row.is_live,
        currency=row.currency,
        enabled_methods=list(row.enabled_methods or []),
        publishable_key=row.publishable_key,
        secret_key=row.secret_key,
    )


class PaymentConfigStore:
    """Read and write a tenant's active provider configuration."""

    _fallback: Dict[str, ProviderSettings] = {}
    _lock = threading.Lock()

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # In-memory fallback
    # ------------------------------------------------------------------

    @classmethod
    def _fallback_get(cls, tenant_id: str) -> Optional[ProviderSettings]:
        with cls._lock:
            return cls._fallback.get(tenant_id)

    @classmethod
    def _fallback_set(cls, tenant_id: str, config: ProviderSettings) -> None:
        with cls._lock:
            cls._fallback[tenant_id] = config

    @classmethod
    def reset_fallback(cls) -> None:
        with cls._lock:
            cls._fallback.clear()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, tenant_id: str) -> Optional[ProviderSettings]:
        """The tenant's active configuration, or None when nothing is set up.

        The default provider wins; otherwise the oldest enabled one.
        """
        try:
            row = (
                self.db.query(PaymentProviderConfig)
                .filter(
                    PaymentProviderConfig.tenant_id == tenant_id,
                    PaymentProviderConfig.is_enabled == True,
                )
                .order_by(
                    PaymentProviderConfig.is_default.desc(),
                    PaymentProviderConfig.created_at.asc(),
                )
                .first()
            )
        except DBAPIError as exc:
            if not is_missing_table(exc):
                raise
            self.db.rollback()
            logger.warning("Payment providers table not found, using in-memory fallback")
            return self._fallback_get(tenant_id)

        if row is None:
            return self._fallback_get(tenant_id)
        return settings_from_row(row)

    def require(self, tenant_id: str) -> ProviderSettings:
        config = self.get(tenant_id)
        if config is None:
            raise NotConfigured()
        return config

    def upsert(self, tenant_id: str, payload: PaymentConfigIn) -> ProviderSettings:
        """Create or replace the tenant's default provider configuration."""
        config = ProviderSettings(
            provider=payload.provider.value,
            live_mode=payload.live_mode,
            currency=payload.currency,
            enabled_methods=list(payload.enabled_methods),
            publishable_key=payload.publishable_key,
            secret_key=payload.secret_key,
        )
        try:
            row = (
                self.db.query(PaymentProviderConfig)
                .filter(
                    PaymentProviderConfig.tenant_id == tenant_id,
                    PaymentProviderConfig.is_default == True,
                )
                .first()
            )
            if row is None:
                row = PaymentProviderConfig(tenant_id=tenant_id, is_default=True, is_enabled=True)
                self.db.add(row)

            row.provider = config.provider
            row.display_name = row.display_name or config.provider.title()
            row.is_live = config.live_mode
            row.currency = config.currency
            row.enabled_methods = config.enabled_methods
            row.publishable_key = config.publishable_key
            row.secret_key = config.secret_key
            self.db.commit()
        except DBAPIError as exc:
            self.db.rollback()
            if not is_missing_table(exc):
                raise
            logger.warning("Payment providers table not found, storing config in memory")
            self._fallback_set(tenant_id, config)
            return config

        logger.info(f"Payment config for tenant {tenant_id} set to provider {config.provider}")
        return config
