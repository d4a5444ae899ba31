# cartsync/services/settings_client.py
from decimal import Decimal, InvalidOperation

from cartsync.domain.errors import NetworkFailure
from cartsync.services.api_client import StoreApiClient
from cartsync.utils.logging import get_logger
from cartsync.utils.settings import DEFAULT_TAX_RATE

logger = get_logger(__name__)


class SettingsClient(StoreApiClient):
    def get_tax_rate(self) -> Decimal:
        """Stawka VAT sklepu w procentach; przy bledzie domyslna."""
        try:
            settings = self.get("/settings/public/store") or {}
        except NetworkFailure as e:
            logger.warning(f"Failed to fetch tax rate, using default {DEFAULT_TAX_RATE}: {e}")
            return DEFAULT_TAX_RATE

        rate = settings.get("taxRate")
        if rate is None:
            return DEFAULT_TAX_RATE
        try:
            return Decimal(str(rate))
        except InvalidOperation:
            logger.warning(f"Unreadable taxRate {rate!r}, using default {DEFAULT_TAX_RATE}")
            return DEFAULT_TAX_RATE
