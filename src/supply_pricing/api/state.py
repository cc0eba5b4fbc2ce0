"""
Shared service instance for the API routers.
"""
from typing import Optional

from ..config.settings import get_settings
from ..services.supply_records_service import SupplyRecordsService

_service: Optional[SupplyRecordsService] = None


def get_service() -> SupplyRecordsService:
    """Get the supply records service bound to the configured CSV store."""
    global _service
    if _service is None:
        settings = get_settings()
        _service = SupplyRecordsService(
            csv_path=settings.supply_records_csv,
            collect_all_violations=settings.collect_all_violations,
        )
    return _service
