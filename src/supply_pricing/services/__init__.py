"""Services subpackage - supply record storage and quoting."""
from .supply_records_service import SupplyRecord, SupplyRecordsService, TierSetRejected
from .quote import QuoteLine, TraceStep

__all__ = ['SupplyRecord', 'SupplyRecordsService', 'TierSetRejected', 'QuoteLine', 'TraceStep']
