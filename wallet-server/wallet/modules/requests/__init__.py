"""Bill requests and split bills."""

from .models import BillRequest, BillShare, BillShareRef, BillStatus, split_evenly
from .service import BillRequestService
from .validation import settlement_for

__all__ = [
    "BillRequest",
    "BillRequestService",
    "BillShare",
    "BillShareRef",
    "BillStatus",
    "settlement_for",
    "split_evenly",
]
