"""Reusable FastAPI dependencies."""

from fastapi import Depends, HTTPException, status

from wallet.core.config import Settings, get_settings
from wallet.infrastructure.database import get_session_factory
from wallet.infrastructure.database.repositories import SqlUserDirectory
from wallet.modules.requests import BillRequestService
from wallet.modules.transfers import LedgerTransferService


def get_transfer_service(settings: Settings = Depends(get_settings)) -> LedgerTransferService:
    return LedgerTransferService.with_session_factory(get_session_factory(), settings.transfer)


def get_bill_request_service(settings: Settings = Depends(get_settings)) -> BillRequestService:
    return BillRequestService(SqlUserDirectory(get_session_factory()), settings.transfer)


async def require_direct_topups(settings: Settings = Depends(get_settings)) -> None:
    """Direct top-ups skip any payment step, so they are only served when explicitly enabled."""
    if not settings.transfer.direct_topups_enabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Direct top-ups are disabled")


__all__ = [
    "get_bill_request_service",
    "get_transfer_service",
    "require_direct_topups",
]
