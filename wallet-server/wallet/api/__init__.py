from fastapi import APIRouter

from wallet.api.routers import requests, wallet


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
    router.include_router(requests.router, prefix="/wallet/requests", tags=["requests"])
    return router


__all__ = [
    "create_api_router",
]
