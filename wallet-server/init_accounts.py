"""
Create demo wallet accounts for local development.

Registers two users and funds the first one so transfers can be tried
right away through the API.
"""
import asyncio

from wallet.core.config import get_settings
from wallet.infrastructure.database import get_session_factory, init_db
from wallet.modules.transfers import LedgerTransferService

DEMO_ACCOUNTS = [
    ("demo-alice", "Alice", "1000.00"),
    ("demo-bob", "Bob", None),
]


async def create_demo_accounts() -> None:
    await init_db()
    service = LedgerTransferService.with_session_factory(get_session_factory(), get_settings().transfer)

    for user_id, display_name, opening_balance in DEMO_ACCOUNTS:
        account = await service.register_account(user_id, display_name)
        if opening_balance and account.balance == 0:
            await service.top_up(user_id, opening_balance, idempotency_key=f"seed-{user_id}")
        balance = await service.get_balance(user_id)
        print(f"{user_id} ({display_name}): {balance}")


if __name__ == "__main__":
    asyncio.run(create_demo_accounts())
