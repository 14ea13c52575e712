from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from wallet.core.config import TransferSettings
from wallet.infrastructure.database.repositories import SqlUserDirectory
from wallet.infrastructure.database.session import create_session_factory, init_db
from wallet.infrastructure.memory import InMemoryUserDirectory
from wallet.modules.requests import BillRequestService
from wallet.modules.transfers import LedgerTransferService

FAST_RETRIES = TransferSettings(max_attempts=3, backoff_multiplier=0, backoff_min=0, backoff_max=0)


async def _open_account(service: LedgerTransferService, user_id: str, name: str, balance: str | None = None):
    await service.register_account(user_id, name)
    if balance is not None and Decimal(balance) > 0:
        await service.top_up(user_id, balance)
    return await service.get_account(user_id)


@pytest.fixture
def open_account():
    """Register an account and fund it through a top-up."""
    return _open_account


@pytest.fixture
def memory_directory():
    return InMemoryUserDirectory()


@pytest.fixture
def service(memory_directory):
    return LedgerTransferService(memory_directory, FAST_RETRIES)


@pytest_asyncio.fixture
async def sql_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_directory(sql_engine):
    return SqlUserDirectory(create_session_factory(sql_engine))


@pytest.fixture
def sql_service(sql_directory):
    return LedgerTransferService(sql_directory, FAST_RETRIES)


@pytest.fixture
def bill_service(memory_directory):
    return BillRequestService(memory_directory, FAST_RETRIES)


@pytest.fixture
def sql_bill_service(sql_directory):
    return BillRequestService(sql_directory, FAST_RETRIES)


@pytest_asyncio.fixture
async def file_sql_engine(tmp_path):
    """SQLite on disk: every session gets its own connection, so writers really contend."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_sql_service(file_sql_engine):
    return LedgerTransferService(SqlUserDirectory(create_session_factory(file_sql_engine)), FAST_RETRIES)
