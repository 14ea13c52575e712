"""HTTP surface: identity resolution, routing and error mapping."""

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from wallet.api.deps import get_bill_request_service, get_transfer_service, require_direct_topups
from wallet.api.errors import status_for, to_error_response
from wallet.core.config import get_settings
from wallet.core.security import create_access_token
from wallet.main import create_app
from wallet.modules.accounts import ConcurrentConflictError, StoreUnavailableError


def _auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture
async def client(service, bill_service):
    app = create_app()
    app.dependency_overrides[get_transfer_service] = lambda: service
    app.dependency_overrides[get_bill_request_service] = lambda: bill_service
    app.dependency_overrides[require_direct_topups] = lambda: None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest_asyncio.fixture
async def funded(client):
    await client.put("/api/wallet/account", json={"display_name": "Alice"}, headers=_auth("alice"))
    await client.put("/api/wallet/account", json={"display_name": "Bob"}, headers=_auth("bob"))
    await client.post("/api/wallet/topups", json={"amount": "100.00"}, headers=_auth("alice"))
    await client.post("/api/wallet/topups", json={"amount": "50.00"}, headers=_auth("bob"))
    return client


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self, client):
        response = await client.get("/api/wallet/balance")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token_is_rejected(self, client):
        response = await client.get("/api/wallet/balance", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401


class TestWalletEndpoints:
    @pytest.mark.asyncio
    async def test_register_and_read_account(self, client):
        response = await client.put("/api/wallet/account", json={"display_name": "Alice"}, headers=_auth("alice"))

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "alice"
        assert Decimal(str(body["balance"])) == Decimal("0")
        assert body["currency"] == get_settings().transfer.currency

        response = await client.get("/api/wallet/account", headers=_auth("alice"))
        assert response.json()["display_name"] == "Alice"

    @pytest.mark.asyncio
    async def test_transfer_updates_both_parties(self, funded):
        response = await funded.post(
            "/api/wallet/transfers",
            json={"recipient_id": "bob", "amount": "30.00"},
            headers=_auth("alice"),
        )

        assert response.status_code == 201
        body = response.json()
        assert Decimal(str(body["balance"])) == Decimal("70.00")
        transaction_id = body["transaction_id"]

        bob_balance = await funded.get("/api/wallet/balance", headers=_auth("bob"))
        assert Decimal(str(bob_balance.json()["balance"])) == Decimal("80.00")

        record = await funded.get(f"/api/wallet/history/{transaction_id}", headers=_auth("bob"))
        assert record.status_code == 200
        assert record.json()["direction"] == "credit"
        assert record.json()["counterparty_id"] == "alice"

    @pytest.mark.asyncio
    async def test_history_lists_most_recent_first(self, funded):
        await funded.post("/api/wallet/transfers", json={"recipient_id": "bob", "amount": "1"}, headers=_auth("alice"))
        await funded.post("/api/wallet/transfers", json={"recipient_id": "bob", "amount": "2"}, headers=_auth("alice"))

        response = await funded.get("/api/wallet/history", params={"limit": 2}, headers=_auth("alice"))

        body = response.json()
        assert body["total"] == 3
        assert body["order"] == "date_desc"
        assert [Decimal(str(t["amount"])) for t in body["transactions"]] == [Decimal("-2.00"), Decimal("-1.00")]

    @pytest.mark.asyncio
    async def test_idempotency_header_deduplicates(self, funded):
        headers = {**_auth("alice"), "Idempotency-Key": "tap-1"}
        payload = {"recipient_id": "bob", "amount": "10"}

        first = await funded.post("/api/wallet/transfers", json=payload, headers=headers)
        second = await funded.post("/api/wallet/transfers", json=payload, headers=headers)

        assert first.json()["transaction_id"] == second.json()["transaction_id"]
        assert Decimal(str(second.json()["balance"])) == Decimal("90.00")

    @pytest.mark.asyncio
    async def test_unknown_transaction_is_404(self, funded):
        response = await funded.get("/api/wallet/history/nope", headers=_auth("alice"))

        assert response.status_code == 404


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "recipient, amount, status_code, code",
        [
            ("bob", "10.011", 400, "invalid_amount"),
            ("bob", "12.345", 400, "invalid_amount"),
            ("bob", "-5", 400, "invalid_amount"),
            ("bob", "100000000000000000", 400, "invalid_amount"),
            ("alice", "10", 400, "self_transfer_not_allowed"),
            ("ghost", "10", 404, "recipient_not_found"),
            ("bob", "100.01", 409, "insufficient_balance"),
        ],
    )
    async def test_rejections(self, funded, recipient, amount, status_code, code):
        response = await funded.post(
            "/api/wallet/transfers",
            json={"recipient_id": recipient, "amount": amount},
            headers=_auth("alice"),
        )

        assert response.status_code == status_code
        body = response.json()
        assert body["code"] == code
        assert body["retryable"] is False
        assert body["outcome"] == "not_applied"

        balance = await funded.get("/api/wallet/balance", headers=_auth("alice"))
        assert Decimal(str(balance.json()["balance"])) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_unregistered_caller_is_404(self, client):
        response = await client.get("/api/wallet/balance", headers=_auth("ghost"))

        assert response.status_code == 404
        assert response.json()["code"] == "user_not_found"


class TestTopupGate:
    @pytest.mark.asyncio
    async def test_direct_topups_are_disabled_by_default(self, service):
        app = create_app()
        app.dependency_overrides[get_transfer_service] = lambda: service
        await service.register_account("alice", "Alice")

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            response = await http.post("/api/wallet/topups", json={"amount": "10.00"}, headers=_auth("alice"))

        assert response.status_code == 403
        assert await service.get_balance("alice") == Decimal("0.00")


class TestBillRequestEndpoints:
    @pytest.mark.asyncio
    async def test_split_pay_and_decline(self, funded):
        await funded.put("/api/wallet/account", json={"display_name": "Carol"}, headers=_auth("carol"))
        created = await funded.post(
            "/api/wallet/requests/split",
            json={"description": "Dinner", "total": "20.00", "participant_ids": ["bob", "carol"]},
            headers=_auth("alice"),
        )

        assert created.status_code == 201
        bill = created.json()
        assert bill["status"] == "pending"
        assert [Decimal(str(s["amount"])) for s in bill["shares"]] == [Decimal("10.00"), Decimal("10.00")]

        paid = await funded.post(
            "/api/wallet/transfers",
            json={"recipient_id": "alice", "amount": "10.00", "bill_id": bill["bill_id"]},
            headers=_auth("bob"),
        )
        assert paid.status_code == 201

        declined = await funded.post(f"/api/wallet/requests/{bill['bill_id']}/decline", headers=_auth("carol"))
        assert declined.status_code == 200
        assert declined.json()["status"] == "declined"

        listed = await funded.get("/api/wallet/requests", headers=_auth("alice"))
        body = listed.json()
        assert body["total"] == 1
        assert body["requests"][0]["status"] == "paid"
        assert {s["participant_id"]: s["status"] for s in body["requests"][0]["shares"]} == {
            "bob": "paid",
            "carol": "declined",
        }

        again = await funded.post(
            "/api/wallet/transfers",
            json={"recipient_id": "alice", "amount": "10.00", "bill_id": bill["bill_id"]},
            headers=_auth("bob"),
        )
        assert again.status_code == 409
        assert again.json()["code"] == "bill_request_closed"

    @pytest.mark.asyncio
    async def test_request_visible_only_to_its_parties(self, funded):
        created = await funded.post(
            "/api/wallet/requests",
            json={"description": "Cab", "shares": {"bob": "4.50"}},
            headers=_auth("alice"),
        )
        bill_id = created.json()["bill_id"]

        assert (await funded.get(f"/api/wallet/requests/{bill_id}", headers=_auth("bob"))).status_code == 200
        missing = await funded.get(f"/api/wallet/requests/{bill_id}", headers=_auth("carol"))
        assert missing.status_code == 404
        assert missing.json()["code"] == "bill_request_not_found"


def test_store_faults_report_unknown_outcome():
    error = StoreUnavailableError()

    assert status_for(error) == 503
    body = to_error_response(error)
    assert body.retryable is True
    assert body.outcome == "unknown"


def test_conflicts_are_retryable_but_not_applied():
    body = to_error_response(ConcurrentConflictError())

    assert status_for(ConcurrentConflictError()) == 409
    assert body.retryable is True
    assert body.outcome == "not_applied"
