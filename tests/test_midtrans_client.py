"""
Unit tests for the Midtrans client, driven through httpx.MockTransport.
"""
import base64
import json
from typing import Callable, List

import httpx
import pytest

from crowdfund.config import Settings
from crowdfund.database.models import Transaction, User
from crowdfund.integrations.midtrans_client import (
    GatewayError,
    GatewayErrorType,
    MidtransClient,
)

EXPECTED_AUTH = "Basic " + base64.b64encode(b"SB-Mid-server-test:").decode()


def build_client(
    test_settings: Settings, handler: Callable[[httpx.Request], httpx.Response]
) -> MidtransClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MidtransClient(settings=test_settings, http_client=http_client)


@pytest.fixture
def transaction() -> Transaction:
    return Transaction(id=42, campaign_id=1, user_id=7, amount=150_000, status="pending", code="TRX-1")


@pytest.fixture
def backer() -> User:
    return User(id=7, name="Budi", email="budi@example.com", occupation="", password_hash="x")


class TestGetPaymentUrl:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_snap_request_and_redirect_url(
        self, test_settings: Settings, transaction: Transaction, backer: User
    ) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                201,
                json={"token": "abc", "redirect_url": "https://app.sandbox.midtrans.com/snap/v3/redirection/abc"},
            )

        client = build_client(test_settings, handler)
        url = await client.get_payment_url(transaction, backer)

        assert url == "https://app.sandbox.midtrans.com/snap/v3/redirection/abc"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://app.sandbox.midtrans.com/snap/v1/transactions"
        assert request.headers["Authorization"] == EXPECTED_AUTH
        assert json.loads(request.content) == {
            "transaction_details": {"order_id": "42", "gross_amount": 150_000},
            "customer_details": {"email": "budi@example.com", "first_name": "Budi"},
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,error_type",
        [
            (500, GatewayErrorType.TRANSIENT),
            (503, GatewayErrorType.TRANSIENT),
            (429, GatewayErrorType.RATE_LIMIT),
            (400, GatewayErrorType.PERMANENT),
            (401, GatewayErrorType.PERMANENT),
        ],
    )
    async def test_http_errors_are_classified(
        self,
        status_code: int,
        error_type: GatewayErrorType,
        test_settings: Settings,
        transaction: Transaction,
        backer: User,
    ) -> None:
        client = build_client(
            test_settings, lambda request: httpx.Response(status_code, json={"error_messages": ["x"]})
        )
        with pytest.raises(GatewayError) as exc_info:
            await client.get_payment_url(transaction, backer)
        assert exc_info.value.error_type == error_type
        assert exc_info.value.status_code == 502

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_redirect_url(
        self, test_settings: Settings, transaction: Transaction, backer: User
    ) -> None:
        client = build_client(test_settings, lambda request: httpx.Response(201, json={"token": "abc"}))
        with pytest.raises(GatewayError) as exc_info:
            await client.get_payment_url(transaction, backer)
        assert exc_info.value.error_type == GatewayErrorType.PERMANENT

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_error_is_transient(
        self, test_settings: Settings, transaction: Transaction, backer: User
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = build_client(test_settings, handler)
        with pytest.raises(GatewayError) as exc_info:
            await client.get_payment_url(transaction, backer)
        assert exc_info.value.error_type == GatewayErrorType.TRANSIENT


class TestGetTransactionStatus:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_known_order_is_verified(self, test_settings: Settings) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "status_code": "200",
                    "transaction_status": "settlement",
                    "fraud_status": "accept",
                    "payment_type": "bank_transfer",
                    "order_id": "42",
                },
            )

        status = await build_client(test_settings, handler).get_transaction_status("42")

        assert status.verified
        assert status.transaction_status == "settlement"
        assert status.payment_type == "bank_transfer"
        assert str(seen[0].url) == "https://api.sandbox.midtrans.com/v2/42/status"
        assert seen[0].headers["Authorization"] == EXPECTED_AUTH

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_order_is_not_verified(self, test_settings: Settings) -> None:
        client = build_client(
            test_settings,
            lambda request: httpx.Response(
                200, json={"status_code": "404", "status_message": "Transaction doesn't exist."}
            ),
        )
        status = await client.get_transaction_status("999")
        assert not status.verified

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error_is_not_verified(self, test_settings: Settings) -> None:
        client = build_client(test_settings, lambda request: httpx.Response(401))
        status = await client.get_transaction_status("42")
        assert not status.verified
        assert status.http_status == 401

    @pytest.mark.unit
    def test_production_urls(self, test_settings: Settings) -> None:
        settings = test_settings.model_copy(update={"midtrans_environment": "production"})
        assert settings.midtrans_snap_base_url == "https://app.midtrans.com"
        assert settings.midtrans_api_base_url == "https://api.midtrans.com"
        assert not settings.is_sandbox

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self, test_settings: Settings) -> None:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = MidtransClient(settings=test_settings, http_client=http_client)
        await client.aclose()
        assert not http_client.is_closed
        await http_client.aclose()
