"""
Midtrans Snap API client.

Implements:
- Snap transaction creation (redirect URL for a pending transaction)
- Transaction status lookup used to verify payment notifications
- Error classification for logging and metrics

Calls are never retried: a failed Snap request rolls back the transaction
that was being created, and a failed status lookup leaves the notification
unverified.
"""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog

from crowdfund.config import Settings, get_settings
from crowdfund.core.errors import CrowdfundError
from crowdfund.database.models import Transaction, User
from crowdfund.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class GatewayErrorType(Enum):
    """Classification of payment gateway failures."""

    TRANSIENT = "transient"  # network errors, 5xx
    PERMANENT = "permanent"  # rejected request, malformed response
    RATE_LIMIT = "rate_limit"  # 429


class GatewayError(CrowdfundError):
    """Raised when the payment gateway cannot serve a request."""

    status_code = 502

    def __init__(
        self,
        message: str,
        error_type: GatewayErrorType,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error


@dataclass(frozen=True)
class GatewayStatus:
    """Result of a Midtrans status lookup."""

    http_status: int
    status_code: Optional[str] = None
    transaction_status: Optional[str] = None
    fraud_status: Optional[str] = None
    payment_type: Optional[str] = None

    @property
    def verified(self) -> bool:
        """Midtrans answers unknown orders with HTTP 200 and status_code "404"."""
        return self.http_status == 200 and self.status_code != "404"


class MidtransClient:
    """
    Async wrapper around the Midtrans Snap and Core status APIs.

    Requests authenticate with HTTP Basic auth using the server key as the
    user name and an empty password.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self.settings.midtrans_timeout_seconds
        )
        self._auth = httpx.BasicAuth(self.settings.midtrans_server_key, "")

        logger.info(
            "midtrans_client_initialized",
            environment=self.settings.midtrans_environment,
        )

    @staticmethod
    def _classify_status(status_code: int) -> GatewayErrorType:
        if status_code == 429:
            return GatewayErrorType.RATE_LIMIT
        if status_code >= 500:
            return GatewayErrorType.TRANSIENT
        return GatewayErrorType.PERMANENT

    def _raise_gateway_error(
        self,
        operation: str,
        message: str,
        error_type: GatewayErrorType,
        original_error: Optional[Exception] = None,
    ) -> None:
        logger.error(
            "midtrans_api_error",
            operation=operation,
            error_type=error_type.value,
            error_message=message,
        )
        metrics.record_gateway_api_error(error_type.value)
        raise GatewayError(message, error_type, original_error)

    @staticmethod
    def build_snap_payload(transaction: Transaction, user: User) -> Dict[str, Any]:
        """Snap request body. The order id is the numeric transaction id."""
        return {
            "transaction_details": {
                "order_id": str(transaction.id),
                "gross_amount": transaction.amount,
            },
            "customer_details": {
                "email": user.email,
                "first_name": user.name,
            },
        }

    async def get_payment_url(self, transaction: Transaction, user: User) -> str:
        """
        Create a Snap transaction and return its redirect URL.

        Raises:
            GatewayError: If Midtrans is unreachable or rejects the request
        """
        operation = "create_snap"
        url = f"{self.settings.midtrans_snap_base_url}/snap/v1/transactions"
        start_time = time.time()

        try:
            response = await self._client.post(
                url,
                json=self.build_snap_payload(transaction, user),
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            metrics.record_gateway_api_call(operation, "error", time.time() - start_time)
            self._raise_gateway_error(
                operation, f"Midtrans request failed: {str(e)}", GatewayErrorType.TRANSIENT, e
            )

        duration = time.time() - start_time

        if response.is_error:
            metrics.record_gateway_api_call(operation, "error", duration)
            self._raise_gateway_error(
                operation,
                f"Midtrans rejected Snap request with HTTP {response.status_code}",
                self._classify_status(response.status_code),
            )

        try:
            redirect_url = response.json().get("redirect_url")
        except ValueError as e:
            metrics.record_gateway_api_call(operation, "error", duration)
            self._raise_gateway_error(
                operation, "Midtrans returned a non-JSON body", GatewayErrorType.PERMANENT, e
            )

        if not redirect_url:
            metrics.record_gateway_api_call(operation, "error", duration)
            self._raise_gateway_error(
                operation, "Midtrans response has no redirect_url", GatewayErrorType.PERMANENT
            )

        metrics.record_gateway_api_call(operation, "success", duration)
        logger.info(
            "midtrans_snap_created",
            transaction_id=transaction.id,
            amount=transaction.amount,
            duration_seconds=duration,
        )
        return redirect_url

    async def get_transaction_status(self, order_id: str) -> GatewayStatus:
        """
        Look up an order on Midtrans.

        Non-200 answers are returned as an unverified GatewayStatus rather than
        raised; only transport failures raise.

        Raises:
            GatewayError: If Midtrans is unreachable
        """
        operation = "get_status"
        url = f"{self.settings.midtrans_api_base_url}/v2/{order_id}/status"
        start_time = time.time()

        try:
            response = await self._client.get(
                url, auth=self._auth, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as e:
            metrics.record_gateway_api_call(operation, "error", time.time() - start_time)
            self._raise_gateway_error(
                operation, f"Midtrans request failed: {str(e)}", GatewayErrorType.TRANSIENT, e
            )

        duration = time.time() - start_time

        if response.status_code != 200:
            metrics.record_gateway_api_call(operation, "error", duration)
            metrics.record_gateway_api_error(
                self._classify_status(response.status_code).value
            )
            logger.warning(
                "midtrans_status_lookup_failed",
                order_id=order_id,
                http_status=response.status_code,
            )
            return GatewayStatus(http_status=response.status_code)

        try:
            body = response.json()
        except ValueError:
            body = {}

        metrics.record_gateway_api_call(operation, "success", duration)
        status = GatewayStatus(
            http_status=response.status_code,
            status_code=body.get("status_code"),
            transaction_status=body.get("transaction_status"),
            fraud_status=body.get("fraud_status"),
            payment_type=body.get("payment_type"),
        )
        logger.info(
            "midtrans_status_retrieved",
            order_id=order_id,
            status_code=status.status_code,
            transaction_status=status.transaction_status,
        )
        return status

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
