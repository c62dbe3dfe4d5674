"""
Midtrans payment notification handling.

Implements:
- Verification of a notification against the Midtrans status endpoint
- Routing of verified notifications into the transaction workflow

Midtrans notifications are not signed with a shared secret that the API
checks; instead each notification is confirmed by asking Midtrans for the
order's status. The gateway's own answer is authoritative.
"""
import time
from typing import Any, Dict, Optional

import structlog

from crowdfund.core.errors import CrowdfundError
from crowdfund.core.transactions import PaymentNotification, TransactionService, resolve_status
from crowdfund.database.models import Transaction
from crowdfund.integrations.midtrans_client import GatewayStatus, MidtransClient
from crowdfund.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class NotificationVerificationError(CrowdfundError):
    """Raised when Midtrans does not confirm a notification."""

    status_code = 401


class NotificationHandler:
    """Verifies Midtrans notifications and applies them to transactions."""

    def __init__(self, gateway: MidtransClient, transaction_service: TransactionService):
        self.gateway = gateway
        self.transaction_service = transaction_service

    async def verify(self, notification: PaymentNotification) -> GatewayStatus:
        """
        Confirm a notification with Midtrans.

        Raises:
            NotificationVerificationError: If Midtrans does not know the order
            GatewayError: If Midtrans cannot be reached
        """
        status = await self.gateway.get_transaction_status(notification.order_id)
        if not status.verified:
            logger.warning(
                "notification_verification_failed",
                order_id=notification.order_id,
                http_status=status.http_status,
                status_code=status.status_code,
            )
            raise NotificationVerificationError("Notification verification failed")

        logger.info("notification_verified", order_id=notification.order_id)
        return status

    async def handle(self, notification: PaymentNotification) -> Dict[str, Any]:
        """
        Verify a notification and apply it.

        A numeric order id is a transaction id and goes through the payment
        workflow (which credits the campaign on settlement). Any other order id
        is treated as a transaction code and follows the same rules.

        Returns:
            Dict[str, Any]: Handling result with the affected transaction
        """
        start_time = time.time()
        logger.info(
            "processing_payment_notification",
            order_id=notification.order_id,
            transaction_status=notification.transaction_status,
            payment_type=notification.payment_type,
        )

        try:
            gateway_status = await self.verify(notification)
        except CrowdfundError:
            metrics.record_notification("unverified", time.time() - start_time)
            raise

        confirmed = PaymentNotification(
            order_id=notification.order_id,
            transaction_status=gateway_status.transaction_status
            or notification.transaction_status,
            payment_type=gateway_status.payment_type or notification.payment_type,
            fraud_status=gateway_status.fraud_status or notification.fraud_status,
        )

        try:
            transaction = await self._apply(confirmed)
        except CrowdfundError as e:
            metrics.record_notification("failed", time.time() - start_time)
            logger.error(
                "payment_notification_failed",
                order_id=notification.order_id,
                error=e.message,
            )
            raise

        result = "processed" if transaction is not None else "ignored"
        metrics.record_notification(result, time.time() - start_time)
        logger.info(
            "payment_notification_handled",
            order_id=notification.order_id,
            result=result,
            status=transaction.status if transaction is not None else None,
        )
        return {"result": result, "transaction": transaction}

    async def _apply(self, notification: PaymentNotification) -> Optional[Transaction]:
        if notification.order_id.isdigit():
            return await self.transaction_service.process_payment(notification)

        new_status = resolve_status(
            notification.transaction_status, notification.fraud_status
        )
        if new_status is None:
            return None
        return await self.transaction_service.update_transaction_status(
            notification.order_id, new_status
        )
