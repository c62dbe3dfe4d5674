"""
Transaction lifecycle.

A transaction starts ``pending`` and ends ``paid`` or ``cancelled``. The
transition into ``paid`` is the only place campaign counters move: the
campaign gains one backer and the transaction amount, in the same database
transaction as the status change, whichever path makes the move. Terminal
transactions never move again: a replayed notification is a no-op and any
other attempt is a conflict.
"""
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog

from crowdfund.auth.policy import Principal
from crowdfund.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from crowdfund.core.pagination import Paging, validate_page
from crowdfund.database.models import (
    TRANSACTION_CANCELLED,
    TRANSACTION_PAID,
    TRANSACTION_PENDING,
    TRANSACTION_STATUSES,
    Transaction,
    User,
    utcnow,
)
from crowdfund.integrations.midtrans_client import MidtransClient
from crowdfund.monitoring.metrics import metrics
from crowdfund.repositories.campaigns import CampaignRepository
from crowdfund.repositories.transactions import TransactionRepository

logger = structlog.get_logger(__name__)

TERMINAL_STATUSES = frozenset({TRANSACTION_PAID, TRANSACTION_CANCELLED})
CANCELLING_GATEWAY_STATUSES = frozenset({"deny", "expire", "cancel"})


@dataclass(frozen=True)
class PaymentNotification:
    """Fields of a Midtrans payment notification the workflow reads."""

    order_id: str
    transaction_status: str
    payment_type: Optional[str] = None
    fraud_status: Optional[str] = None


def resolve_status(
    transaction_status: Optional[str], fraud_status: Optional[str] = None
) -> Optional[str]:
    """
    Map a gateway status onto a transaction status.

    Returns None when the gateway status does not change the transaction
    (e.g. "pending", or a capture still under fraud review).
    """
    if transaction_status == "capture":
        return TRANSACTION_PAID if fraud_status == "accept" else None
    if transaction_status == "settlement":
        return TRANSACTION_PAID
    if transaction_status in CANCELLING_GATEWAY_STATUSES:
        return TRANSACTION_CANCELLED
    return None


def generate_transaction_code() -> str:
    return f"TRX-{int(time.time())}"


class TransactionService:
    """Creates transactions and applies payment outcomes to them."""

    def __init__(
        self,
        transaction_repo: TransactionRepository,
        campaign_repo: CampaignRepository,
        gateway: MidtransClient,
    ):
        self.transaction_repo = transaction_repo
        self.campaign_repo = campaign_repo
        self.gateway = gateway

    async def create_transaction(
        self, campaign_id: int, amount: int, user: User
    ) -> Transaction:
        """
        Create a pending transaction and attach its Snap payment URL.

        The row is flushed first so the gateway order id (the numeric id)
        exists. A gateway failure propagates and the caller's database
        transaction rolls the row back.

        Raises:
            NotFoundError: If the campaign does not exist
            GatewayError: If Midtrans does not return a payment URL
        """
        campaign = await self.campaign_repo.find_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found")

        now = utcnow()
        transaction = Transaction(
            campaign_id=campaign.id,
            user_id=user.id,
            amount=amount,
            status=TRANSACTION_PENDING,
            code=generate_transaction_code(),
            payment_url=None,
            created_at=now,
            updated_at=now,
        )
        transaction = await self.transaction_repo.save(transaction)

        transaction.payment_url = await self.get_payment_url(transaction, user)
        transaction = await self.transaction_repo.update_payment_url(transaction)

        metrics.record_transaction_created()
        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            campaign_id=campaign.id,
            user_id=user.id,
            amount=amount,
            code=transaction.code,
        )
        return transaction

    async def process_payment(self, notification: PaymentNotification) -> Transaction:
        """
        Apply a payment notification to the transaction named by its order id.

        Raises:
            ValidationError: If the order id is not a transaction id
            NotFoundError: If no such transaction exists
        """
        try:
            transaction_id = int(notification.order_id)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid order id: {notification.order_id}") from e

        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")

        new_status = resolve_status(
            notification.transaction_status, notification.fraud_status
        )
        if new_status is None:
            logger.info(
                "payment_status_unchanged",
                transaction_id=transaction.id,
                gateway_status=notification.transaction_status,
            )
            return transaction

        return await self._apply_gateway_status(transaction, new_status)

    async def _apply_gateway_status(
        self, transaction: Transaction, new_status: str
    ) -> Transaction:
        if transaction.status in TERMINAL_STATUSES:
            logger.info(
                "payment_notification_replayed",
                transaction_id=transaction.id,
                status=transaction.status,
                requested_status=new_status,
            )
            return transaction
        return await self._transition(transaction, new_status)

    async def _transition(self, transaction: Transaction, new_status: str) -> Transaction:
        """
        Move a transaction to new_status, crediting its campaign on entry to paid.

        Raises:
            ValidationError: If new_status is not a known transaction status
            ConflictError: If the transaction is terminal and new_status differs
        """
        if new_status not in TRANSACTION_STATUSES:
            raise ValidationError(f"Invalid transaction status: {new_status}")

        previous_status = transaction.status
        if previous_status == new_status:
            return transaction
        if previous_status in TERMINAL_STATUSES:
            logger.info(
                "transaction_transition_refused",
                transaction_id=transaction.id,
                status=previous_status,
                requested_status=new_status,
            )
            raise ConflictError(f"Transaction is already {previous_status}")

        transaction.status = new_status
        transaction.updated_at = utcnow()
        transaction = await self.transaction_repo.update(transaction)
        metrics.record_status_change(previous_status, new_status)

        if new_status == TRANSACTION_PAID:
            await self._credit_campaign(transaction)
        return transaction

    async def _credit_campaign(self, transaction: Transaction) -> None:
        campaign = await self.campaign_repo.find_by_id(transaction.campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found")

        campaign.backer_count += 1
        campaign.current_amount += transaction.amount
        campaign.updated_at = utcnow()
        await self.campaign_repo.update(campaign)

        metrics.record_campaign_funding(transaction.amount)
        logger.info(
            "campaign_funded",
            campaign_id=campaign.id,
            transaction_id=transaction.id,
            amount=transaction.amount,
            backer_count=campaign.backer_count,
            current_amount=campaign.current_amount,
        )

    async def update_transaction(
        self, transaction_id: int, status: str, principal: Principal
    ) -> Transaction:
        """
        Set a transaction's status on behalf of a caller.

        The backer and the campaign owner may cancel a pending transaction;
        only an admin may mark one paid.

        Raises:
            NotFoundError: If the transaction does not exist
            PermissionDeniedError: If the caller may not make this change
            ConflictError: If the transaction is already paid or cancelled
        """
        transaction = await self.get_transaction_by_id(transaction_id)

        if not principal.is_admin:
            campaign = await self.campaign_repo.find_by_id(transaction.campaign_id)
            owner_id = campaign.user_id if campaign is not None else None
            if principal.user_id not in (transaction.user_id, owner_id):
                logger.info(
                    "transaction_access_denied",
                    transaction_id=transaction.id,
                    caller_id=principal.user_id,
                )
                raise PermissionDeniedError("You cannot change this transaction")
            if status == TRANSACTION_PAID:
                raise PermissionDeniedError("Only an admin can mark a transaction paid")

        return await self._transition(transaction, status)

    async def update_transaction_status(self, code: str, status: str) -> Transaction:
        """
        Set the status of the transaction with the given code.

        Follows the same rules as a payment notification: a move into paid
        credits the campaign and a paid or cancelled transaction is left as is.

        Raises:
            ValidationError: If status is not a known transaction status
            NotFoundError: If no transaction has the code
        """
        if status not in TRANSACTION_STATUSES:
            raise ValidationError(f"Invalid transaction status: {status}")

        transaction = await self.transaction_repo.get_by_code(code)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return await self._apply_gateway_status(transaction, status)

    async def get_transaction_by_id(self, transaction_id: int) -> Transaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    async def get_transactions_by_campaign_id(self, campaign_id: int) -> List[Transaction]:
        return await self.transaction_repo.get_by_campaign_id(campaign_id)

    async def get_transactions_by_user_id(self, user_id: int) -> List[Transaction]:
        return await self.transaction_repo.get_by_user_id(user_id)

    async def get_all_transactions(
        self, page: int, size: int
    ) -> Tuple[List[Transaction], Paging]:
        validate_page(page, size)
        transactions, total_rows = await self.transaction_repo.find_all(page, size)
        return transactions, Paging.build(page, size, total_rows)

    async def get_payment_url(self, transaction: Transaction, user: User) -> str:
        return await self.gateway.get_payment_url(transaction, user)
