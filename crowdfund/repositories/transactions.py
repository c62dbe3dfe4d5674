"""Transaction persistence."""
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crowdfund.core.pagination import offset_for
from crowdfund.database.models import Transaction

logger = structlog.get_logger(__name__)


class TransactionRepository:
    """CRUD access to the transactions table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_campaign_id(self, campaign_id: int) -> List[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.campaign_id == campaign_id)
            .order_by(Transaction.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user_id(self, user_id: int) -> List[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        return await self.session.get(Transaction, transaction_id)

    async def get_by_code(self, code: str) -> Optional[Transaction]:
        """Look up a transaction by its TRX code; the earliest row wins on duplicates."""
        stmt = select(Transaction).where(Transaction.code == code).order_by(Transaction.id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def save(self, transaction: Transaction) -> Transaction:
        """Insert a transaction and return it with its generated id."""
        self.session.add(transaction)
        await self.session.flush()

        logger.info(
            "transaction_saved",
            transaction_id=transaction.id,
            code=transaction.code,
            status=transaction.status,
        )
        return transaction

    async def update(self, transaction: Transaction) -> Transaction:
        """Persist the status of a loaded transaction."""
        self.session.add(transaction)
        await self.session.flush()

        logger.info(
            "transaction_updated",
            transaction_id=transaction.id,
            status=transaction.status,
        )
        return transaction

    async def update_payment_url(self, transaction: Transaction) -> Transaction:
        """Persist the payment URL of a loaded transaction."""
        self.session.add(transaction)
        await self.session.flush()

        logger.info("transaction_payment_url_saved", transaction_id=transaction.id)
        return transaction

    async def find_all(self, page: int, size: int) -> Tuple[List[Transaction], int]:
        """Return one page of transactions and the total row count."""
        stmt = (
            select(Transaction)
            .order_by(Transaction.id.desc())
            .limit(size)
            .offset(offset_for(page, size))
        )
        result = await self.session.execute(stmt)
        transactions = list(result.scalars().all())

        total_rows = await self.session.scalar(select(func.count()).select_from(Transaction))
        return transactions, int(total_rows or 0)
