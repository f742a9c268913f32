from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from .models import PaymentAttempt

class PaymentRepository:
    @staticmethod
    async def create_attempt(db: AsyncSession, attempt: PaymentAttempt):
        db.add(attempt)
        await db.commit()
        await db.refresh(attempt)
        return attempt

    @staticmethod
    async def update_attempt(db: AsyncSession, attempt: PaymentAttempt, **values):
        for key, value in values.items():
            setattr(attempt, key, value)
        await db.commit()
        await db.refresh(attempt)
        return attempt

    @staticmethod
    async def set_status(db: AsyncSession, attempt_id: str, status: str, failure_reason: str | None = None) -> int:
        result = await db.execute(
            update(PaymentAttempt)
            .where(PaymentAttempt.id == attempt_id)
            .values(status=status, failure_reason=failure_reason)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def mark_reference(db: AsyncSession, reference: str, status: str) -> int:
        result = await db.execute(
            update(PaymentAttempt)
            .where(PaymentAttempt.reference == reference)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount
