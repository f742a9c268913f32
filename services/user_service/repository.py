from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import User

class UserRepository:
    @staticmethod
    async def exists(db: AsyncSession, user_id: str) -> bool:
        result = await db.execute(select(User.id).where(User.id == user_id))
        return result.first() is not None
