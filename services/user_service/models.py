from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from shared.config.database import Base


class User(Base):
    """Mirror of the identity provider's user record.

    Rows are provisioned by the identity system; this service only reads them
    to attach customer and seller names to order projections.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(16), nullable=False, default="USER") # USER, SELLER, ADMIN
    created_at = Column(DateTime(timezone=True), server_default=func.now())
