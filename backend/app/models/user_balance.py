from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class UserBalance(Base):
    __tablename__ = "user_balances"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_user_balances_balance_non_negative"),)

    user_id = Column(String, primary_key=True)
    balance = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
