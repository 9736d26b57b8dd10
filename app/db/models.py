"""Database models."""
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Account(Base):
    """Money account (cash, bank, card, mobile banking)."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, default="cash", nullable=False)  # cash, bank, card, mobile_banking, other
    balance = Column(Numeric(14, 2), default=0, nullable=False)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="account")


class Transaction(Base):
    """Income or expense record."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=True)
    type = Column(String, nullable=False)  # income, expense
    amount = Column(Numeric(14, 2), nullable=False)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")
