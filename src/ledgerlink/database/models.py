"""SQLAlchemy models for ledgerlink database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Ledger account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    type = Column(String, nullable=False, default="asset")
    unit = Column(String, nullable=False, default="USD")
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    parent = relationship("Account", remote_side=[id], backref="children")


class Transaction(Base):
    """Transaction model. Entry lines and applied rules are child rows."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    is_balanced = Column(Boolean, default=False, nullable=False, index=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Optimistic concurrency: UPDATEs are issued with "WHERE version = ?".
    # The version is assigned by save_transaction so that changes to child
    # rows (entries, applied rules) bump it as well.
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    # Relationships
    entries = relationship(
        "EntryLine",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="EntryLine.position",
    )
    applied_rules = relationship(
        "AppliedRule",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="AppliedRule.applied_at",
    )


class EntryLine(Base):
    """Entry line model."""

    __tablename__ = "entry_lines"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    amount = Column(Numeric(18, 4), nullable=False)
    type = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="USD")
    quantity = Column(Numeric(18, 8), nullable=True)
    description = Column(String, nullable=True)

    # Relationships
    transaction = relationship("Transaction", back_populates="entries")
    account = relationship("Account")


class AppliedRule(Base):
    """Join table recording which rules have mutated which transactions."""

    __tablename__ = "applied_rules"

    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), primary_key=True
    )
    rule_id = Column(Integer, primary_key=True)
    applied_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transaction = relationship("Transaction", back_populates="applied_rules")


class Rule(Base):
    """Rule model."""

    __tablename__ = "rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    pattern = Column(String, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    auto_apply = Column(Boolean, default=True, nullable=False)
    entry_type = Column(String, default="both", nullable=False)
    description = Column(String, nullable=True)
    new_description = Column(String, nullable=True)
    max_date_difference = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    source_accounts = relationship(
        "RuleSourceAccount",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleSourceAccount.account_id",
    )
    destination_accounts = relationship(
        "RuleDestination",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleDestination.position",
    )


class RuleSourceAccount(Base):
    """Source account filter of a rule."""

    __tablename__ = "rule_source_accounts"

    rule_id = Column(Integer, ForeignKey("rules.id", ondelete="CASCADE"), primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), primary_key=True)

    # Relationships
    rule = relationship("Rule", back_populates="source_accounts")


class RuleDestination(Base):
    """Destination account and ratio of a complementary rule."""

    __tablename__ = "rule_destinations"

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, ForeignKey("rules.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    ratio = Column(Numeric(10, 4), nullable=False)

    # Relationships
    rule = relationship("Rule", back_populates="destination_accounts")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
