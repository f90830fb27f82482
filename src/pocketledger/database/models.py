"""SQLAlchemy models for pocketledger database."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)


class Asset(Base):
    """Asset model. ``name`` is the lookup key transactions refer to."""

    __tablename__ = "assets"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    amount = Column(MONEY, nullable=False, default=0)
    currency = Column(String, nullable=False)
    image = Column(String, nullable=True)


class Transaction(Base):
    """Active transaction model. IDs are never reused once handed out."""

    __tablename__ = "transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    type = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    category = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)


class Budget(Base):
    """Budget model."""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True)
    category = Column(String, nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    period = Column(String, nullable=False)
    spent = Column(MONEY, nullable=False, default=0)


class ArchivedTransaction(Base):
    """Archived transaction model."""

    __tablename__ = "archived_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    original_id = Column(Integer, nullable=True)
    type = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    category = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)
    archived_date = Column(DateTime, nullable=False)


class ArchiveSettings(Base):
    """Single-row archive policy table (id is always 1)."""

    __tablename__ = "archive_settings"

    id = Column(Integer, primary_key=True)
    auto_archive = Column(Boolean, nullable=False, default=True)
    archive_after_months = Column(Integer, nullable=False)
    keep_recent_months = Column(Integer, nullable=False)


class TransactionHistory(Base):
    """Audit log of deletes and restores."""

    __tablename__ = "transaction_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, nullable=True)
    action = Column(String, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    data = Column(Text, nullable=False)


def create_db_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine and make sure all tables exist."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory bound to an engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)
