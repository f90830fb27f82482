"""Generic SQLAlchemy database implementation."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar

from sqlalchemy import case, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    ResourceClosedError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session, sessionmaker

from pocketledger.database.base import Database
from pocketledger.database.models import (
    Asset,
    ArchivedTransaction,
    ArchiveSettings,
    Budget,
    Transaction,
    TransactionHistory,
    create_db_engine,
    create_session_factory,
)
from pocketledger.database.mappers import (
    archive_settings_to_domain,
    archived_transaction_to_domain,
    asset_to_domain,
    budget_to_domain,
    history_to_domain,
    search_result_to_domain,
    to_money,
    transaction_to_domain,
)
from pocketledger.domain.entities import (
    Asset as DomainAsset,
    ArchivedTransaction as DomainArchivedTransaction,
    ArchiveSettings as DomainArchiveSettings,
    ArchiveStatistics,
    Budget as DomainBudget,
    BudgetPeriod,
    HistoryAction,
    HistoryRecord,
    SearchResult,
    Transaction as DomainTransaction,
    TransactionSource,
    TransactionType,
)
from pocketledger.domain.errors import (
    ConnectionLostError,
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    archived_transaction_not_found,
    asset_not_found,
    budget_not_found,
    transaction_not_found,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SETTINGS_ROW_ID = 1


def classify_store_error(exc: SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy exception onto the store error taxonomy.

    Lost or closed connections become ConnectionLostError so the caller can
    reconnect; everything else is a plain StoreError.
    """
    if isinstance(exc, (DisconnectionError, ResourceClosedError)):
        return ConnectionLostError(f"Store connection lost: {exc}")
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return ConnectionLostError(f"Store connection lost: {exc}")
    return StoreError(f"Store operation failed: {exc}")


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(self, database_url: str):
        """Initialize SQLAlchemy database.

        The connection is opened by ``connect()``; until then every operation
        raises StoreUnavailableError.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
        """
        self.database_url = database_url
        self.database_path: Optional[str] = None
        self.engine: Optional[Engine] = None
        self.session_factory: Optional[sessionmaker[Session]] = None
        self._session: Optional[Session] = None
        self._atomic_depth = 0

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self.session_factory is None:
            raise StoreUnavailableError("Store is not connected")
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def _commit(self, session: Session) -> None:
        """Commit a single write, or only flush it when inside an atomic unit."""
        try:
            if self._atomic_depth:
                session.flush()
            else:
                session.commit()
        except SQLAlchemyError as exc:
            if self._atomic_depth:
                raise
            self._safe_rollback(session)
            raise classify_store_error(exc) from exc

    def _safe_rollback(self, session: Session) -> None:
        try:
            session.rollback()
        except SQLAlchemyError as exc:
            logger.error("Rollback failed: %s", exc)

    @property
    def is_connected(self) -> bool:
        return self.session_factory is not None

    def connect(self) -> None:
        """Connect to the database and make sure the schema exists."""
        if self.session_factory is not None:
            return
        self.engine = create_db_engine(self.database_url)
        self.session_factory = create_session_factory(self.engine)
        logger.debug("Connected to %s", self.database_url)

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
        self.session_factory = None

    def reconnect(self) -> None:
        """Drop the current connection and open a fresh one."""
        logger.info("Reconnecting to %s", self.database_url)
        self.disconnect()
        try:
            self.connect()
        except SQLAlchemyError as exc:
            logger.error("Failed to reconnect to database: %s", exc)
            raise ConnectionLostError(f"Could not reconnect to store: {exc}") from exc

    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        # Schema is created by create_db_engine on connect
        if not self.is_connected:
            self.connect()

    def run_atomic(self, work: Callable[[], T]) -> T:
        """Run ``work`` as one atomic unit, retrying once after a reconnect."""
        nested = self._atomic_depth > 0
        try:
            return self._run_atomic_once(work)
        except ConnectionLostError:
            if nested:
                raise
            logger.warning("Store connection lost; reconnecting and retrying once")
            self.reconnect()
            return self._run_atomic_once(work)

    def _run_atomic_once(self, work: Callable[[], T]) -> T:
        session = self._get_session()
        if self._atomic_depth:
            # Join the enclosing unit
            return work()

        self._atomic_depth += 1
        try:
            result = work()
            session.commit()
            return result
        except SQLAlchemyError as exc:
            self._safe_rollback(session)
            raise classify_store_error(exc) from exc
        except Exception:
            self._safe_rollback(session)
            raise
        finally:
            self._atomic_depth -= 1

    # Asset operations
    def create_asset(
        self, name: str, amount: Decimal, currency_code: str, image_ref: Optional[str] = None
    ) -> int:
        """Create an asset. Returns asset ID."""
        session = self._get_session()
        asset = Asset(name=name, amount=amount, currency=currency_code, image=image_ref)
        session.add(asset)
        self._commit(session)
        return asset.id

    def get_asset(self, asset_id: int) -> Optional[DomainAsset]:
        """Get asset by ID."""
        session = self._get_session()
        asset = session.query(Asset).filter(Asset.id == asset_id).first()
        if asset is None:
            return None
        return asset_to_domain(asset)

    def get_asset_by_name(self, name: str) -> Optional[DomainAsset]:
        """Get asset by its unique name."""
        session = self._get_session()
        asset = session.query(Asset).filter(Asset.name == name).first()
        if asset is None:
            return None
        return asset_to_domain(asset)

    def list_assets(self) -> list[DomainAsset]:
        """List all assets."""
        session = self._get_session()
        assets = session.query(Asset).order_by(Asset.amount.desc(), Asset.id).all()
        return [asset_to_domain(asset) for asset in assets]

    def update_asset(
        self,
        asset_id: int,
        name: Optional[str] = None,
        amount: Optional[Decimal] = None,
        currency_code: Optional[str] = None,
        image_ref: Optional[str] = None,
    ) -> None:
        """Update asset fields that are not None."""
        session = self._get_session()
        asset = session.query(Asset).filter(Asset.id == asset_id).first()
        if asset is None:
            raise NotFoundError(asset_not_found(asset_id))

        if name is not None:
            asset.name = name
        if amount is not None:
            asset.amount = amount
        if currency_code is not None:
            asset.currency = currency_code
        if image_ref is not None:
            asset.image = image_ref
        self._commit(session)

    def delete_asset(self, asset_id: int) -> None:
        """Delete an asset."""
        session = self._get_session()
        asset = session.query(Asset).filter(Asset.id == asset_id).first()
        if asset is None:
            raise NotFoundError(asset_not_found(asset_id))
        session.delete(asset)
        self._commit(session)

    # Transaction operations
    def create_transaction(
        self,
        type: TransactionType,
        amount: Decimal,
        category: str,
        description: str,
        location: str,
        date: datetime,
    ) -> int:
        """Create a transaction row. Returns transaction ID."""
        session = self._get_session()
        transaction = Transaction(
            type=TransactionType(type).value,
            amount=amount,
            category=category,
            description=description,
            location=location,
            date=date,
        )
        session.add(transaction)
        self._commit(session)
        return transaction.id

    def get_transaction(self, transaction_id: int) -> Optional[DomainTransaction]:
        """Get transaction by ID."""
        session = self._get_session()
        txn = session.query(Transaction).filter(Transaction.id == transaction_id).first()
        if txn is None:
            return None
        return transaction_to_domain(txn)

    def update_transaction(self, transaction: DomainTransaction) -> None:
        """Overwrite every column of an existing transaction row."""
        session = self._get_session()
        txn = session.query(Transaction).filter(Transaction.id == transaction.id).first()
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction.id))

        txn.type = transaction.type.value
        txn.amount = transaction.amount
        txn.category = transaction.category
        txn.description = transaction.description
        txn.location = transaction.location
        txn.date = transaction.date
        self._commit(session)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction row."""
        session = self._get_session()
        txn = session.query(Transaction).filter(Transaction.id == transaction_id).first()
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        session.delete(txn)
        self._commit(session)

    def list_transactions(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        before: Optional[datetime] = None,
    ) -> list[DomainTransaction]:
        """List transactions, newest first."""
        session = self._get_session()
        query = session.query(Transaction)

        if start_date is not None:
            query = query.filter(Transaction.date >= start_date)
        if end_date is not None:
            query = query.filter(Transaction.date <= end_date)
        if before is not None:
            query = query.filter(Transaction.date < before)

        transactions = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()
        return [transaction_to_domain(txn) for txn in transactions]

    def _text_match(self, model, term: str):
        pattern = term.lower()
        return (
            func.lower(model.category).contains(pattern, autoescape=True)
            | func.lower(model.description).contains(pattern, autoescape=True)
            | func.lower(model.location).contains(pattern, autoescape=True)
        )

    def search_transactions(self, term: str) -> list[SearchResult]:
        """Case-insensitive substring search over category, description and location."""
        session = self._get_session()
        rows = (
            session.query(Transaction)
            .filter(self._text_match(Transaction, term))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .all()
        )
        return [search_result_to_domain(row, TransactionSource.ACTIVE) for row in rows]

    # Budget operations
    def create_budget(
        self, category: str, amount: Decimal, period: BudgetPeriod, spent: Decimal = Decimal("0")
    ) -> int:
        """Create a budget. Returns budget ID."""
        session = self._get_session()
        budget = Budget(
            category=category,
            amount=amount,
            period=BudgetPeriod(period).value,
            spent=spent,
        )
        session.add(budget)
        self._commit(session)
        return budget.id

    def get_budget(self, budget_id: int) -> Optional[DomainBudget]:
        """Get budget by ID."""
        session = self._get_session()
        budget = session.query(Budget).filter(Budget.id == budget_id).first()
        if budget is None:
            return None
        return budget_to_domain(budget)

    def list_budgets(
        self, category: Optional[str] = None, period: Optional[BudgetPeriod] = None
    ) -> list[DomainBudget]:
        """List budgets, optionally filtered by category and period."""
        session = self._get_session()
        query = session.query(Budget)
        if category is not None:
            query = query.filter(Budget.category == category)
        if period is not None:
            query = query.filter(Budget.period == BudgetPeriod(period).value)
        budgets = query.order_by(Budget.id).all()
        return [budget_to_domain(budget) for budget in budgets]

    def update_budget(
        self,
        budget_id: int,
        category: Optional[str] = None,
        amount: Optional[Decimal] = None,
        period: Optional[BudgetPeriod] = None,
        spent: Optional[Decimal] = None,
    ) -> None:
        """Update budget fields that are not None."""
        session = self._get_session()
        budget = session.query(Budget).filter(Budget.id == budget_id).first()
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))

        if category is not None:
            budget.category = category
        if amount is not None:
            budget.amount = amount
        if period is not None:
            budget.period = BudgetPeriod(period).value
        if spent is not None:
            budget.spent = spent
        self._commit(session)

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        session = self._get_session()
        budget = session.query(Budget).filter(Budget.id == budget_id).first()
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        session.delete(budget)
        self._commit(session)

    # Archive operations
    def create_archived_transaction(
        self, transaction: DomainTransaction, archived_date: datetime
    ) -> int:
        """Copy a transaction into archived storage. Returns archived ID."""
        session = self._get_session()
        archived = ArchivedTransaction(
            original_id=transaction.id,
            type=transaction.type.value,
            amount=transaction.amount,
            category=transaction.category,
            description=transaction.description,
            location=transaction.location,
            date=transaction.date,
            archived_date=archived_date,
        )
        session.add(archived)
        self._commit(session)
        return archived.id

    def get_archived_transaction(self, archived_id: int) -> Optional[DomainArchivedTransaction]:
        """Get archived transaction by ID."""
        session = self._get_session()
        archived = (
            session.query(ArchivedTransaction).filter(ArchivedTransaction.id == archived_id).first()
        )
        if archived is None:
            return None
        return archived_transaction_to_domain(archived)

    def list_archived_transactions(
        self, limit: Optional[int] = None, offset: int = 0
    ) -> list[DomainArchivedTransaction]:
        """List archived transactions, newest first."""
        session = self._get_session()
        query = session.query(ArchivedTransaction).order_by(
            ArchivedTransaction.date.desc(), ArchivedTransaction.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [archived_transaction_to_domain(row) for row in query.all()]

    def count_archived_transactions(self) -> int:
        """Count archived transactions."""
        session = self._get_session()
        return session.query(ArchivedTransaction).count()

    def delete_archived_transaction(self, archived_id: int) -> None:
        """Delete an archived transaction."""
        session = self._get_session()
        archived = (
            session.query(ArchivedTransaction).filter(ArchivedTransaction.id == archived_id).first()
        )
        if archived is None:
            raise NotFoundError(archived_transaction_not_found(archived_id))
        session.delete(archived)
        self._commit(session)

    def search_archived_transactions(self, term: str) -> list[SearchResult]:
        """Case-insensitive substring search over archived transactions."""
        session = self._get_session()
        rows = (
            session.query(ArchivedTransaction)
            .filter(self._text_match(ArchivedTransaction, term))
            .order_by(ArchivedTransaction.date.desc(), ArchivedTransaction.id.desc())
            .all()
        )
        return [search_result_to_domain(row, TransactionSource.ARCHIVED) for row in rows]

    def get_archive_statistics(self) -> ArchiveStatistics:
        """Aggregate count, date range and income/expense sums of the archive."""
        session = self._get_session()
        income = case(
            (ArchivedTransaction.type == TransactionType.INCOME.value, ArchivedTransaction.amount),
            else_=0,
        )
        expense = case(
            (ArchivedTransaction.type == TransactionType.EXPENSE.value, ArchivedTransaction.amount),
            else_=0,
        )
        total, oldest, newest, total_income, total_expenses = session.query(
            func.count(ArchivedTransaction.id),
            func.min(ArchivedTransaction.date),
            func.max(ArchivedTransaction.date),
            func.sum(income),
            func.sum(expense),
        ).one()
        return ArchiveStatistics(
            total_archived=total or 0,
            oldest_date=oldest,
            newest_date=newest,
            total_income=to_money(total_income),
            total_expenses=to_money(total_expenses),
        )

    def get_archive_settings(self) -> Optional[DomainArchiveSettings]:
        """Get the persisted archive settings row, if any."""
        session = self._get_session()
        row = session.query(ArchiveSettings).filter(ArchiveSettings.id == SETTINGS_ROW_ID).first()
        return archive_settings_to_domain(row)

    def save_archive_settings(self, settings: DomainArchiveSettings) -> None:
        """Insert or replace the archive settings row."""
        session = self._get_session()
        row = session.query(ArchiveSettings).filter(ArchiveSettings.id == SETTINGS_ROW_ID).first()
        if row is None:
            row = ArchiveSettings(id=SETTINGS_ROW_ID)
            session.add(row)
        row.auto_archive = settings.auto_archive
        row.archive_after_months = settings.archive_after_months
        row.keep_recent_months = settings.keep_recent_months
        self._commit(session)

    # History operations
    def add_history_record(
        self,
        transaction_id: Optional[int],
        action: HistoryAction,
        timestamp: datetime,
        data: str,
    ) -> int:
        """Append an audit record. Returns record ID."""
        session = self._get_session()
        record = TransactionHistory(
            transaction_id=transaction_id,
            action=HistoryAction(action).value,
            timestamp=timestamp,
            data=data,
        )
        session.add(record)
        self._commit(session)
        return record.id

    def get_history_record(self, record_id: int) -> Optional[HistoryRecord]:
        """Get audit record by ID."""
        session = self._get_session()
        record = session.query(TransactionHistory).filter(TransactionHistory.id == record_id).first()
        if record is None:
            return None
        return history_to_domain(record)

    def list_history(self, limit: Optional[int] = None) -> list[HistoryRecord]:
        """List audit records, newest first."""
        session = self._get_session()
        query = session.query(TransactionHistory).order_by(
            TransactionHistory.timestamp.desc(), TransactionHistory.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [history_to_domain(record) for record in query.all()]

    def prune_history(
        self, keep_latest: Optional[int] = None, older_than: Optional[datetime] = None
    ) -> int:
        """Delete audit records beyond ``keep_latest`` or older than ``older_than``."""
        session = self._get_session()
        removed = 0

        if older_than is not None:
            removed += (
                session.query(TransactionHistory)
                .filter(TransactionHistory.timestamp < older_than)
                .delete(synchronize_session=False)
            )

        if keep_latest is not None:
            stale_ids = [
                row.id
                for row in session.query(TransactionHistory.id)
                .order_by(TransactionHistory.timestamp.desc(), TransactionHistory.id.desc())
                .offset(keep_latest)
                .all()
            ]
            if stale_ids:
                removed += (
                    session.query(TransactionHistory)
                    .filter(TransactionHistory.id.in_(stale_ids))
                    .delete(synchronize_session=False)
                )

        self._commit(session)
        return removed

    # Bulk operations
    def clear_all(self) -> None:
        """Delete every asset, transaction and budget."""
        session = self._get_session()
        session.query(Transaction).delete(synchronize_session=False)
        session.query(Budget).delete(synchronize_session=False)
        session.query(Asset).delete(synchronize_session=False)
        self._commit(session)
