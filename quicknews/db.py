"""SQLAlchemy-backed ledger store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .errors import LedgerWriteError
from .ledger import summarize_ledger
from .models import ClickSummary, Ledger

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ClickCountModel(Base):
    """One counter of the click ledger."""

    __tablename__ = "click_counts"

    date = Column(String(10), primary_key=True)
    tracking_id = Column(String, primary_key=True)
    count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


def init_engine(connection_string: Optional[str]) -> Optional[Engine]:
    """Initialize the database engine."""
    if not connection_string:
        return None

    logger.info("Initializing database connection: %s", connection_string)
    engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


class SqlLedgerStore:
    """Ledger store with the same contract as ``LedgerStore``.

    Each increment runs inside a single transaction, so concurrent writers do
    not lose updates on databases with row locking.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def read(self) -> Ledger:
        ledger: Ledger = {}
        try:
            with self._session_factory() as session:
                rows = session.execute(select(ClickCountModel)).scalars().all()
                for row in rows:
                    ledger.setdefault(row.date, {})[row.tracking_id] = row.count
        except SQLAlchemyError as exc:
            logger.warning("Unable to read ledger from database: %s", exc)
            return {}
        return ledger

    def write(self, ledger: Ledger) -> None:
        with self._session_factory() as session:
            try:
                session.execute(delete(ClickCountModel))
                for date_key, counters in ledger.items():
                    for tracking_id, count in counters.items():
                        session.add(
                            ClickCountModel(
                                date=date_key, tracking_id=tracking_id, count=count
                            )
                        )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise LedgerWriteError(f"Failed to write ledger: {exc}") from exc

    def increment(self, date_key: str, tracking_id: str) -> int:
        return self._update(date_key, tracking_id, 1)

    def ensure(self, date_key: str, tracking_id: str) -> int:
        return self._update(date_key, tracking_id, 0)

    def summarize(self, date_key: str) -> ClickSummary:
        return summarize_ledger(self.read(), date_key)

    def _update(self, date_key: str, tracking_id: str, delta: int) -> int:
        with self._session_factory() as session:
            try:
                stmt = (
                    select(ClickCountModel)
                    .where(
                        ClickCountModel.date == date_key,
                        ClickCountModel.tracking_id == tracking_id,
                    )
                    .with_for_update()
                )
                existing = session.execute(stmt).scalar_one_or_none()
                if existing:
                    existing.count = existing.count + delta
                    if delta:
                        existing.updated_at = datetime.now(timezone.utc)
                    count = existing.count
                else:
                    session.add(
                        ClickCountModel(
                            date=date_key,
                            tracking_id=tracking_id,
                            count=delta,
                            updated_at=datetime.now(timezone.utc),
                        )
                    )
                    count = delta
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise LedgerWriteError(
                    f"Failed to update counter {date_key}/{tracking_id}: {exc}"
                ) from exc
        return count
