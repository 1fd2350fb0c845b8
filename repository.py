# repository.py
from __future__ import annotations

import logging
from typing import List, Set
from datetime import date, time

from sqlalchemy.pool import NullPool
from sqlalchemy import text
from sqlmodel import SQLModel, Field, Session, create_engine, select

from domain import OvertimeResult, OvertimeType, PublicHolidayOption, TimeEntry

logger = logging.getLogger(__name__)


class TimeEntryDB(SQLModel, table=True):
    id: str = Field(primary_key=True)
    work_date: date = Field(index=True)
    clock_in: time
    clock_out: time
    is_public_holiday: bool = False
    public_holiday_option: str = PublicHolidayOption.PAY.value
    ot_type: str
    hours: float
    leave_hours: float | None = None
    meal_allowance: float = 0.0
    ot_pay: float = 0.0
    excess_pay: float = 0.0
    total_pay: float = 0.0
    breakdown: str = ""


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "connect_args": {},
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Serverless PG (Neon/Supabase): no local pool, bounded connect time
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


def _to_row(e: TimeEntry) -> TimeEntryDB:
    r = e.result
    return TimeEntryDB(
        id=e.id,
        work_date=e.date,
        clock_in=e.clock_in,
        clock_out=e.clock_out,
        is_public_holiday=e.is_public_holiday,
        public_holiday_option=e.public_holiday_option.value,
        ot_type=r.type.value,
        hours=r.hours,
        leave_hours=r.leave_hours,
        meal_allowance=r.meal_allowance,
        ot_pay=r.ot_pay,
        excess_pay=r.excess_pay,
        total_pay=r.total_pay,
        breakdown=r.breakdown,
    )


def _from_row(r: TimeEntryDB) -> TimeEntry:
    return TimeEntry(
        id=r.id,
        date=r.work_date,
        clock_in=r.clock_in,
        clock_out=r.clock_out,
        is_public_holiday=r.is_public_holiday,
        public_holiday_option=PublicHolidayOption(r.public_holiday_option),
        result=OvertimeResult(
            type=OvertimeType(r.ot_type),
            hours=r.hours,
            leave_hours=r.leave_hours,
            meal_allowance=r.meal_allowance,
            ot_pay=r.ot_pay,
            excess_pay=r.excess_pay,
            total_pay=r.total_pay,
            breakdown=r.breakdown,
        ),
    )


class TimeEntryRepository:
    """CRUD for classified entries. Stored results are never recomputed."""
    def __init__(self, url: str = "sqlite:///ot_entries.db", echo: bool = False):
        self.url = url
        self.engine = build_engine(url, echo=echo)

        # Postgres must be reachable at startup
        if not url.startswith("sqlite"):
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("select 1"))
            except Exception as e:
                raise RuntimeError(f"Could not connect to Postgres: {e}") from e

        SQLModel.metadata.create_all(self.engine)

    def add(self, e: TimeEntry) -> None:
        if e.result is None:
            raise ValueError(f"Entry for {e.date_str} has no overtime result; both clock times are required")
        with Session(self.engine) as session:
            session.add(_to_row(e))
            session.commit()
        logger.info("Stored entry %s for %s (%s)", e.id, e.date_str, e.result.type.value)

    def add_many(self, entries: List[TimeEntry]) -> int:
        with Session(self.engine) as session:
            for e in entries:
                if e.result is None:
                    raise ValueError(f"Entry for {e.date_str} has no overtime result")
                session.add(_to_row(e))
            session.commit()
        logger.info("Stored %d entries", len(entries))
        return len(entries)

    def get(self, entry_id: str) -> TimeEntry | None:
        with Session(self.engine) as session:
            row = session.get(TimeEntryDB, entry_id)
            return _from_row(row) if row else None

    def list_all(self) -> List[TimeEntry]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(TimeEntryDB).order_by(TimeEntryDB.work_date.desc(), TimeEntryDB.id)
            ).all()
            return [_from_row(r) for r in rows]

    def dates(self) -> Set[date]:
        with Session(self.engine) as session:
            return set(session.exec(select(TimeEntryDB.work_date)).all())

    def exists_on(self, d: date) -> bool:
        with Session(self.engine) as session:
            return session.exec(select(TimeEntryDB.id).where(TimeEntryDB.work_date == d)).first() is not None

    def delete(self, entry_id: str) -> bool:
        with Session(self.engine) as session:
            row = session.get(TimeEntryDB, entry_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted entry %s", entry_id)
        return True

    def clear(self) -> int:
        with Session(self.engine) as session:
            rows = session.exec(select(TimeEntryDB)).all()
            for row in rows:
                session.delete(row)
            session.commit()
            n = len(rows)
        logger.info("Cleared %d entries", n)
        return n


__all__ = ["TimeEntryDB", "TimeEntryRepository", "build_engine"]
