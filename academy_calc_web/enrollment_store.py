"""Persistence layer for submitted enrollments and batches.

This module keeps what leaves the enrollment and batch forms: the enrollment
submission payload (EMI installments included) and the batch with its
computed end date. It defaults to SQLite for local development, but accepts
any SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class EnrollmentModel(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_name = Column(String(255), nullable=False, default="")
    softwares_included = Column(Text, nullable=False, default="")
    total_deal = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    booking_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    balance_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    emi_plan = Column(Boolean, nullable=False, default=False)
    emi_plan_date = Column(Date, nullable=True)
    emi_installments_json = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class BatchModel(Base):
    __tablename__ = "batches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    software = Column(Text, nullable=False)
    schedule_json = Column(Text, nullable=False, default="{}")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class EnrollmentStore:
    """Database-backed store for enrollments and batches."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def add_enrollment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Store a submission payload and return it with its new id."""
        plan_date = payload.get("emiPlanDate")
        row = EnrollmentModel(
            student_name=payload.get("studentName", ""),
            softwares_included=payload.get("softwaresIncluded", ""),
            total_deal=payload["totalDeal"],
            booking_amount=payload["bookingAmount"],
            balance_amount=payload["balanceAmount"],
            emi_plan=bool(payload.get("emiPlan")),
            emi_plan_date=date.fromisoformat(plan_date) if plan_date else None,
            emi_installments_json=json.dumps(payload.get("emiInstallments") or []),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        logger.info("Stored enrollment %s for %r", row.id, row.student_name)
        return self._enrollment_to_dict(row)

    def get_enrollment(self, enrollment_id: int) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(EnrollmentModel, enrollment_id)
            return self._enrollment_to_dict(row) if row else None

    def list_enrollments(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows: Iterable[EnrollmentModel] = session.execute(
                select(EnrollmentModel).order_by(EnrollmentModel.created_at.asc(), EnrollmentModel.id.asc())
            ).scalars()
            return [self._enrollment_to_dict(row) for row in rows]

    def remove_enrollment(self, enrollment_id: int) -> bool:
        with self._session_factory() as session:
            row = session.get(EnrollmentModel, enrollment_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        return True

    def add_batch(
        self,
        title: str,
        software: str,
        schedule: Dict[str, Any],
        start_date: date,
        end_date: Optional[date],
    ) -> Dict[str, Any]:
        row = BatchModel(
            title=title,
            software=software,
            schedule_json=json.dumps(schedule or {}),
            start_date=start_date,
            end_date=end_date,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        logger.info("Stored batch %s (%s to %s)", row.id, start_date, end_date)
        return self._batch_to_dict(row)

    def get_batch(self, batch_id: int) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(BatchModel, batch_id)
            return self._batch_to_dict(row) if row else None

    def list_batches(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(BatchModel).order_by(BatchModel.start_date.asc(), BatchModel.id.asc())
            ).scalars()
            return [self._batch_to_dict(row) for row in rows]

    @staticmethod
    def _enrollment_to_dict(row: EnrollmentModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "studentName": row.student_name,
            "softwaresIncluded": row.softwares_included,
            "totalDeal": float(row.total_deal),
            "bookingAmount": float(row.booking_amount),
            "balanceAmount": float(row.balance_amount),
            "emiPlan": row.emi_plan,
            "emiPlanDate": row.emi_plan_date.isoformat() if row.emi_plan_date else None,
            "emiInstallments": json.loads(row.emi_installments_json),
            "createdAt": row.created_at.isoformat(),
        }

    @staticmethod
    def _batch_to_dict(row: BatchModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "title": row.title,
            "software": row.software,
            "schedule": json.loads(row.schedule_json),
            "startDate": row.start_date.isoformat(),
            "endDate": row.end_date.isoformat() if row.end_date else None,
            "createdAt": row.created_at.isoformat(),
        }


def create_store_from_env(url: str | None) -> EnrollmentStore:
    return EnrollmentStore(url or "sqlite:///academy_data.sqlite3")
