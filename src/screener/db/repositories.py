from __future__ import annotations

from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from screener.db.models import HistoryRecordRow, PositionRow, UserRow


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def list_users(self) -> list[UserRow]:
        statement = select(UserRow).order_by(UserRow.created_at.desc())
        return list(self.session.scalars(statement).all())

    def create_user(self, **values: Any) -> UserRow:
        row = UserRow(**values)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete_user(self, user_id: str) -> None:
        self.session.execute(delete(UserRow).where(UserRow.id == user_id))
        self.session.commit()

    def list_positions(self) -> list[PositionRow]:
        statement = select(PositionRow).order_by(PositionRow.created_at.desc())
        return list(self.session.scalars(statement).all())

    def create_position(self, **values: Any) -> PositionRow:
        row = PositionRow(**values)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def update_position(self, position_id: str, *, name: str, job_description: str | None) -> None:
        self.session.execute(
            update(PositionRow)
            .where(PositionRow.id == position_id)
            .values(name=name, job_description=job_description)
        )
        self.session.commit()

    def delete_position(self, position_id: str) -> None:
        self.session.execute(delete(PositionRow).where(PositionRow.id == position_id))
        self.session.commit()

    def list_history(self, limit: int = 50) -> list[HistoryRecordRow]:
        statement = select(HistoryRecordRow).order_by(HistoryRecordRow.timestamp.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def create_history(self, **values: Any) -> HistoryRecordRow:
        row = HistoryRecordRow(**values)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def assign_history(self, record_id: str, assigned_to: str | None) -> None:
        self.session.execute(
            update(HistoryRecordRow)
            .where(HistoryRecordRow.id == record_id)
            .values(assigned_to=assigned_to)
        )
        self.session.commit()

    def delete_history(self, record_id: str) -> None:
        self.session.execute(delete(HistoryRecordRow).where(HistoryRecordRow.id == record_id))
        self.session.commit()

    def snapshot_created_at(self) -> dict[str, list[dict[str, Any]]]:
        users = self.session.execute(select(UserRow.id, UserRow.username, UserRow.created_at)).all()
        positions = self.session.execute(
            select(PositionRow.id, PositionRow.name, PositionRow.created_at)
        ).all()
        return {
            "users": [
                {
                    "id": row.id,
                    "username": row.username,
                    "created_at": row.created_at,
                    "status": _date_status(row.created_at),
                }
                for row in users
            ],
            "positions": [
                {
                    "id": row.id,
                    "name": row.name,
                    "created_at": row.created_at,
                    "status": _date_status(row.created_at),
                }
                for row in positions
            ],
        }

    def repair_created_at(self, timestamp: int) -> None:
        """Backfill created_at where it is NULL or 0."""
        for model in (UserRow, PositionRow):
            self.session.execute(
                update(model)
                .where(or_(model.created_at.is_(None), model.created_at == 0))
                .values(created_at=timestamp)
            )
        self.session.commit()


def _date_status(value: int | None) -> str:
    if value is None:
        return "NULL"
    if value == 0:
        return "ZERO"
    return "OK"
