"""Persistence layer for calculation history and presets.

The engine never stores anything; this module keeps what the web front end
wants to remember per user: the most recent calculations (request plus
serialized result, so they can be shown or replayed) and named presets of
form inputs. It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

PRESET_FIELDS = ("principal", "interest_type", "apply_type", "tiers")


class HistoryEntryModel(Base):
    __tablename__ = "calculation_history"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    request_json = Column(Text, nullable=False)
    result_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # Insertion order; created_at alone can tie within one clock tick.
    sequence = Column(Integer, nullable=False, default=0)


class PresetModel(Base):
    __tablename__ = "calculation_presets"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    preset_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class HistoryStore:
    """Database-backed history and preset store."""

    def __init__(self, url: str, *, max_per_user: int = 20) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    # History

    def list_entries(self, user_token: str) -> List[Dict[str, Any]]:
        """Return the user's history, newest first."""
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[HistoryEntryModel] = session.execute(
                select(HistoryEntryModel)
                .where(HistoryEntryModel.user_token == user_token)
                .order_by(HistoryEntryModel.sequence.desc())
            ).scalars()
            return [self._entry_to_dict(row) for row in rows]

    def get_entry(self, user_token: str, entry_id: str) -> Optional[Dict[str, Any]]:
        if not user_token or not entry_id:
            return None
        with self._session_factory() as session:
            row = session.get(HistoryEntryModel, entry_id)
            if row is None or row.user_token != user_token:
                return None
            return self._entry_to_dict(row)

    def add_entry(self, user_token: str, request: dict, result: dict) -> Optional[str]:
        """Store a calculation and return its id."""
        if not user_token:
            return None
        entry_id = uuid4().hex
        with self._session_factory() as session:
            last = session.execute(
                select(HistoryEntryModel.sequence)
                .where(HistoryEntryModel.user_token == user_token)
                .order_by(HistoryEntryModel.sequence.desc())
                .limit(1)
            ).scalar()
            session.add(
                HistoryEntryModel(
                    id=entry_id,
                    user_token=user_token,
                    request_json=json.dumps(request),
                    result_json=json.dumps(result),
                    sequence=(last or 0) + 1,
                )
            )
            session.commit()
        self._trim_user(user_token)
        return entry_id

    def remove_entry(self, user_token: str, entry_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = session.get(HistoryEntryModel, entry_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()

    def clear_entries(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                HistoryEntryModel.__table__.delete().where(
                    HistoryEntryModel.user_token == user_token
                )
            )
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(HistoryEntryModel)
                .where(HistoryEntryModel.user_token == user_token)
                .order_by(HistoryEntryModel.sequence.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    # Presets

    def list_presets(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(PresetModel)
                .where(PresetModel.user_token == user_token)
                .order_by(PresetModel.name.asc())
            ).scalars()
            return [self._preset_to_dict(row) for row in rows]

    def get_preset(self, user_token: str, preset_id: str) -> Optional[Dict[str, Any]]:
        if not user_token or not preset_id:
            return None
        with self._session_factory() as session:
            row = session.get(PresetModel, preset_id)
            if row is None or row.user_token != user_token:
                return None
            return self._preset_to_dict(row)

    def add_preset(self, user_token: str, name: str, values: dict) -> Optional[str]:
        """Save the form inputs worth reusing under ``name``.

        Dates are not part of a preset; only the fields in ``PRESET_FIELDS``
        are kept.
        """
        if not user_token:
            return None
        preset_id = uuid4().hex
        payload = {key: values.get(key) for key in PRESET_FIELDS}
        with self._session_factory() as session:
            session.add(
                PresetModel(
                    id=preset_id,
                    user_token=user_token,
                    name=name,
                    preset_json=json.dumps(payload),
                )
            )
            session.commit()
        return preset_id

    def remove_preset(self, user_token: str, preset_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = session.get(PresetModel, preset_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()

    @staticmethod
    def _entry_to_dict(row: HistoryEntryModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "request": json.loads(row.request_json),
            "result": json.loads(row.result_json),
            "created_at": row.created_at.isoformat(),
        }

    @staticmethod
    def _preset_to_dict(row: PresetModel) -> Dict[str, Any]:
        data = json.loads(row.preset_json)
        data.update({"id": row.id, "name": row.name, "created_at": row.created_at.isoformat()})
        return data


def create_store_from_env(url: str | None, max_per_user: int = 20) -> HistoryStore:
    return HistoryStore(url or "sqlite:///deposit_history.sqlite3", max_per_user=max_per_user)
