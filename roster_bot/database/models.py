import json
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Column, Integer, String, DateTime, Float, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

_DATETIME_TAG = '__datetime__'


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {key: _encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    return value


def _decode_hook(obj: dict) -> Any:
    if len(obj) == 1 and _DATETIME_TAG in obj:
        return datetime.fromisoformat(obj[_DATETIME_TAG])
    return obj


class JSONDocument(TypeDecorator):
    """
    Schemaless document column.

    Stored as JSON text; datetime values survive the round trip as tagged
    ISO-8601 strings.
    """
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(_encode_value(value), ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return json.loads(value, object_hook=_decode_hook)


class PlayerDocument(Base):
    """Roster document for one player, keyed by the game's player ID."""
    __tablename__ = 'player_documents'

    id = Column(Integer, primary_key=True)
    app_id = Column(String(100), nullable=False)
    owner_id = Column(String(100), nullable=False)
    player_id = Column(String(64), nullable=False)

    data = Column(JSONDocument, nullable=False, default=dict)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint('app_id', 'owner_id', 'player_id'),)

    def __repr__(self):
        return f"<PlayerDocument(player_id='{self.player_id}', owner='{self.owner_id}')>"


class PlayerHistoryEntry(Base):
    """Append-only snapshot of a player document taken before a change."""
    __tablename__ = 'player_history'

    id = Column(Integer, primary_key=True)
    app_id = Column(String(100), nullable=False)
    owner_id = Column(String(100), nullable=False)
    player_id = Column(String(64), nullable=False)

    data = Column(JSONDocument, nullable=False)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        Index('ix_player_history_scope_player', 'app_id', 'owner_id', 'player_id'),
    )

    def __repr__(self):
        return f"<PlayerHistoryEntry(player_id='{self.player_id}', id={self.id})>"


class ScreenshotPlayer(Base):
    """Stats tracked from screenshot analysis, keyed by normalized player name."""
    __tablename__ = 'screenshot_players'

    id = Column(Integer, primary_key=True)
    app_id = Column(String(100), nullable=False)
    player_key = Column(String(100), nullable=False)
    player_name = Column(String(200), nullable=False)

    initial_might = Column(Float, nullable=False, default=0)
    initial_kills = Column(Float, nullable=False, default=0)
    current_might = Column(Float, nullable=False, default=0)
    current_kills = Column(Float, nullable=False, default=0)
    might_gain = Column(Float, nullable=False, default=0)
    kills_gain = Column(Float, nullable=False, default=0)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    last_updated = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint('app_id', 'player_key'),)

    def __repr__(self):
        return f"<ScreenshotPlayer(key='{self.player_key}', might={self.current_might})>"
