"""Persistence layer for mint records."""
from .base import Base, build_session_factory, create_engine_from_settings, session_scope
from .mint_record import MintRecord
from .repository import MintRecordRepository
from .store import MintStore

__all__ = [
    "Base",
    "MintRecord",
    "MintRecordRepository",
    "MintStore",
    "build_session_factory",
    "create_engine_from_settings",
    "session_scope",
]
