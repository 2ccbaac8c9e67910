"""Record store layer -- typed CRUD over contacts, deals, tasks, activities and quotes.

Provides the abstract RecordStore interface with concrete backends:
- InMemoryRecordStore: Local mock array for tests and demos
- SqlRecordStore: SQLAlchemy async ORM (PostgreSQL in production)
- RemoteTableRecordStore: Hosted table API over httpx with retry

All backends raise the same RecordStoreError taxonomy.
"""

from src.crm.records.errors import (
    RecordNotFoundError,
    RecordStoreError,
    RecordStoreUnavailableError,
    RecordValidationError,
)
from src.crm.records.memory import InMemoryRecordStore
from src.crm.records.remote import RemoteTableRecordStore
from src.crm.records.schemas import EntityKind
from src.crm.records.sql import SqlRecordStore
from src.crm.records.store import RecordStore

__all__ = [
    "EntityKind",
    "RecordStore",
    "InMemoryRecordStore",
    "SqlRecordStore",
    "RemoteTableRecordStore",
    "RecordStoreError",
    "RecordNotFoundError",
    "RecordValidationError",
    "RecordStoreUnavailableError",
]
