"""
Pytest configuration and shared fixtures for conversation analytics tests.

Provides:
- Settings built without reading any .env file
- A tenant connection config and a registry pre-seeded with a fake store client
- FakeStoreClient: records issued queries and serves canned rows per table
- A mock asyncpg pool for TenantStoreClient tests
- Sample conversation and message rows in the logical column shape the SQL
  layer returns

Dependencies:
- pytest
- pytest-asyncio
"""

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from conversation_analytics.core.config import Settings
from conversation_analytics.core.database import TenantClientRegistry
from conversation_analytics.models.schemas import AnalyticsFilter, TenantConnectionConfig
from conversation_analytics.services.record_reader import RecordReader


# ============================================================
# FAKE STORE CLIENT
# ============================================================

class FakeStoreClient:
    """
    Stand-in for TenantStoreClient.

    Rows are served by physical table name, matched against the quoted table
    in the query text. An exception registered for a table is raised instead.

    Attributes:
        queries: Every (query, args) pair received, in call order.
    """

    def __init__(
        self,
        rows: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        row: Optional[Dict[str, Any]] = None,
        errors: Optional[Dict[str, BaseException]] = None,
        key: Tuple[str, str] = ('db.tenant-a.supabase.co', 'postgres'),
    ):
        self.rows = rows or {}
        self.row = row
        self.errors = errors or {}
        self.key = key
        self.queries: List[Tuple[str, tuple]] = []

    def _table(self, query: str) -> Optional[str]:
        for table in set(self.rows) | set(self.errors):
            if f'FROM "{table}"' in query:
                return table
        return None

    def _check(self, query: str, args: tuple) -> Optional[str]:
        self.queries.append((query, args))
        table = self._table(query)
        if table in self.errors:
            raise self.errors[table]
        return table

    async def fetch(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        table = self._check(query, args)
        return list(self.rows.get(table, []))

    async def fetchrow(self, query: str, *args: Any) -> Optional[Dict[str, Any]]:
        self._check(query, args)
        return self.row


# ============================================================
# CONFIGURATION FIXTURES
# ============================================================

@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def tenant_config() -> TenantConnectionConfig:
    return TenantConnectionConfig(
        endpoint='db.tenant-a.supabase.co',
        database='postgres',
        credential='s3cret',
    )


@pytest.fixture
def march_filter() -> AnalyticsFilter:
    return AnalyticsFilter(start_date='2025-03-01', end_date='2025-03-31')


# ============================================================
# STORE FIXTURES
# ============================================================

@pytest.fixture
def fake_store() -> FakeStoreClient:
    return FakeStoreClient()


@pytest.fixture
def registry(settings: Settings, tenant_config: TenantConnectionConfig, fake_store: FakeStoreClient) -> TenantClientRegistry:
    """Registry whose client for tenant_config is fake_store."""
    registry = TenantClientRegistry(settings=settings)
    key = (tenant_config.endpoint, tenant_config.database)
    fake_store.key = key
    registry._clients[key] = fake_store
    return registry


@pytest.fixture
def reader(tenant_config: TenantConnectionConfig, registry: TenantClientRegistry) -> RecordReader:
    return RecordReader(tenant_config, registry=registry)


@pytest.fixture
def mock_db_pool() -> AsyncMock:
    """
    Mock asyncpg pool whose acquire() yields a mock connection.

    Usage:
        mock_db_pool.acquire.return_value.__aenter__.return_value.fetch.return_value = [...]
    """
    pool = AsyncMock()

    conn = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)

    acquire_context = AsyncMock()
    acquire_context.__aenter__ = AsyncMock(return_value=conn)
    acquire_context.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = Mock(return_value=acquire_context)
    pool.close = AsyncMock(return_value=None)

    return pool


# ============================================================
# SAMPLE DATA
# ============================================================

def conversation_row(
    ts: datetime,
    agent: Optional[str] = 'Sofia',
    finalized: Optional[bool] = False,
    follow_up: Optional[str] = None,
    address: str = '5511999990000@s.whatsapp.net',
    row_id: int = 1,
) -> Dict[str, Any]:
    return {
        'id': row_id,
        'address': address,
        'display_name': 'Cliente',
        'timestamp': ts,
        'agent': agent,
        'finalized': finalized,
        'follow_up': follow_up,
    }


def message_row(
    address: str,
    role: Optional[str],
    ts: datetime,
    payload: Optional[str] = None,
    row_id: int = 1,
) -> Dict[str, Any]:
    """Message row whose payload carries `role`, unless a raw payload is given."""
    if payload is None:
        payload = json.dumps({'role': role, 'parts': [{'text': 'ola'}]})
    return {'id': row_id, 'address': address, 'payload': payload, 'timestamp': ts}


@pytest.fixture
def sample_conversations() -> List[Dict[str, Any]]:
    """
    Ten conversations across March 2025.

    - 4 finalized, 5 in progress, 1 with a NULL finalized flag
    - agents: Sofia x5, Lucas x3, unassigned x2
    - stages: none x4, 01 x2, 02 x2, 03 x1, 04 x1
    """
    base = datetime(2025, 3, 2, 9, 0)  # Sunday
    specs = [
        ('Sofia', True, 'follow_up_01'),
        ('Sofia', True, None),
        ('Lucas', False, 'follow_up_02'),
        ('Sofia', False, None),
        (None, False, 'follow_up_03'),
        ('Lucas', True, 'follow_up_04'),
        ('Sofia', False, 'follow_up_01'),
        (None, None, None),
        ('Lucas', False, 'follow_up_02'),
        ('Sofia', True, None),
    ]
    return [
        conversation_row(base + timedelta(days=i, hours=i), agent, finalized, stage, row_id=i + 1)
        for i, (agent, finalized, stage) in enumerate(specs)
    ]
