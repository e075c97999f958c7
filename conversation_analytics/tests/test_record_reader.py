"""
Tests for the SQL query builders and the RecordReader.

Covers:
- Column aliasing, half-open date ranges and placeholder numbering
- Table resolution (tenant override vs system default)
- Pagination through a store-computed COUNT(*)
- Store failures tagged with the failing table
"""

import asyncio
from datetime import date, datetime

import asyncpg
import pytest

from conversation_analytics.core.exceptions import (
    StoreUnavailableError,
    TableNotFoundError,
    TenantConfigurationError,
)
from conversation_analytics.models.enums import ConversationStatus, RecordStream
from conversation_analytics.models.schemas import AnalyticsFilter, TenantConnectionConfig
from conversation_analytics.services.record_reader import RecordFilters, RecordReader, resolve_tables
from conversation_analytics.sql.record_queries import (
    build_where_clause,
    get_count_query,
    get_distinct_values_query,
    get_select_query,
    quote_identifier,
)


# =============================================================================
# Query builders
# =============================================================================

class TestQueryBuilders:

    def test_quote_identifier_handles_schema_and_quotes(self):
        assert quote_identifier('crm.atendimentos') == '"crm"."atendimentos"'
        assert quote_identifier('we"ird') == '"we""ird"'

    @pytest.mark.parametrize('name', ['', 'crm.', '.atendimentos'])
    def test_quote_identifier_rejects_empty_parts(self, name):
        with pytest.raises(ValueError):
            quote_identifier(name)

    def test_where_clause_is_empty_without_filters(self):
        assert build_where_clause(RecordStream.CONVERSATIONS) == ('', [])

    def test_select_aliases_columns_and_numbers_placeholders(self):
        start = datetime(2025, 3, 1)
        end = datetime(2025, 4, 1)
        query, args = get_select_query(
            'atendimentos',
            RecordStream.CONVERSATIONS,
            ['address', 'finalized'],
            start=start,
            end=end,
            equals={'agent': 'Sofia'},
            order_by=[('timestamp', True)],
            limit=20,
            offset=40,
        )
        assert query == (
            'SELECT "remotejid" AS "address", "atendimento_finalizado" AS "finalized" '
            'FROM "atendimentos" '
            'WHERE "timestamp" >= $1::timestamp AND "timestamp" < $2::timestamp AND "agente_atual" = $3 '
            'ORDER BY "timestamp" DESC LIMIT $4 OFFSET $5'
        )
        assert args == [start, end, 'Sofia', 20, 40]

    def test_count_query_shares_the_filters(self):
        query, args = get_count_query(
            'mensagens', RecordStream.MESSAGES, equals={'address': '5511@s.whatsapp.net'}
        )
        assert query == 'SELECT COUNT(*) AS total FROM "mensagens" WHERE "remotejid" = $1'
        assert args == ['5511@s.whatsapp.net']

    def test_unknown_column_is_rejected(self):
        with pytest.raises(ValueError):
            get_select_query('mensagens', RecordStream.MESSAGES, ['agent'])

    def test_distinct_values_excludes_empty(self):
        query = get_distinct_values_query('atendimentos', RecordStream.CONVERSATIONS, 'agent')
        assert 'SELECT DISTINCT "agente_atual" AS value' in query
        assert "IS NOT NULL" in query
        assert query.endswith('ORDER BY value')


# =============================================================================
# Filters and table resolution
# =============================================================================

class TestRecordFilters:

    def test_bounds_are_half_open_whole_days(self):
        filters = RecordFilters(start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))
        assert filters.bounds() == (datetime(2025, 3, 1), datetime(2025, 4, 1))

    def test_from_analytics_maps_status_to_finalized_flag(self):
        filters = RecordFilters.from_analytics(AnalyticsFilter(
            start_date='2025-03-01',
            end_date='2025-03-31',
            agent='Lucas',
            status=ConversationStatus.IN_PROGRESS,
            follow_up='follow_up_02',
        ))
        assert filters.equalities() == {'agent': 'Lucas', 'finalized': False, 'follow_up': 'follow_up_02'}

    def test_status_all_applies_no_flag(self, march_filter):
        assert RecordFilters.from_analytics(march_filter).equalities() == {}

    def test_analytics_filter_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            AnalyticsFilter(start_date='2025-03-31', end_date='2025-03-01')


class TestResolveTables:

    def test_defaults_apply_when_no_override(self, settings, tenant_config):
        tables = resolve_tables(tenant_config, settings)
        assert (tables.conversations, tables.messages) == ('atendimentos', 'mensagens')

    def test_override_takes_precedence(self, settings):
        config = TenantConnectionConfig(
            endpoint='h', database='d', credential='c',
            conversations_table='clinica_atendimentos', messages_table='  ',
        )
        tables = resolve_tables(config, settings)
        assert tables.conversations == 'clinica_atendimentos'
        assert tables.messages == 'mensagens'

    def test_invalid_override_is_a_configuration_error(self, settings):
        config = TenantConnectionConfig(endpoint='h', database='d', credential='c', messages_table='crm.')
        with pytest.raises(TenantConfigurationError) as exc_info:
            resolve_tables(config, settings)
        assert exc_info.value.missing == ['messages_table']

    def test_reader_rejects_incomplete_config_first(self, registry):
        with pytest.raises(TenantConfigurationError) as exc_info:
            RecordReader(TenantConnectionConfig(endpoint='h', messages_table='crm.'), registry=registry)
        assert exc_info.value.missing == ['database', 'credential']


# =============================================================================
# Reader
# =============================================================================

class TestRecordReader:

    @pytest.mark.asyncio
    async def test_fetch_all_uses_override_table(self, settings, registry, fake_store):
        config = TenantConnectionConfig(
            endpoint=fake_store.key[0], database=fake_store.key[1], credential='pw',
            conversations_table='clinica_atendimentos',
        )
        fake_store.rows = {'clinica_atendimentos': [{'agent': 'Sofia'}]}
        reader = RecordReader(config, registry=registry)

        rows = await reader.fetch_all(RecordStream.CONVERSATIONS, columns=['agent'])

        assert rows == [{'agent': 'Sofia'}]
        assert 'FROM "clinica_atendimentos"' in fake_store.queries[0][0]

    @pytest.mark.asyncio
    async def test_fetch_page_issues_count_query(self, reader, fake_store):
        fake_store.rows = {'atendimentos': [{'id': 21}, {'id': 22}]}
        fake_store.row = {'total': 57}

        rows, total = await reader.fetch_page(
            RecordStream.CONVERSATIONS,
            page=2,
            page_size=20,
            filters=RecordFilters(agent='Sofia'),
            order_by=[('timestamp', True)],
        )

        assert total == 57
        assert len(rows) == 2
        page_query, page_args = fake_store.queries[0]
        count_query, count_args = fake_store.queries[1]
        assert page_query.endswith('LIMIT $2 OFFSET $3')
        assert page_args == ('Sofia', 20, 20)
        assert count_query.startswith('SELECT COUNT(*) AS total')
        assert count_args == ('Sofia',)

    @pytest.mark.asyncio
    async def test_page_past_the_end_keeps_total(self, reader, fake_store):
        fake_store.row = {'total': 3}
        rows, total = await reader.fetch_page(RecordStream.CONVERSATIONS, page=9, page_size=20)
        assert rows == []
        assert total == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize('page, page_size', [(0, 20), (1, 0)])
    async def test_fetch_page_rejects_non_positive_paging(self, reader, page, page_size):
        with pytest.raises(ValueError):
            await reader.fetch_page(RecordStream.CONVERSATIONS, page=page, page_size=page_size)

    @pytest.mark.asyncio
    async def test_missing_table_is_tagged_with_its_name(self, reader, fake_store):
        fake_store.errors = {'mensagens': asyncpg.exceptions.UndefinedTableError('relation "mensagens" does not exist')}
        with pytest.raises(TableNotFoundError) as exc_info:
            await reader.fetch_all(RecordStream.MESSAGES)
        assert exc_info.value.table == 'mensagens'

    @pytest.mark.asyncio
    async def test_failed_page_waits_for_count_query(self, reader, fake_store):
        fake_store.errors = {'atendimentos': asyncpg.exceptions.UndefinedTableError('relation "atendimentos" does not exist')}
        count_finished = []

        async def fetchrow(query, *args):
            await asyncio.sleep(0.01)
            count_finished.append(query)
            return {'total': 0}

        fake_store.fetchrow = fetchrow

        with pytest.raises(TableNotFoundError) as exc_info:
            await reader.fetch_page(RecordStream.CONVERSATIONS, page=1, page_size=10)

        assert exc_info.value.table == 'atendimentos'
        assert len(count_finished) == 1

    @pytest.mark.asyncio
    async def test_page_and_count_both_failing_raise_page_error(self, reader, fake_store):
        fake_store.errors = {'atendimentos': ConnectionRefusedError('connection refused')}

        with pytest.raises(StoreUnavailableError) as exc_info:
            await reader.fetch_page(RecordStream.CONVERSATIONS, page=1, page_size=10)

        assert len(fake_store.queries) == 2
        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    @pytest.mark.asyncio
    async def test_unreachable_store_is_unavailable(self, reader, fake_store):
        fake_store.errors = {'atendimentos': ConnectionRefusedError('connection refused')}
        with pytest.raises(StoreUnavailableError):
            await reader.probe(RecordStream.CONVERSATIONS)

    @pytest.mark.asyncio
    async def test_message_counts_default_to_zero(self, reader, fake_store):
        fake_store.row = None
        assert await reader.fetch_message_counts() == {'total_messages': 0, 'unique_contacts': 0}
