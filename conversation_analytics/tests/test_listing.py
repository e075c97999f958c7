"""
Tests for paginated listings, filter options, history and message stats.
"""

import asyncio
from datetime import datetime

import pytest

from conversation_analytics.models.enums import ConversationStatus
from conversation_analytics.models.schemas import AnalyticsFilter
from conversation_analytics.services.listing import (
    get_conversation_history,
    get_filter_options,
    get_message_stats,
    list_conversations,
    list_recent_messages,
)
from conversation_analytics.tests.conftest import conversation_row, message_row


class TestListConversations:

    @pytest.mark.asyncio
    async def test_page_uses_every_filter_and_store_total(self, tenant_config, reader, fake_store):
        fake_store.rows = {'atendimentos': [conversation_row(datetime(2025, 3, 4, 10), row_id=77)]}
        fake_store.row = {'total': 41}
        filters = AnalyticsFilter(
            start_date='2025-03-01',
            end_date='2025-03-31',
            agent='Sofia',
            status=ConversationStatus.FINALIZED,
            follow_up='follow_up_03',
        )

        result = await list_conversations(tenant_config, filters, page=3, page_size=10, reader=reader)

        assert result.total == 41
        assert result.page == 3
        assert result.page_size == 10
        assert result.items[0].id == '77'
        page_query, page_args = fake_store.queries[0]
        assert '"agente_atual" = $3 AND "atendimento_finalizado" = $4 AND "follow_up" = $5' in page_query
        assert 'ORDER BY "timestamp" DESC' in page_query
        assert page_args[2:] == ('Sofia', True, 'follow_up_03', 10, 20)

    @pytest.mark.asyncio
    async def test_default_page_size_comes_from_settings(self, tenant_config, reader, fake_store, march_filter, settings):
        fake_store.row = {'total': 0}
        result = await list_conversations(tenant_config, march_filter, reader=reader)
        assert result.page_size == settings.default_page_size
        assert result.items == []

    @pytest.mark.asyncio
    async def test_page_size_above_maximum_is_rejected(self, tenant_config, reader, march_filter, settings):
        with pytest.raises(ValueError):
            await list_conversations(tenant_config, march_filter, page_size=settings.max_page_size + 1, reader=reader)


class TestFilterOptions:

    @pytest.mark.asyncio
    async def test_distinct_values_over_whole_table(self, tenant_config, reader, fake_store):
        fake_store.rows = {'atendimentos': [{'value': 'Sofia'}, {'value': 'Lucas'}]}

        options = await get_filter_options(tenant_config, reader=reader)

        assert options.agents == ['Lucas', 'Sofia']
        assert len(fake_store.queries) == 2
        assert all('::timestamp' not in query for query, _ in fake_store.queries)

    @pytest.mark.asyncio
    async def test_agent_and_stage_queries_run_concurrently(self, tenant_config, reader):
        in_flight = {'now': 0, 'peak': 0}

        async def fetch_distinct(stream, column):
            in_flight['now'] += 1
            in_flight['peak'] = max(in_flight['peak'], in_flight['now'])
            await asyncio.sleep(0.01)
            in_flight['now'] -= 1
            return ['Sofia'] if column == 'agent' else ['Follow-up 1']

        reader.fetch_distinct = fetch_distinct

        options = await get_filter_options(tenant_config, reader=reader)

        assert in_flight['peak'] == 2
        assert options.agents == ['Sofia']
        assert options.follow_ups == ['Follow-up 1']


class TestMessages:

    @pytest.mark.asyncio
    async def test_history_filters_by_address_oldest_first(self, tenant_config, reader, fake_store):
        address = '5511977776666@s.whatsapp.net'
        fake_store.rows = {'mensagens': [message_row(address, 'user', datetime(2025, 3, 1, 8))]}

        history = await get_conversation_history(tenant_config, address, reader=reader)

        assert len(history) == 1
        query, args = fake_store.queries[0]
        assert '"remotejid" = $1' in query
        assert query.endswith('ORDER BY "timestamp" ASC')
        assert args == (address,)

    @pytest.mark.asyncio
    async def test_recent_messages_newest_first(self, tenant_config, reader, fake_store, march_filter):
        fake_store.row = {'total': 2}
        result = await list_recent_messages(tenant_config, march_filter, page_size=5, reader=reader)
        assert result.total == 2
        assert 'ORDER BY "timestamp" DESC' in fake_store.queries[0][0]

    @pytest.mark.asyncio
    async def test_message_stats_average(self, tenant_config, reader, fake_store, march_filter):
        fake_store.row = {'total_messages': 10, 'unique_contacts': 3}
        stats = await get_message_stats(tenant_config, march_filter, reader=reader)
        assert stats.total_messages == 10
        assert stats.unique_contacts == 3
        assert stats.avg_messages_per_contact == 3.3

    @pytest.mark.asyncio
    async def test_message_stats_without_contacts(self, tenant_config, reader, fake_store, march_filter):
        fake_store.row = {'total_messages': 0, 'unique_contacts': 0}
        stats = await get_message_stats(tenant_config, march_filter, reader=reader)
        assert stats.avg_messages_per_contact == 0.0
