'''
Conversation Analytics Test Suite

Test Modules:
-------------
- test_database.py: DSN building, registry memoization, store error translation
- test_record_reader.py: SQL builders, table resolution, pagination
- test_aggregations.py: summary, funnel, quality, heatmap and trends
- test_response_time.py: role parsing, pair walk, outlier window, formatting
- test_listing.py: paginated listings, filter options, history, message stats
- test_comparison.py: month comparison, health check, dashboard fan-out
- test_api.py: HTTP contract and error-to-status mapping

No test touches a real database: conftest.py seeds the registry with a
FakeStoreClient that serves canned rows per table.

Running Tests:
--------------
    pip install -e ".[test]"
    pytest
'''

__all__ = []
