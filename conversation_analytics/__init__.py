"""
Conversation Analytics Package.

Multi-tenant analytics engine over customer-service conversation logs kept in
each tenant's own Postgres store. Computes engagement summaries, weekday x
hour heatmaps, trends, follow-up funnels, per-agent quality, paginated
listings and estimated AI response times.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, tenant connection registry, exceptions, dependencies
    - models: Pydantic schemas and enums
    - services: Record reader and aggregators
    - sql: Parameterized SQL query builders
"""

__version__ = "1.0.0"
