"""
Settings and environment management module for the conversation analytics engine.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access
- System default table names used when a tenant does not override them
- Connection pool sizing for the per-tenant store clients

Environment Variables:
- DEFAULT_CONVERSATIONS_TABLE: Conversation-summary table name (default: atendimentos)
- DEFAULT_MESSAGES_TABLE: Raw message table name (default: mensagens)
- TENANT_DB_USER: Login role used when a tenant config names none (default: postgres)
- TENANT_DB_PORT: Port used when the tenant endpoint carries none (default: 5432)
- TENANT_DB_SSLMODE: sslmode appended to tenant DSNs (default: require)
- TENANT_POOL_MIN_SIZE / TENANT_POOL_MAX_SIZE: asyncpg pool bounds per tenant
- TENANT_COMMAND_TIMEOUT: Per-statement timeout in seconds
- DEFAULT_PAGE_SIZE / MAX_PAGE_SIZE: Pagination bounds for list endpoints
- LOG_LEVEL: Root logging level for the API process

Usage:
    from conversation_analytics.core.config import get_settings

    settings = get_settings()
    table = settings.default_conversations_table
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Nothing here is tenant specific: tenant endpoints and credentials arrive
    per request in a TenantConnectionConfig and are never read from the
    environment.

    Attributes:
        default_conversations_table: Table holding one row per customer engagement.
        default_messages_table: Table holding one row per conversation turn.
        tenant_db_user: Role used to log in to tenant stores.
        tenant_db_port: Port used when the tenant endpoint has none.
        tenant_db_sslmode: sslmode for tenant connections (None disables it).
        tenant_pool_min_size: Minimum idle connections kept per tenant pool.
        tenant_pool_max_size: Maximum connections per tenant pool.
        tenant_command_timeout: Statement timeout in seconds for tenant queries.
        default_page_size: Page size used when the caller gives none.
        max_page_size: Largest page size a caller may request.
        log_level: Logging level configured by the API entry point.
        cors_origins: Origins allowed by the API CORS middleware.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Logical table defaults
    # =========================================================================

    default_conversations_table: str = 'atendimentos'
    default_messages_table: str = 'mensagens'

    # =========================================================================
    # Tenant store connectivity
    # =========================================================================

    tenant_db_user: str = 'postgres'
    tenant_db_port: int = 5432
    tenant_db_sslmode: Optional[str] = 'require'

    # Each tenant gets its own pool, so these stay small
    tenant_pool_min_size: int = 1
    tenant_pool_max_size: int = 5
    tenant_command_timeout: float = 30.0

    # =========================================================================
    # Pagination
    # =========================================================================

    default_page_size: int = 20
    max_page_size: int = 200

    # =========================================================================
    # API process
    # =========================================================================

    log_level: str = 'INFO'
    cors_origins: List[str] = [
        'http://localhost:5000',
        'http://127.0.0.1:5000',
    ]


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
