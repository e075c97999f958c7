"""
Core infrastructure package for the conversation analytics engine.

Provides:
- Configuration management via pydantic-settings
- Per-tenant asyncpg connection pools behind a keyed registry
- The engine's exception hierarchy
- FastAPI dependency injection utilities

Usage Examples:
    from conversation_analytics.core import get_settings, get_client

    settings = get_settings()
    client = get_client(tenant_config)
    rows = await client.fetch("SELECT 1")

    # Pool shutdown (in FastAPI lifespan)
    from conversation_analytics.core import close_registry

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await close_registry()
"""

# =============================================================================
# Re-exports from conversation_analytics.core.config
# =============================================================================
from conversation_analytics.core.config import Settings, get_settings

# =============================================================================
# Re-exports from conversation_analytics.core.exceptions
# =============================================================================
from conversation_analytics.core.exceptions import (
    AnalyticsError,
    StoreQueryError,
    StoreUnavailableError,
    TableNotFoundError,
    TenantConfigurationError,
)

# =============================================================================
# Re-exports from conversation_analytics.core.database
# =============================================================================
from conversation_analytics.core.database import (
    TenantClientRegistry,
    TenantStoreClient,
    build_dsn,
    close_registry,
    get_client,
    get_registry,
    store_errors,
)

# =============================================================================
# Re-exports from conversation_analytics.core.dependencies
# =============================================================================
from conversation_analytics.core.dependencies import (
    RegistryDep,
    SettingsDep,
    get_registry_dependency,
    get_settings_dependency,
)


__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Exceptions (from exceptions.py)
    'AnalyticsError',
    'StoreQueryError',
    'StoreUnavailableError',
    'TableNotFoundError',
    'TenantConfigurationError',
    # Tenant pools (from database.py)
    'TenantClientRegistry',
    'TenantStoreClient',
    'build_dsn',
    'close_registry',
    'get_client',
    'get_registry',
    'store_errors',
    # FastAPI dependency injection (from dependencies.py)
    'RegistryDep',
    'SettingsDep',
    'get_registry_dependency',
    'get_settings_dependency',
]
