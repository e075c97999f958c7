"""
FastAPI dependency injection for the conversation analytics API.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_registry_dependency: Returns the process-wide tenant client registry
- SettingsDep / RegistryDep: Annotated aliases for endpoint signatures

Both are thin wrappers so tests can swap them through
app.dependency_overrides without patching module globals:

    app.dependency_overrides[get_registry_dependency] = lambda: fake_registry
"""

from typing import Annotated

from fastapi import Depends

from conversation_analytics.core.config import Settings, get_settings
from conversation_analytics.core.database import TenantClientRegistry, get_registry


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """Return the Settings singleton instance."""
    return get_settings()


# =============================================================================
# Registry Dependency
# =============================================================================

def get_registry_dependency() -> TenantClientRegistry:
    """
    Return the tenant client registry shared by every request.

    Pools opened through it live until application shutdown, when the
    lifespan handler calls close_registry().
    """
    return get_registry()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(registry: RegistryDep)
RegistryDep = Annotated[TenantClientRegistry, Depends(get_registry_dependency)]
