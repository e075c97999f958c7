"""
Exception hierarchy for the conversation analytics engine.

Configuration and store errors propagate to the caller; the engine never
retries. Malformed message payloads are not represented here because they
never escape the response-time estimator.
"""

from typing import List, Optional


class AnalyticsError(Exception):
    """
    Base exception for all errors raised by the engine.
    """
    pass


class TenantConfigurationError(AnalyticsError):
    """
    Raised when a tenant connection config is incomplete or unusable.

    Always raised before any store call is attempted.
    """
    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class StoreQueryError(AnalyticsError):
    """
    Raised when a query against the tenant store fails.

    The failing table name is kept on the exception and the driver error is
    chained as ``__cause__``.
    """
    def __init__(self, table: str, message: str):
        super().__init__(f"Error querying table '{table}': {message}")
        self.table = table
        self.detail = message


class StoreUnavailableError(StoreQueryError):
    """
    Raised when the store cannot be reached or rejects the credentials
    """
    pass


class TableNotFoundError(StoreQueryError):
    """
    Raised when the referenced table does not exist in the tenant store
    """
    pass
