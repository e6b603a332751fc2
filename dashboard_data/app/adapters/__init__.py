"""
Adapters package.

HTTP client wrapper for the dashboard backend. Adapters map transport
problems to shared errors and never retry on their own; retries belong to
the fetchers.
"""

from .dashboard_api import DashboardApiClient

__all__ = ["DashboardApiClient"]
