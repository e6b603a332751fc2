"""
Data layer wiring: one cache, one API client and the views built on them.
"""

import time
from typing import Callable, List, Optional, Union

import httpx

from shared.config import DataLayerConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.metrics import MetricsCollector
from .adapters.dashboard_api import DashboardApiClient
from .caching.resource_cache import ResourceCache
from .orchestration.triggers import FocusEventSource
from .views.dashboard import DashboardData
from .views.user_profile import UserProfileData


View = Union[DashboardData, UserProfileData]


class DataLayer:
    """Owns the shared cache for one logical session.

    Construct one per session (or per test) instead of sharing a
    process-wide cache.
    """

    def __init__(
        self,
        config: Optional[DataLayerConfig] = None,
        *,
        api: Optional[DashboardApiClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsCollector] = None,
        setup_logging: bool = True,
    ):
        self.config = config or get_config()
        if setup_logging:
            configure_logging("dashboard", self.config.log_level)
        self.logger = get_logger("dashboard.data_layer")

        self.metrics = metrics or MetricsCollector()
        self.cache = ResourceCache(
            self.config.cache_ttl,
            cleanup_interval=self.config.cache_cleanup_interval,
            clock=clock,
            metrics=self.metrics,
        )
        self.api = api or DashboardApiClient(
            self.config.api_base_url,
            timeout=self.config.request_timeout,
            client=http_client,
        )
        self.focus = FocusEventSource()
        self.views: List[View] = []

    async def start(self):
        await self.cache.start()
        self.logger.info("Data layer started", env=self.config.env, api_base_url=self.config.api_base_url)

    async def stop(self):
        for view in list(self.views):
            await self.release(view)
        await self.cache.stop()
        self.logger.info("Data layer stopped")

    async def __aenter__(self) -> "DataLayer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def dashboard(self) -> DashboardData:
        view = DashboardData(
            self.api,
            self.cache,
            recent_users_limit=self.config.recent_users_limit,
            policy=self.config.dashboard_policy(),
            focus_source=self.focus,
            metrics=self.metrics,
        )
        self.views.append(view)
        return view

    def user_profile(self, user_id: Optional[str]) -> UserProfileData:
        view = UserProfileData(
            user_id,
            self.api,
            self.cache,
            policy=self.config.profile_policy(),
            focus_source=self.focus,
            metrics=self.metrics,
        )
        self.views.append(view)
        return view

    async def open_dashboard(self) -> DashboardData:
        """Create the dashboard view and run its first load."""
        view = self.dashboard()
        await view.start()
        return view

    async def open_user_profile(self, user_id: Optional[str]) -> UserProfileData:
        view = self.user_profile(user_id)
        await view.start()
        return view

    async def release(self, view: View):
        """Dispose a view; its late responses are ignored."""
        await view.dispose()
        if view in self.views:
            self.views.remove(view)

    def window_focused(self) -> int:
        """Forward a window focus event to every live view."""
        return self.focus.emit()

    def invalidate_all(self):
        """Drop every cached resource."""
        self.cache.clear()


def create_data_layer(**overrides) -> DataLayer:
    """Build a data layer from ``DASHBOARD_*`` settings plus overrides."""
    return DataLayer(get_config(**overrides))
