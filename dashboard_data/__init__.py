"""
Dashboard data access layer.

Fronts the dashboard backend for the display layer:
- app.caching: TTL resource cache with in-flight request tracking.
- app.adapters: HTTP client for the remote API.
- app.orchestration: per-resource fetchers, aggregates and refresh triggers.
- app.views: the admin dashboard and user profile view models.
- app.main: DataLayer wiring for one session.
"""
