"""
Shared utilities for the dashboard data layer.

This package aggregates common building blocks consumed by the data layer:

- config: Configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types
- retry: Fixed-delay retry runner

Keep this package free of imports from dashboard_data to avoid cycles.
"""
