"""
Application package for the dashboard data layer.

Structure:
- caching: ResourceCache (TTL entries + pending request table).
- adapters: DashboardApiClient.
- domain: envelope and record models.
- orchestration: ResourceFetcher, AggregateFetcher, triggers.
- views: DashboardData, UserProfileData.
- main: DataLayer.
"""
