"""
Remote dashboard API client.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger, set_request_id
from shared.errors import TransportError
from ..domain.models import (
    ApiResponse,
    PLAN_LABELS,
    PLAN_PRICES,
    display_name,
    parse_date,
    plan_of,
)


def calculate_growth(current: float, previous: Optional[float] = None) -> str:
    """Growth label against a baseline (defaults to 90% of ``current``)."""
    if previous is None:
        previous = current * 0.9
    if not previous:
        return "+0%"
    change = ((current - previous) / previous) * 100
    return f"+{change:.1f}%" if change > 0 else f"{change:.1f}%"


def empty_stats() -> Dict[str, Any]:
    return {
        "totalUsers": 0,
        "activePlans": 0,
        "revenue": 0,
        "activeUsers": 0,
        "growth": {
            "totalUsers": "+0%",
            "activePlans": "+0%",
            "revenue": "+0%",
            "activeUsers": "+0%",
        },
    }


class DashboardApiClient:
    """Client for the dashboard backend.

    Every public method returns an :class:`ApiResponse`. Transport problems
    (connection errors, non-2xx statuses) raise :class:`TransportError`,
    except for the derived dashboard calls which fold them into a
    ``success: false`` envelope.
    """

    def __init__(self, base_url: str, timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("dashboard.api_client")
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        url = f"{self.base_url}{path}"
        request_id = set_request_id()
        headers = {"Content-Type": "application/json", "X-Request-ID": request_id}
        headers.update(kwargs.pop("headers", {}))

        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            self.logger.error("API request failed", method=method, path=path, error=str(e))
            raise TransportError(str(e) or type(e).__name__, details={"path": path})

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = (body.get("error") if isinstance(body, dict) else None) or f"API Error: {response.status_code}"
            self.logger.error(
                "API request returned error status",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message
            )
            raise TransportError(message, status_code=response.status_code, details={"path": path})

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {path}", status_code=response.status_code,
                                 details={"path": path, "error": str(e)})

        self.logger.debug("API response received", method=method, path=path,
                          status_code=response.status_code)
        return ApiResponse.model_validate(payload)

    async def get_all_users(self) -> ApiResponse:
        return await self._request("GET", "/users")

    async def get_stats(self) -> ApiResponse:
        """Headline dashboard numbers, derived from the user list."""
        try:
            users_response = await self.get_all_users()
            users: List[Dict[str, Any]] = (users_response.data or []) if users_response.success else []

            total_users = len(users)
            active_users = sum(1 for u in users if u.get("isActive") is not False)
            active_plans = sum(1 for u in users if plan_of(u) != "free")
            revenue = sum(PLAN_PRICES.get(plan_of(u), 0.0) for u in users)

            return ApiResponse.ok({
                "totalUsers": total_users,
                "activePlans": active_plans,
                "revenue": round(revenue),
                "activeUsers": active_users,
                "growth": {
                    "totalUsers": calculate_growth(total_users),
                    "activePlans": calculate_growth(active_plans),
                    "revenue": calculate_growth(revenue),
                    "activeUsers": calculate_growth(active_users),
                },
            })
        except TransportError as e:
            self.logger.error("Error fetching dashboard stats", error=e.message)
            return ApiResponse.fail(e.message, data=empty_stats())

    async def get_recent_users(self, limit: int = 5) -> ApiResponse:
        """Newest users first, as table rows."""
        try:
            response = await self.get_all_users()
            if not response.success:
                return ApiResponse.fail(response.error or "Failed to fetch users", data=[])

            users: List[Dict[str, Any]] = response.data or []
            oldest = datetime.min.replace(tzinfo=timezone.utc)
            ordered = sorted(
                users,
                key=lambda u: _as_utc(parse_date(u.get("createdAt")) or oldest),
                reverse=True,
            )

            recent = []
            for user in ordered[:limit]:
                created = parse_date(user.get("createdAt"))
                recent.append({
                    "id": user.get("id") or user.get("_id"),
                    "userId": user.get("userId"),
                    "name": display_name(user),
                    "email": user.get("email"),
                    "plan": PLAN_LABELS.get(plan_of(user), "Basic"),
                    "joinDate": (created or datetime.now(timezone.utc)).strftime("%Y-%m-%d"),
                })
            return ApiResponse.ok(recent)
        except TransportError as e:
            self.logger.error("Error fetching recent users", error=e.message)
            return ApiResponse.fail(e.message, data=[])

    async def get_by_id(self, subject_id: str) -> ApiResponse:
        return await self._request("GET", f"/users/{subject_id}")

    async def get_wallet(self, subject_id: str) -> ApiResponse:
        return await self._request("GET", f"/users/{subject_id}/wallet")

    async def get_notifications(self, subject_id: str) -> ApiResponse:
        return await self._request("GET", f"/users/{subject_id}/notifications")

    async def get_referrals(self, subject_id: str) -> ApiResponse:
        return await self._request("GET", f"/users/{subject_id}/referrals")

    async def get_strategies(self, subject_id: str) -> ApiResponse:
        return await self._request("GET", f"/users/{subject_id}/strategies")

    async def get_activities(self, subject_id: str) -> ApiResponse:
        return await self._request("GET", f"/users/{subject_id}/activities")

    async def aclose(self) -> None:
        """Close an injected client, if any."""
        if self._client is not None:
            await self._client.aclose()


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
