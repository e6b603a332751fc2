"""
Test helper functions and factory methods for the dashboard data layer.
"""

import asyncio
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Union

from shared.errors import TransportError


Outcome = Union[Dict[str, Any], Exception, Callable[[], Any]]


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class TestDataFactory:
    """Factory for creating test data."""
    __test__ = False

    @staticmethod
    def create_users() -> List[Dict[str, Any]]:
        """Raw user records as the backend returns them."""
        return [
            {
                "_id": "665f1a",
                "userId": "usr_0001a2b3c4",
                "nickname": "alice",
                "email": "alice@example.com",
                "isActive": True,
                "subscription": {"plan": "premium"},
                "referralCode": "ALICE1",
                "createdAt": "2024-03-01T10:00:00Z",
                "lastLogin": "2024-06-01T08:30:00Z",
                "exchangeApis": [{"exchange": "bybit", "isActive": True}, {"exchange": "binance", "isActive": False}],
            },
            {
                "_id": "665f1b",
                "userId": "usr_0002d5e6f7",
                "email": "bob@example.com",
                "isActive": False,
                "subscription": {"plan": "basic"},
                "createdAt": "2024-05-12T09:00:00Z",
            },
            {
                "_id": "665f1c",
                "userId": "usr_0003g8h9i0",
                "nickname": "carol",
                "email": "carol@example.com",
                "subscription": {"plan": "enterprise"},
                "createdAt": "2024-01-20T12:00:00Z",
            },
            {
                "_id": "665f1d",
                "userId": "usr_0004j1k2l3",
                "nickname": "dave",
                "createdAt": "2023-12-31T23:00:00Z",
            },
        ]

    @staticmethod
    def create_user(user_id: str = "usr_0001a2b3c4") -> Dict[str, Any]:
        for user in TestDataFactory.create_users():
            if user["userId"] == user_id:
                return user
        raise KeyError(user_id)

    @staticmethod
    def create_stats(total_users: int = 4) -> Dict[str, Any]:
        return {
            "totalUsers": total_users,
            "activePlans": 3,
            "revenue": 100,
            "activeUsers": 3,
            "growth": {
                "totalUsers": "+11.1%",
                "activePlans": "+11.1%",
                "revenue": "+11.1%",
                "activeUsers": "+11.1%",
            },
        }

    @staticmethod
    def create_recent_users() -> List[Dict[str, Any]]:
        return [
            {"id": "665f1b", "userId": "usr_0002d5e6f7", "name": "Userd5e6f7",
             "email": "bob@example.com", "plan": "Basic", "joinDate": "2024-05-12"},
            {"id": "665f1a", "userId": "usr_0001a2b3c4", "name": "alice",
             "email": "alice@example.com", "plan": "Premium", "joinDate": "2024-03-01"},
        ]

    @staticmethod
    def create_profile_payloads(user_id: str = "usr_0001a2b3c4") -> Dict[str, Any]:
        """Successful ``data`` payloads for every profile resource."""
        return {
            "get_by_id": TestDataFactory.create_user(user_id),
            "get_wallet": {"address": "TXYZ123", "balance": 250.5, "currency": "USDT"},
            "get_notifications": [{"_id": "n1", "title": "Welcome", "message": "Hi", "read": False}],
            "get_referrals": {"referralCode": "ALICE1", "referrals": [{"userId": "usr_0002d5e6f7"}]},
            "get_strategies": [{"id": "s1", "name": "Grid BTC", "status": "running"}],
            "get_activities": [{"id": "a1", "type": "login", "at": "2024-06-01T08:30:00Z"}],
        }


def envelope(data: Any = None, success: bool = True, error: Optional[str] = None) -> Dict[str, Any]:
    return {"success": success, "data": data, "error": error}


class FakeDashboardApi:
    """Scripted stand-in for :class:`DashboardApiClient`.

    ``script(method, *outcomes)`` queues outcomes for a method: a dict is
    returned as the envelope, an exception is raised, a callable is invoked.
    The last outcome repeats once the queue is down to one. ``gate(method)``
    makes calls wait until the returned event is set.
    """

    def __init__(self):
        self.calls: Dict[str, List[tuple]] = defaultdict(list)
        self._outcomes: Dict[str, List[Outcome]] = {}
        self._gates: Dict[str, asyncio.Event] = {}

    def script(self, method: str, *outcomes: Outcome) -> "FakeDashboardApi":
        self._outcomes[method] = list(outcomes)
        return self

    def gate(self, method: str) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[method] = event
        return event

    def call_count(self, method: str) -> int:
        return len(self.calls[method])

    async def _call(self, method: str, *args) -> Any:
        self.calls[method].append(args)

        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()

        queue = self._outcomes.get(method)
        if not queue:
            raise TransportError(f"No scripted response for {method}")
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return outcome()
        return outcome

    async def get_stats(self):
        return await self._call("get_stats")

    async def get_recent_users(self, limit: int = 5):
        return await self._call("get_recent_users", limit)

    async def get_by_id(self, subject_id: str):
        return await self._call("get_by_id", subject_id)

    async def get_wallet(self, subject_id: str):
        return await self._call("get_wallet", subject_id)

    async def get_notifications(self, subject_id: str):
        return await self._call("get_notifications", subject_id)

    async def get_referrals(self, subject_id: str):
        return await self._call("get_referrals", subject_id)

    async def get_strategies(self, subject_id: str):
        return await self._call("get_strategies", subject_id)

    async def get_activities(self, subject_id: str):
        return await self._call("get_activities", subject_id)


def scripted_profile_api(user_id: str = "usr_0001a2b3c4") -> FakeDashboardApi:
    """A fake API where every profile resource succeeds."""
    api = FakeDashboardApi()
    for method, data in TestDataFactory.create_profile_payloads(user_id).items():
        api.script(method, envelope(data))
    return api
