"""
Data models for the remote API and the display layer.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    """The ``{success, data, error}`` envelope every remote call returns."""
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ApiResponse":
        return cls(success=False, error=error, data=data)


class Growth(BaseModel):
    """Period-over-period growth labels shown on the stat cards."""
    model_config = ConfigDict(populate_by_name=True)

    total_users: str = Field("+0%", alias="totalUsers")
    active_plans: str = Field("+0%", alias="activePlans")
    revenue: str = Field("+0%", alias="revenue")
    active_users: str = Field("+0%", alias="activeUsers")


class DashboardStats(BaseModel):
    """Headline numbers for the admin dashboard."""
    model_config = ConfigDict(populate_by_name=True)

    total_users: int = Field(0, alias="totalUsers")
    active_plans: int = Field(0, alias="activePlans")
    revenue: int = Field(0, alias="revenue")
    active_users: int = Field(0, alias="activeUsers")
    growth: Growth = Field(default_factory=Growth)


class UserSummary(BaseModel):
    """Row of the recent users table."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    user_id: Optional[str] = Field(None, alias="userId")
    name: str
    email: Optional[str] = None
    plan: str = "Basic"
    join_date: str = Field(..., alias="joinDate")


class ReferralSummary(BaseModel):
    """Referral code and referred users of one subject."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    referral_code: Optional[str] = Field(None, alias="referralCode")
    referrals: List[Dict[str, Any]] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Display-ready user record."""
    raw: Dict[str, Any]
    id: Optional[str] = None
    user_id: Optional[str] = None
    name: str
    email: str = "—"
    status: str = "Active"
    join_date: str = "—"
    last_login: str = "—"
    account_type: str = "Personal"
    api_keys_active: int = 0
    referral_code: str = "—"
    integrations: List[Dict[str, Any]] = Field(default_factory=list)
    verified: bool = False
    two_factor_enabled: bool = False


PLAN_PRICES = {
    "free": 0.0,
    "basic": 9.99,
    "premium": 29.99,
    "enterprise": 59.99,
}

PLAN_LABELS = {
    "premium": "Premium",
    "enterprise": "Pro",
    "basic": "Basic",
    "free": "Basic",
}


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp or epoch milliseconds; ``None`` if unusable."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_ymd(value: Any) -> str:
    parsed = parse_date(value)
    return parsed.strftime("%Y-%m-%d") if parsed else "—"


def display_name(user: Dict[str, Any]) -> str:
    if user.get("nickname"):
        return user["nickname"]
    return f"User{str(user.get('userId') or '')[-6:]}"


def plan_of(user: Dict[str, Any]) -> str:
    return (user.get("subscription") or {}).get("plan") or "free"


def normalize_user(user: Optional[Dict[str, Any]]) -> Optional[UserProfile]:
    """Turn a raw user record into a :class:`UserProfile`."""
    if not user:
        return None

    exchange_apis = user.get("exchangeApis")
    if not isinstance(exchange_apis, list):
        exchange_apis = []
    active_keys = sum(1 for api in exchange_apis if (api or {}).get("isActive") is not False)

    created_at = user.get("createdAt") or user.get("created_at") or user.get("joinDate")
    last_login = parse_date(user.get("lastLogin"))
    plan = (user.get("subscription") or {}).get("plan")

    return UserProfile(
        raw=user,
        id=user.get("userId") or user.get("id") or user.get("_id"),
        user_id=user.get("userId"),
        name=display_name(user),
        email=user.get("email") or "—",
        status="Inactive" if user.get("isActive") is False else "Active",
        join_date=format_ymd(created_at),
        last_login=last_login.strftime("%Y-%m-%d %H:%M:%S") if last_login else "—",
        account_type=str(plan).upper() if plan else "Personal",
        api_keys_active=active_keys,
        referral_code=user.get("referralCode") or "—",
        integrations=exchange_apis,
        # Not present in the user schema
        verified=bool(user.get("email")),
        two_factor_enabled=False,
    )
