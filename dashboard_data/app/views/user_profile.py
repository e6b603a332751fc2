"""
User profile view: the user record plus five independent side panels.
"""

from functools import partial
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from shared.config import FetchPolicy
from ..adapters.dashboard_api import DashboardApiClient
from ..caching.resource_cache import ResourceCache
from ..domain.models import ReferralSummary, UserProfile, normalize_user
from ..orchestration.aggregate_fetcher import AggregateFetcher, ResourceSpec
from ..orchestration.triggers import FocusEventSource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


def as_list(data: Any) -> List[Any]:
    return data if isinstance(data, list) else []


def to_referrals(data: Any) -> ReferralSummary:
    return ReferralSummary.model_validate(data or {})


class UserProfileData(AggregateFetcher):
    """Keys live under ``user:{user_id}``; only the user record is critical."""

    def __init__(
        self,
        user_id: Optional[str],
        api: DashboardApiClient,
        cache: ResourceCache,
        *,
        policy: Optional[FetchPolicy] = None,
        focus_source: Optional[FocusEventSource] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        subject_id = str(user_id or "")
        specs = [
            ResourceSpec("user", partial(api.get_by_id, subject_id), critical=True,
                         normalize=normalize_user, key_suffix=""),
            ResourceSpec("wallet", partial(api.get_wallet, subject_id)),
            ResourceSpec("notifications", partial(api.get_notifications, subject_id),
                         default=list, normalize=as_list),
            ResourceSpec("referrals", partial(api.get_referrals, subject_id),
                         default=ReferralSummary, normalize=to_referrals),
            ResourceSpec("strategies", partial(api.get_strategies, subject_id),
                         default=list, normalize=as_list),
            ResourceSpec("activities", partial(api.get_activities, subject_id),
                         default=list, normalize=as_list),
        ]
        super().__init__(
            "user",
            specs,
            cache,
            subject_id=subject_id,
            subject_required=True,
            policy=policy,
            focus_source=focus_source,
            metrics=metrics,
        )

    @property
    def user(self) -> Optional[UserProfile]:
        return self.view["user"]

    @property
    def wallet(self) -> Optional[Dict[str, Any]]:
        return self.view["wallet"]

    @property
    def notifications(self) -> List[Dict[str, Any]]:
        return self.view["notifications"]

    @property
    def referrals(self) -> ReferralSummary:
        return self.view["referrals"]

    @property
    def strategies(self) -> List[Dict[str, Any]]:
        return self.view["strategies"]

    @property
    def activities(self) -> List[Dict[str, Any]]:
        return self.view["activities"]
