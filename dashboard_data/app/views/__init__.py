from .dashboard import DashboardData
from .user_profile import UserProfileData

__all__ = ["DashboardData", "UserProfileData"]
