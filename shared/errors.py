"""
Shared error handling for the dashboard data layer.
"""

from typing import Dict, Any, Optional


class DataAccessException(Exception):
    """Base exception for the data layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain diagnostic record."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class TransportError(DataAccessException):
    """The remote call did not produce a usable response (unreachable, non-2xx)."""

    def __init__(self, message: str = "Transport error", status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__("TRANSPORT_ERROR", message, details)
        self.status_code = status_code


class LogicalFailureError(DataAccessException):
    """The remote call resolved with ``success: false``."""

    def __init__(self, message: str = "Request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("LOGICAL_ERROR", message, details)


class ConfigurationError(DataAccessException):
    """Invalid orchestration wiring."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)
