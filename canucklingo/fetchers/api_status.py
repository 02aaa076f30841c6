"""
API status tracking for the Gemini service.

Provides:
- Key configuration and authentication checks
- User-friendly status messages
- The models used by each gateway operation
"""

import requests
from typing import Dict, Optional
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..config import GEMINI_API_KEY, MODELS

GEMINI_MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class APIStatus(Enum):
    """Status of an API connection."""
    OK = "ok"
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    NOT_CONFIGURED = "not_configured"


@dataclass
class APIStatusInfo:
    """Complete status information for an API."""
    name: str
    status: APIStatus
    message: str = ""
    last_error: str = ""
    last_checked: Optional[datetime] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'status': self.status.value,
            'message': self.message,
            'last_error': self.last_error,
            'last_checked': self.last_checked.isoformat() if self.last_checked else None,
        }


class APIStatusTracker:
    """
    Tracks Gemini API status.

    The last result is kept so the status page does not hit the API on
    every refresh.
    """

    NAME = "Gemini"

    def __init__(self, api_key: str = None):
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self._last_status: Optional[APIStatusInfo] = None

    def check_gemini_auth(self) -> APIStatusInfo:
        """Check Gemini API key status."""
        if not self.api_key:
            info = APIStatusInfo(
                name=self.NAME,
                status=APIStatus.NOT_CONFIGURED,
                message="Gemini API key not configured. Set GEMINI_API_KEY.",
            )
            return self._remember(info)

        try:
            resp = requests.get(
                GEMINI_MODELS_URL,
                params={'key': self.api_key, 'pageSize': 1},
                timeout=10,
            )

            if resp.status_code == 200:
                info = APIStatusInfo(
                    name=self.NAME,
                    status=APIStatus.OK,
                    message="Gemini API connected.",
                )

            # Gemini answers 400 API_KEY_INVALID for a bad key
            elif resp.status_code in [400, 401, 403]:
                info = APIStatusInfo(
                    name=self.NAME,
                    status=APIStatus.AUTH_ERROR,
                    message="Gemini API key is invalid.",
                    last_error=f"HTTP {resp.status_code}",
                )

            elif resp.status_code == 429:
                info = APIStatusInfo(
                    name=self.NAME,
                    status=APIStatus.RATE_LIMITED,
                    message="Rate limited. Try again later.",
                    last_error="429 Too Many Requests",
                )

            else:
                info = APIStatusInfo(
                    name=self.NAME,
                    status=APIStatus.UNAVAILABLE,
                    message=f"Unexpected status: {resp.status_code}",
                    last_error=f"HTTP {resp.status_code}",
                )

        except requests.exceptions.Timeout:
            info = APIStatusInfo(
                name=self.NAME,
                status=APIStatus.UNAVAILABLE,
                message="Request timed out.",
                last_error="Timeout",
            )
        except requests.exceptions.RequestException as e:
            info = APIStatusInfo(
                name=self.NAME,
                status=APIStatus.UNAVAILABLE,
                message=f"Error: {str(e)}",
                last_error=str(e),
            )

        return self._remember(info)

    def _remember(self, info: APIStatusInfo) -> APIStatusInfo:
        info.last_checked = datetime.now()
        self._last_status = info
        return info

    def get_status(self, refresh: bool = False) -> Dict:
        """
        Get status report for the status endpoint.

        Args:
            refresh: Re-check the API instead of using the last result
        """
        if refresh or self._last_status is None:
            self.check_gemini_auth()

        return {
            'gemini': self._last_status.to_dict(),
            'models': dict(MODELS),
        }


# Global tracker instance
_api_tracker: Optional[APIStatusTracker] = None


def get_api_tracker() -> APIStatusTracker:
    """Get or create the global API status tracker."""
    global _api_tracker
    if _api_tracker is None:
        _api_tracker = APIStatusTracker()
    return _api_tracker
