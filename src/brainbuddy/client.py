import logging
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from brainbuddy.config import HTTP_TIMEOUT_SECONDS
from brainbuddy.exceptions import ProgressServiceError, ProgressServiceUnauthorized

logger = logging.getLogger(__name__)


@dataclass
class RemoteProgress:
    xp: int
    streak_days: int


def _non_negative_int(payload: dict, field: str) -> int:
    try:
        value = int(payload.get(field) or 0)
    except (TypeError, ValueError) as e:
        raise ProgressServiceError(f"Progress Service sent a non-numeric {field}: {payload!r}") from e
    return max(0, value)


class ProgressServiceClient:
    """
    A client for the remote Progress Service.

    The service is the authoritative record of a learner's XP and streak. Every
    call carries a bearer credential; when there is none, calls fail with
    ProgressServiceUnauthorized before touching the network.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        """
        Initializes the client.

        Args:
            base_url (str): API root, e.g. "http://localhost:5000/api".
            token_provider (callable): Returns the current bearer token or None.
            timeout (float): Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self.session = requests.Session()
        logger.info(f"Progress Service client initialized for endpoint: {self.base_url}")

    def has_credential(self) -> bool:
        return bool(self.token_provider())

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        token = self.token_provider()
        if not token:
            raise ProgressServiceUnauthorized("No session credential available")
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        try:
            response = self.session.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ProgressServiceError(f"{method} {path} failed: {e}") from e
        if response.status_code in (401, 403):
            raise ProgressServiceUnauthorized(f"{method} {path} rejected with {response.status_code}")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise ProgressServiceError(f"{method} {path} returned {response.status_code}") from e
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise ProgressServiceError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(body, dict):
            raise ProgressServiceError(f"{method} {path} returned {type(body).__name__}, expected an object")
        return body

    def fetch_progress(self) -> RemoteProgress:
        """Current XP and streak as recorded by the service."""
        xp = _non_negative_int(self._request("GET", "/user/xp"), "xp")
        streak = _non_negative_int(self._request("GET", "/user/streak"), "streak")
        return RemoteProgress(xp=xp, streak_days=streak)

    def push_xp(self, xp: int) -> None:
        self._request("PUT", "/user/xp", {"xp": xp})

    def push_streak(self, streak_days: int) -> None:
        self._request("PUT", "/user/streak", {"streak": streak_days})

    def push_level(self, level: int) -> None:
        # Advisory; the client never trusts a level coming back from the service.
        self._request("PUT", "/user/profile", {"level": level})

    def fetch_stats(self) -> dict:
        """Server-side gamification stats, for display only."""
        return self._request("GET", "/user/gamify")

    def close(self):
        """Closes the underlying requests session."""
        self.session.close()
        logger.info("Progress Service client session closed.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
