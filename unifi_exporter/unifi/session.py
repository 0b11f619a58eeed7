"""Authentication state for one UniFi controller.

Two credential schemes are supported and exactly one is active per process:

* ``ApiKeyAuth`` - a static key sent as ``X-API-KEY`` on every request. Stateless.
* ``PasswordAuth`` - username/password exchanged at ``/api/login`` for session
  cookies, which are then replayed as a ``Cookie`` header until the controller
  answers 401.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import httpx

from unifi_exporter.unifi.exceptions import AuthenticationError, RequestFailed

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-KEY"


@dataclass(frozen=True)
class ApiKeyAuth:
    """Static API key credentials"""
    api_key: str

    def __repr__(self) -> str:
        return "ApiKeyAuth(api_key='***')"


@dataclass(frozen=True)
class PasswordAuth:
    """Username/password credentials for the legacy session API"""
    username: str
    password: str

    def __repr__(self) -> str:
        return f"PasswordAuth(username={self.username!r}, password='***')"


Credentials = Union[ApiKeyAuth, PasswordAuth]


def _cookie_pairs(set_cookie_headers: List[str]) -> List[str]:
    """Strip attributes (Path, HttpOnly, ...) and keep the name=value part"""
    pairs = []
    for header in set_cookie_headers:
        pair = header.split(";", 1)[0].strip()
        if pair:
            pairs.append(pair)
    return pairs


class SessionManager:
    """Owns the credentials and the live session token for one controller"""

    def __init__(self, credentials: Credentials, http: httpx.AsyncClient, base_url: str):
        self.credentials = credentials
        self.base_url = base_url.rstrip('/')
        self._http = http
        self._token: Optional[str] = None
        self._login_lock = asyncio.Lock()

    @property
    def is_key_based(self) -> bool:
        return isinstance(self.credentials, ApiKeyAuth)

    @property
    def token(self) -> Optional[str]:
        """Current session token, None until logged in (always None for API keys)"""
        return self._token

    async def ensure_valid(self) -> None:
        """Make sure a request can be authenticated, logging in if needed.

        Concurrent callers that all find no session wait on the same login.

        Raises:
            AuthenticationError: If the controller rejects the login
            RequestFailed: If the login request could not be sent
        """
        if self.is_key_based or self._token is not None:
            return

        async with self._login_lock:
            if self._token is None:
                self._token = await self._login()

    def invalidate(self) -> None:
        """Drop the session token so the next ensure_valid() logs in again"""
        if self.is_key_based:
            return
        if self._token is not None:
            logger.debug("Discarding UniFi session token")
        self._token = None
        self._http.cookies.clear()

    def attach(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Add authentication to a request's headers; call after ensure_valid()"""
        if isinstance(self.credentials, ApiKeyAuth):
            headers[API_KEY_HEADER] = self.credentials.api_key
        elif self._token is not None:
            headers["Cookie"] = self._token
        return headers

    async def _login(self) -> str:
        login_url = f"{self.base_url}/api/login"
        payload = {
            "username": self.credentials.username,
            "password": self.credentials.password,
            "remember": False,
        }

        logger.debug(f"Logging in to UniFi controller at {login_url}")
        try:
            response = await self._http.post(login_url, json=payload)
        except httpx.RequestError as e:
            raise RequestFailed(f"Login request failed: {e}") from e

        if not response.is_success:
            raise AuthenticationError(f"Login failed (HTTP {response.status_code})")

        cookies = _cookie_pairs(response.headers.get_list("set-cookie"))
        if not cookies:
            raise AuthenticationError("Login succeeded but no session cookies were returned")

        logger.info("Successfully authenticated with UniFi controller")
        return "; ".join(cookies)
