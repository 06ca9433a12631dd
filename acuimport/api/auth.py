"""Cookie-based login against an Acumatica instance."""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from acuimport.api.errors import AuthError, RequestTimeoutError
from acuimport.config import AcumaticaApiConfig

logger = logging.getLogger(__name__)


@dataclass
class Credentials:
    """Login credentials for one connection."""

    username: str
    password: str
    company: Optional[str] = None
    branch: Optional[str] = None

    def to_login_body(self) -> Dict[str, str]:
        body = {"name": self.username, "password": self.password}
        if self.company:
            body["company"] = self.company
        if self.branch:
            body["branch"] = self.branch
        return body

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credentials":
        return cls(
            username=data["username"],
            password=data["password"],
            company=data.get("company"),
            branch=data.get("branch"),
        )


@dataclass
class AuthSession:
    """Cookies returned by a successful login."""

    cookies: Dict[str, str]
    expires_at: float  # epoch seconds
    instance_url: str

    @property
    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def seconds_left(self, now: Optional[float] = None) -> float:
        return self.expires_at - (time.time() if now is None else now)


def cache_key(instance_url: str) -> str:
    """Instance URL without trailing slashes."""
    return instance_url.rstrip("/")


@dataclass
class SessionCache:
    """Login sessions shared by every client of one gateway factory.

    Holds one session per instance and a lock per instance so that concurrent
    callers wait for a single login instead of each logging in.
    """

    _sessions: Dict[str, AuthSession] = field(default_factory=dict)
    _locks: Dict[str, threading.Lock] = field(default_factory=dict)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def get(self, key: str) -> Optional[AuthSession]:
        with self._guard:
            return self._sessions.get(key)

    def set(self, key: str, session: AuthSession):
        with self._guard:
            self._sessions[key] = session

    def invalidate(self, key: str):
        with self._guard:
            self._sessions.pop(key, None)

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    def clear(self):
        with self._guard:
            self._sessions.clear()
            self._locks.clear()

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)


class AuthManager:
    """Logs in to one Acumatica instance and hands out cached sessions."""

    def __init__(
        self,
        instance_url: str,
        credentials: Credentials,
        cache: SessionCache,
        config: Optional[AcumaticaApiConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize auth manager.

        Args:
            instance_url: Base URL of the instance, e.g. https://erp.example.com
            credentials: Login credentials
            cache: Session cache shared with other managers
            config: API settings (timeouts, session lifetime)
            http: requests session used for the login call
        """
        self.instance_url = cache_key(instance_url)
        self.credentials = credentials
        self.cache = cache
        self.config = config or AcumaticaApiConfig()
        self.http = http or requests.Session()

    @property
    def login_url(self) -> str:
        return f"{self.instance_url}/entity/auth/login"

    def base_entity_url(self, api_version: Optional[str] = None) -> str:
        return f"{self.instance_url}/entity/Default/{api_version or self.config.api_version}"

    def login(self) -> AuthSession:
        """POST the credentials and capture the session cookies."""
        logger.debug(f"Logging in to {self.instance_url} as {self.credentials.username}")

        try:
            response = self.http.post(
                self.login_url,
                json=self.credentials.to_login_body(),
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout:
            raise RequestTimeoutError("Login request timed out")
        except requests.exceptions.RequestException as e:
            raise AuthError(0, f"Could not reach {self.instance_url}: {e}")

        if not 200 <= response.status_code < 300:
            body = response.text or ""
            raise AuthError(
                response.status_code,
                f"Authentication failed ({response.status_code}): {body}".strip(),
            )

        cookies = dict(response.cookies)
        if not cookies:
            raise AuthError(response.status_code, "Login succeeded but no session cookies were returned")

        session = AuthSession(
            cookies=cookies,
            expires_at=time.time() + self.config.session_duration,
            instance_url=self.instance_url,
        )
        logger.info(f"Logged in to {self.instance_url}")
        return session

    def get_session(self) -> AuthSession:
        """Cached session when it still has enough time left, else a fresh login."""
        cached = self._usable(self.cache.get(self.instance_url))
        if cached:
            return cached

        with self.cache.lock_for(self.instance_url):
            # another caller may have logged in while we waited
            cached = self._usable(self.cache.get(self.instance_url))
            if cached:
                return cached

            session = self.login()
            self.cache.set(self.instance_url, session)
            return session

    def refresh_session(self) -> AuthSession:
        """Force a fresh login, bypassing the cache."""
        with self.cache.lock_for(self.instance_url):
            self.cache.invalidate(self.instance_url)
            session = self.login()
            self.cache.set(self.instance_url, session)
            return session

    def invalidate_session(self):
        self.cache.invalidate(self.instance_url)

    def _usable(self, session: Optional[AuthSession]) -> Optional[AuthSession]:
        if session and session.seconds_left() > self.config.session_refresh_margin:
            return session
        return None
