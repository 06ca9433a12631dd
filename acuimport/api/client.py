"""Acumatica contract-based REST API client."""
import json
import logging
import time
from typing import Any, Optional

import requests

from acuimport.api.auth import AuthManager, AuthSession, Credentials, SessionCache
from acuimport.api.error_parser import extract_inner_message
from acuimport.api.errors import (
    ApiError,
    AuthError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)
from acuimport.config import AcumaticaApiConfig

logger = logging.getLogger(__name__)


class AcumaticaClient:
    """Client for one Acumatica instance.

    Every call goes through ``request``, which handles re-login on 401,
    429 throttling, 5xx backoff and timeouts.
    """

    def __init__(
        self,
        instance_url: str,
        credentials: Credentials,
        api_version: Optional[str] = None,
        config: Optional[AcumaticaApiConfig] = None,
        session_cache: Optional[SessionCache] = None,
        http: Optional[requests.Session] = None,
    ):
        """Initialize client."""
        self.config = config or AcumaticaApiConfig()
        self.api_version = api_version or self.config.api_version
        self.http = http or requests.Session()
        self.auth = AuthManager(
            instance_url,
            credentials,
            session_cache if session_cache is not None else SessionCache(),
            config=self.config,
            http=self.http,
        )
        self._session: Optional[AuthSession] = None

    @property
    def base_url(self) -> str:
        return self.auth.base_entity_url(self.api_version)

    def _ensure_session(self) -> AuthSession:
        if self._session is None:
            self._session = self.auth.get_session()
        return self._session

    def _refresh_session(self) -> AuthSession:
        self._session = self.auth.refresh_session()
        return self._session

    def request(self, method: str, path: str, body: Any = None) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP verb
            path: Path below the entity endpoint, e.g. ``/StockItem``
            body: JSON-serializable payload

        Returns:
            Decoded JSON, or None for an empty body

        Raises:
            AcumaticaError: one of its subclasses once retries are exhausted
        """
        url = f"{self.base_url}{path}"
        attempt = 0

        while True:
            session = self._ensure_session()
            headers = {"Content-Type": "application/json", "Cookie": session.cookie_header}

            try:
                response = self.http.request(
                    method,
                    url,
                    data=json.dumps(body) if body is not None else None,
                    headers=headers,
                    timeout=self.config.timeout,
                )
            except requests.exceptions.Timeout:
                if attempt < self.config.max_retries:
                    logger.debug(f"{method} {path} timed out, retrying ({attempt + 1})")
                    attempt += 1
                    continue
                raise RequestTimeoutError()
            except requests.exceptions.RequestException as e:
                raise ApiError(0, f"Could not reach Acumatica: {e}")

            status = response.status_code

            if status == 401:
                if attempt == 0:
                    logger.debug(f"{method} {path} returned 401, logging in again")
                    self._refresh_session()
                    attempt += 1
                    continue
                raise AuthError(401, self._error_message(response))

            if status == 429:
                if attempt < self.config.max_retries:
                    wait = self._retry_after(response)
                    logger.debug(f"Rate limited on {method} {path}, waiting {wait}s")
                    time.sleep(wait)
                    attempt += 1
                    continue
                raise RateLimitedError()

            if status >= 500:
                if attempt < self.config.max_retries:
                    wait = self.config.retry_base_delay * (2 ** attempt)
                    logger.debug(f"{method} {path} returned {status}, retrying in {wait}s")
                    time.sleep(wait)
                    attempt += 1
                    continue
                raise ServerError(status, self._error_message(response))

            if not 200 <= status < 300:
                raise ApiError(status, self._error_message(response))

            text = response.text
            if not text:
                return None
            return json.loads(text)

    def _retry_after(self, response) -> float:
        value = response.headers.get("Retry-After")
        if value:
            try:
                return float(int(value))
            except ValueError:
                pass
        return self.config.retry_base_delay * 2

    @staticmethod
    def _error_message(response) -> str:
        text = response.text or ""
        message = f"Acumatica API error ({response.status_code})"
        try:
            error_json = json.loads(text)
        except ValueError:
            return text or message
        if isinstance(error_json, dict):
            return extract_inner_message(error_json) or message
        return text or message

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def put(self, path: str, body: Any) -> Any:
        return self.request("PUT", path, body)

    def post(self, path: str, body: Any) -> Any:
        return self.request("POST", path, body)

    def delete(self, path: str):
        self.request("DELETE", path)
