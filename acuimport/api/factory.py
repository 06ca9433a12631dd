"""Builds gateways (authenticated clients) for stored connections."""
import json
import logging
from typing import Callable, Optional

import requests

from acuimport.api.auth import Credentials, SessionCache
from acuimport.api.client import AcumaticaClient
from acuimport.config import AcumaticaApiConfig
from acuimport.importer.errors import CredentialsError
from acuimport.store.models import Connection

logger = logging.getLogger(__name__)

Decrypt = Callable[[str], Credentials]


def decode_credentials(encoded: str) -> Credentials:
    """Default decrypt hook: credentials stored as plain JSON."""
    return Credentials.from_dict(json.loads(encoded))


def encode_credentials(credentials: Credentials) -> str:
    """Inverse of ``decode_credentials``."""
    data = {"username": credentials.username, "password": credentials.password}
    if credentials.company:
        data["company"] = credentials.company
    if credentials.branch:
        data["branch"] = credentials.branch
    return json.dumps(data)


class GatewayFactory:
    """Creates clients that share one session cache.

    Closing the factory drops every cached login.
    """

    def __init__(
        self,
        config: Optional[AcumaticaApiConfig] = None,
        decrypt: Decrypt = decode_credentials,
        http_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.config = config or AcumaticaApiConfig()
        self.decrypt = decrypt
        self.http_factory = http_factory
        self.session_cache = SessionCache()

    def credentials_for(self, connection: Connection) -> Credentials:
        try:
            return self.decrypt(connection.credentials)
        except Exception as e:
            logger.warning(f"Could not decode credentials for connection {connection.id}: {e}")
            raise CredentialsError("Failed to decrypt connection credentials") from e

    def create(self, connection: Connection) -> AcumaticaClient:
        """Client for a connection. Raises ``CredentialsError`` on undecodable credentials."""
        credentials = self.credentials_for(connection)
        return AcumaticaClient(
            connection.instance_url,
            credentials,
            api_version=connection.api_version,
            config=self.config,
            session_cache=self.session_cache,
            http=self.http_factory(),
        )

    def close(self):
        self.session_cache.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
