"""
Elasticsearch HTTP Transport

Thin async HTTP layer over the search engine REST API. Index lifecycle
management and bulk writes both go through ``request`` so tests can swap
in an in-memory fake with the same signature.
"""

import json
import logging
from typing import Any, Optional, Tuple

import aiohttp

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"


class ElasticsearchTransport:
    """
    Shared aiohttp client for the search engine.

    Features:
    - Lazily created session with a pooled connector
    - Optional basic authentication
    - Returns raw status and body text so callers decide what a status means
    """

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._auth = aiohttp.BasicAuth(username, password or "") if username else None
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings) -> "ElasticsearchTransport":
        return cls(
            base_url=settings.ELASTICSEARCH_URL,
            username=settings.ELASTICSEARCH_USERNAME,
            password=settings.ELASTICSEARCH_PASSWORD,
            timeout=settings.ELASTICSEARCH_TIMEOUT,
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=50,
                ttl_dns_cache=600,
                enable_cleanup_closed=True,
                keepalive_timeout=60,
            )
            timeout = aiohttp.ClientTimeout(total=self.timeout, connect=5)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                auth=self._auth,
            )
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> Tuple[int, str]:
        """
        Send one request to the search engine.

        Args:
            method: HTTP method (HEAD, PUT, POST, ...)
            path: Path relative to the base URL, starting with ``/``
            body: Dict/list serialized as JSON, or a pre-encoded string
            content_type: Content type of the body

        Returns:
            Tuple of (status code, response text)
        """
        data = None
        headers = {}
        if body is not None:
            data = body if isinstance(body, str) else json.dumps(body)
            headers["Content-Type"] = content_type

        session = self._get_session()
        async with session.request(method, f"{self.base_url}{path}", data=data, headers=headers) as response:
            text = "" if method.upper() == "HEAD" else await response.text()
            logger.debug(f"{method} {path} -> {response.status}")
            return response.status, text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
