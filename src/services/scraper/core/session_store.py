"""
Persistence for the session cookie blob.

Upstash Redis (REST API) is the durable backend; a local JSON file is kept as
a fallback that only survives for the lifetime of the container.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import httpx

from src.config import Settings
from src.services.exceptions import SessionStoreError

logger = logging.getLogger(__name__)

Cookies = List[Dict[str, Any]]


def _as_cookie_list(raw: Any) -> Optional[Cookies]:
    """Accept only a non-empty JSON list of cookies."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return None
    if isinstance(raw, list) and raw:
        return raw
    return None


class SessionStore(ABC):
    """Stores a cookie list under a string key."""

    @abstractmethod
    async def load(self, key: str) -> Optional[Cookies]:
        """Return the stored cookies, or None when nothing usable is stored."""
        pass

    @abstractmethod
    async def save(self, key: str, cookies: Cookies) -> None:
        pass


class FileSessionStore(SessionStore):
    """Cookie blob in a local JSON file. The key is ignored: one file, one session."""

    def __init__(self, path: Union[Path, str]) -> None:
        self.path = Path(path)

    async def load(self, key: str) -> Optional[Cookies]:
        if not self.path.exists():
            return None
        try:
            return _as_cookie_list(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read cookie file {self.path}: {str(e)}")
            return None

    async def save(self, key: str, cookies: Cookies) -> None:
        try:
            self.path.write_text(json.dumps(cookies), encoding="utf-8")
        except OSError as e:
            raise SessionStoreError(f"Could not write cookie file {self.path}: {e}") from e


class UpstashSessionStore(SessionStore):
    """Cookie blob stored as a string value in Upstash Redis over its REST API."""

    def __init__(
        self,
        rest_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.rest_url = rest_url.rstrip("/")
        self.token = token
        self._client = client
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, content: Optional[str] = None) -> Any:
        url = f"{self.rest_url}/{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=self._headers(), content=content)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=self._headers(), content=content)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise SessionStoreError(f"Upstash {method} {path.split('/')[0]} failed: {e}") from e
        except ValueError as e:
            raise SessionStoreError(f"Upstash returned a non-JSON response: {e}") from e

    async def load(self, key: str) -> Optional[Cookies]:
        body = await self._request("GET", f"get/{quote(key, safe='')}")
        return _as_cookie_list(body.get("result") if isinstance(body, dict) else None)

    async def save(self, key: str, cookies: Cookies) -> None:
        await self._request("POST", f"set/{quote(key, safe='')}", content=json.dumps(cookies))


class LayeredSessionStore(SessionStore):
    """
    Tries each backend in order.

    ``load`` returns the first usable blob; ``save`` writes to every backend.
    Backend failures are logged and never propagate: a broken store must not
    fail the scrape itself.
    """

    def __init__(self, stores: Sequence[SessionStore]) -> None:
        self.stores = list(stores)

    async def load(self, key: str) -> Optional[Cookies]:
        for store in self.stores:
            try:
                cookies = await store.load(key)
            except SessionStoreError as e:
                logger.warning(f"Session store {type(store).__name__} load failed: {str(e)}")
                continue
            if cookies:
                logger.info(f"Restored {len(cookies)} cookies from {type(store).__name__}")
                return cookies
        return None

    async def save(self, key: str, cookies: Cookies) -> None:
        for store in self.stores:
            try:
                await store.save(key, cookies)
            except SessionStoreError as e:
                logger.warning(f"Session store {type(store).__name__} save failed: {str(e)}")


def build_session_store(settings: Settings) -> LayeredSessionStore:
    """Redis first when configured, then the local cookie file."""
    stores: List[SessionStore] = []
    if settings.has_redis:
        stores.append(UpstashSessionStore(settings.redis_rest_url, settings.redis_rest_token))
    stores.append(FileSessionStore(settings.cookies_path))
    return LayeredSessionStore(stores)
