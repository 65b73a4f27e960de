"""
Environment-driven settings for the scraper service.
"""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_COOKIES_KEY = "li:cookies"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


class Settings(BaseModel):
    """Runtime configuration. Every field is optional; missing credentials disable login."""

    user_agent: Optional[str] = Field(None, description="User-Agent override for the browser context")
    linkedin_email: Optional[str] = Field(None, description="Login e-mail")
    linkedin_password: Optional[str] = Field(None, description="Login password")
    proxy_url: Optional[str] = Field(None, description="Upstream proxy server, e.g. http://host:port")
    proxy_username: Optional[str] = Field(None, description="Proxy user")
    proxy_password: Optional[str] = Field(None, description="Proxy password")
    rate_min_ms: int = Field(1200, ge=0, description="Minimum spacing between task starts")
    rate_max_ms: int = Field(2500, ge=0, description="Maximum spacing between task starts")
    redis_rest_url: Optional[str] = Field(None, description="Upstash Redis REST endpoint")
    redis_rest_token: Optional[str] = Field(None, description="Upstash Redis REST token")
    cookies_key: str = Field(DEFAULT_COOKIES_KEY, description="Session store key for the cookie blob")
    cookies_path: str = Field("./cookies.json", description="Local cookie file fallback")
    headless: bool = Field(True, description="Run Chromium headless")
    port: int = Field(3000, description="HTTP port")
    log_level: str = Field("INFO", description="Log level name")

    @property
    def has_credentials(self) -> bool:
        return bool(self.linkedin_email)

    @property
    def has_redis(self) -> bool:
        return bool(self.redis_rest_url and self.redis_rest_token)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after loading .env)."""
        load_dotenv()
        min_ms = _env_int("RATE_MIN_MS", 1200)
        max_ms = _env_int("RATE_MAX_MS", 2500)
        return cls(
            user_agent=os.getenv("USER_AGENT") or None,
            linkedin_email=os.getenv("LINKEDIN_EMAIL") or None,
            linkedin_password=os.getenv("LINKEDIN_PASSWORD") or None,
            proxy_url=os.getenv("PROXY_URL") or None,
            proxy_username=os.getenv("PROXY_USERNAME") or None,
            proxy_password=os.getenv("PROXY_PASSWORD") or None,
            rate_min_ms=min_ms,
            rate_max_ms=max(min_ms, max_ms),
            redis_rest_url=os.getenv("REDIS_REST_URL") or None,
            redis_rest_token=os.getenv("REDIS_REST_TOKEN") or None,
            cookies_key=os.getenv("REDIS_COOKIES_KEY") or DEFAULT_COOKIES_KEY,
            cookies_path=os.getenv("COOKIES_PATH") or "./cookies.json",
            headless=_env_bool("HEADLESS", True),
            port=_env_int("PORT", 3000),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
