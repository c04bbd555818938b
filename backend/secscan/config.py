import os
from typing import List, Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from secscan.core.http import USER_AGENT

load_dotenv()

# Keys copied from .env.example are treated as missing.
_PLACEHOLDER_PREFIXES = ("sk-your-key", "sk-ant-your-key", "your-", "changeme")


def _key(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    if not value or value.lower().startswith(_PLACEHOLDER_PREFIXES):
        return None
    return value


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


class Settings(BaseModel):
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    safe_browsing_api_key: Optional[str] = None

    observatory_api_url: str = "https://http-observatory.security.mozilla.org/api/v1"
    observatory_poll_interval: float = 1.0
    observatory_max_attempts: int = 30

    tls_timeout: float = 10.0
    crawler_delay: float = 0.2
    crawler_verify_tls: bool = True
    user_agent: str = USER_AGENT
    scanner_timeout: float = 120.0

    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            openai_api_key=_key("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL") or defaults.openai_model,
            safe_browsing_api_key=_key("GOOGLE_SAFE_BROWSING_API_KEY"),
            observatory_api_url=os.getenv("OBSERVATORY_API_URL") or defaults.observatory_api_url,
            observatory_poll_interval=_float("OBSERVATORY_POLL_INTERVAL", defaults.observatory_poll_interval),
            observatory_max_attempts=_int("OBSERVATORY_MAX_ATTEMPTS", defaults.observatory_max_attempts),
            tls_timeout=_float("TLS_TIMEOUT", defaults.tls_timeout),
            crawler_delay=_float("CRAWLER_DELAY", defaults.crawler_delay),
            crawler_verify_tls=_bool("CRAWLER_VERIFY_TLS", defaults.crawler_verify_tls),
            user_agent=os.getenv("SCANNER_USER_AGENT") or defaults.user_agent,
            scanner_timeout=_float("SCANNER_TIMEOUT", defaults.scanner_timeout),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL") or defaults.log_level,
        )
