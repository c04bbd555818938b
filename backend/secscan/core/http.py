"""httpx client factory for the scanners that talk HTTP."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import httpx

USER_AGENT = "SecScan-Security-Scanner/1.0"
REQUEST_TIMEOUT = httpx.Timeout(10.0, connect=5.0)

JSON = "application/json"
HTML = "text/html, */*"


def scanner_headers(user_agent: Optional[str] = None, accept: str = "*/*",
                    extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    headers = {"User-Agent": user_agent or USER_AGENT, "Accept": accept}
    if extra:
        headers.update(extra)
    return headers


@asynccontextmanager
async def client_for(accept: str = "*/*", *, user_agent: Optional[str] = None, verify: bool = True,
                     timeout: httpx.Timeout = REQUEST_TIMEOUT,
                     follow_redirects: bool = True) -> AsyncIterator[httpx.AsyncClient]:
    """
    One client per scan. ``verify=False`` lets a scanner read sites whose
    certificate is broken; the TLS scanner reports those separately.
    """
    async with httpx.AsyncClient(
        headers=scanner_headers(user_agent, accept),
        timeout=timeout,
        verify=verify,
        follow_redirects=follow_redirects,
        http2=True,
    ) as client:
        yield client
