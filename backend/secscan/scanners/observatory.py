import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from secscan.core.errors import ScannerError
from secscan.core.http import JSON, client_for
from secscan.core.severity import grade_to_severity
from secscan.models.schemas import Finding
from secscan.scanners.base import RunResult, Scanner, hostname_of, make_finding

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://http-observatory.security.mozilla.org/api/v1"
POLL_INTERVAL = 1.0
MAX_ATTEMPTS = 30
REQUEST_TIMEOUT = 10.0  # per start/poll request

# severity -> (title, recommendation)
_GRADE_BANDS = {
    "critical": ("Poor Security Headers",
                 "Implement recommended security headers to improve your score."),
    "high": ("Weak Security Headers",
             "Review and implement missing security headers."),
    "medium": ("Moderate Security Headers",
               "Consider adding additional security headers to reach grade B or higher."),
    "low": ("Good Security Headers",
            "Good job! Consider addressing the remaining issues to reach grade A."),
    "info": ("Excellent Security Headers",
             "Excellent! Security headers are properly configured."),
}


class ObservatoryClient:
    """Thin wrapper over the Observatory analyze endpoint (start + poll)."""

    def __init__(self, client: httpx.AsyncClient, api_url: str = DEFAULT_API_URL):
        self._client = client
        self._endpoint = api_url.rstrip("/") + "/analyze"

    @staticmethod
    def _json(resp: httpx.Response) -> Dict[str, Any]:
        if resp.status_code >= 400:
            raise ScannerError(f"Observatory API returned {resp.status_code}")
        data = resp.json()
        if data.get("error"):
            raise ScannerError(str(data["error"]))
        return data

    async def start(self, hostname: str, timeout: float = REQUEST_TIMEOUT) -> Dict[str, Any]:
        return self._json(await self._client.post(self._endpoint, params={"host": hostname}, timeout=timeout))

    async def poll(self, hostname: str, timeout: float = REQUEST_TIMEOUT) -> Dict[str, Any]:
        return self._json(await self._client.get(self._endpoint, params={"host": hostname}, timeout=timeout))


class ObservatoryScanner(Scanner):
    name = "observatory"
    label = "Mozilla Observatory"
    description = "Analyzes HTTP security headers using Mozilla's Observatory service (grade A+ to F)"

    def __init__(self, api_url: str = DEFAULT_API_URL, poll_interval: float = POLL_INTERVAL,
                 max_attempts: int = MAX_ATTEMPTS, deadline: Optional[float] = None):
        self.api_url = api_url
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        # Wall-clock budget for start plus polling; None means attempts alone bound it.
        self.deadline = deadline

    @staticmethod
    def _request_timeout(expires: Optional[float]) -> float:
        if expires is None:
            return REQUEST_TIMEOUT
        remaining = expires - time.monotonic()
        if remaining <= 0:
            raise ScannerError("Observatory scan timed out")
        return min(REQUEST_TIMEOUT, remaining)

    async def _wait_for_result(self, api: ObservatoryClient, hostname: str,
                               expires: Optional[float] = None) -> Dict[str, Any]:
        for attempt in range(1, self.max_attempts + 1):
            if expires is not None and time.monotonic() + self.poll_interval >= expires:
                break
            await asyncio.sleep(self.poll_interval)
            result = await api.poll(hostname, timeout=self._request_timeout(expires))
            state = str(result.get("state", "")).upper()
            if state == "FINISHED":
                return result
            if state == "FAILED":
                raise ScannerError("Observatory scan failed")
            logger.debug("observatory %s: state=%s (attempt %d/%d)", hostname, state, attempt, self.max_attempts)
        raise ScannerError("Observatory scan timed out")

    async def _run(self, target: str) -> RunResult:
        hostname = hostname_of(target)
        expires = time.monotonic() + self.deadline if self.deadline is not None else None
        async with client_for(JSON) as client:
            api = ObservatoryClient(client, self.api_url)
            started = await api.start(hostname, timeout=self._request_timeout(expires))
            if str(started.get("state", "")).upper() == "FINISHED":
                result = started
            else:
                result = await self._wait_for_result(api, hostname, expires)

        grade: Optional[str] = result.get("grade")
        score = result.get("score")
        metadata = {
            "grade": grade,
            "score": score,
            "tests_passed": result.get("tests_passed"),
            "tests_failed": result.get("tests_failed"),
            "tests_quantity": result.get("tests_quantity"),
        }
        severity = grade_to_severity(grade)
        if severity is None:
            return [], metadata

        title, recommendation = _GRADE_BANDS[severity]
        quantity = result.get("tests_quantity")
        if severity == "info":
            detail = f"{result.get('tests_passed')} of {quantity} tests passed."
        elif severity == "low":
            detail = f"Only {result.get('tests_failed')} tests failed."
        else:
            detail = f"{result.get('tests_failed')} of {quantity} security tests failed."
        finding = make_finding(
            title, severity,
            f"Mozilla Observatory grade: {grade} (Score: {score}/100). {detail}",
            recommendation,
            target,
            evidence=f"Grade: {grade}, Score: {score}/100",
            grade=grade, score=score,
        )
        return [finding], metadata

    def _on_error(self, target: str, exc: Exception, error: str) -> List[Finding]:
        return [make_finding(
            "Observatory Scan Error", "medium",
            f"Unable to complete Mozilla Observatory scan: {error}",
            "The site may not be publicly accessible or the Observatory service may be unavailable.",
            target, evidence=error,
        )]
