"""Common contract for scanner plugins.

Every plugin implements ``_run`` and returns its findings plus optional
metadata. ``probe`` is the public entry point: it times the run and turns any
exception into a failed ``ScannerOutcome`` carrying the findings produced by
``_on_error`` so the report always has something to show.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from secscan.models.schemas import Finding, ScannerOutcome, Severity

logger = logging.getLogger(__name__)

RunResult = Tuple[List[Finding], Dict[str, Any]]


def ensure_scheme(target: str) -> str:
    target = target.strip()
    if not re.match(r"^https?://", target, re.IGNORECASE):
        return f"https://{target}"
    return target


def hostname_of(target: str) -> str:
    try:
        host = urlsplit(ensure_scheme(target)).hostname
    except ValueError:
        host = None
    if host:
        return host
    return re.sub(r"^https?://", "", target.strip(), flags=re.IGNORECASE).split("/")[0]


def site_root(url: str) -> str:
    """Scheme and host of ``url`` with an empty path, e.g. ``https://example.com:8443/``."""
    parts = urlsplit(ensure_scheme(url))
    return f"{parts.scheme}://{parts.netloc}/"


def normalize_url(url: str) -> str:
    """Canonical form used to de-duplicate sites: no scheme, www, trailing slash or default port."""
    normalized = url.strip().lower()
    normalized = re.sub(r"^https?://", "", normalized)
    normalized = re.sub(r"^www\.", "", normalized)
    normalized = normalized.rstrip("/")
    normalized = re.sub(r":(80|443)$", "", normalized)
    return normalized


def make_finding(title: str, severity: Severity, description: str, recommendation: str,
                 affected_target: str, evidence: Optional[str] = None, **metadata: Any) -> Finding:
    return Finding(
        title=title,
        severity=severity,
        description=description,
        recommendation=recommendation,
        affected_target=affected_target,
        evidence=evidence,
        metadata=metadata,
    )


class Scanner(ABC):
    """Plugin interface: probe one target, return one outcome."""

    name: str
    label: str
    description: str

    @property
    def available(self) -> bool:
        return True

    async def probe(self, target: str) -> ScannerOutcome:
        started = time.perf_counter()
        try:
            findings, metadata = await self._run(target)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.warning("%s scan of %s failed: %s", self.name, target, error)
            return ScannerOutcome(
                scanner_name=self.name,
                succeeded=False,
                findings=self._on_error(target, e, error),
                error=error,
                duration_seconds=time.perf_counter() - started,
            )
        return ScannerOutcome(
            scanner_name=self.name,
            succeeded=True,
            findings=findings,
            duration_seconds=time.perf_counter() - started,
            metadata=metadata,
        )

    @abstractmethod
    async def _run(self, target: str) -> RunResult:
        """Do the actual probing. May raise; ``probe`` handles it."""

    @abstractmethod
    def _on_error(self, target: str, exc: Exception, error: str) -> List[Finding]:
        """Findings describing a failed run."""
