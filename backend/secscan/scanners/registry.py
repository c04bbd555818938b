from typing import Dict, Iterable, List, Optional, Sequence

from secscan.config import Settings
from secscan.core.errors import UnknownScannerError
from secscan.scanners.base import Scanner
from secscan.scanners.crawler import ContentCrawler
from secscan.scanners.observatory import ObservatoryScanner
from secscan.scanners.safe_browsing import SafeBrowsingScanner
from secscan.scanners.tls import TLSInspector

DEFAULT_SCANNERS = ["observatory", "ssl", "crawler"]

# Observatory gives up on its own, with an error finding, before the per-scanner cutoff.
OBSERVATORY_DEADLINE_SHARE = 0.9


class ScannerRegistry:
    """Name -> plugin lookup, built once at startup and injected where needed."""

    def __init__(self, scanners: Optional[Iterable[Scanner]] = None):
        self._scanners: Dict[str, Scanner] = {}
        for scanner in scanners or []:
            self.register(scanner)

    def register(self, scanner: Scanner) -> None:
        self._scanners[scanner.name] = scanner

    def get(self, name: str) -> Scanner:
        try:
            return self._scanners[name]
        except KeyError:
            raise UnknownScannerError([name], self.names()) from None

    def __contains__(self, name: str) -> bool:
        return name in self._scanners

    def __iter__(self):
        return (self._scanners[name] for name in self.names())

    def names(self) -> List[str]:
        return sorted(self._scanners)

    def resolve(self, names: Sequence[str]) -> List[Scanner]:
        """Scanners for ``names`` in the caller's order; unknown names are an error."""
        missing = [n for n in names if n not in self._scanners]
        if missing:
            raise UnknownScannerError(missing, self.names())
        return [self._scanners[n] for n in names]

    def availability(self) -> Dict[str, bool]:
        return {name: self._scanners[name].available for name in self.names()}


def build_registry(settings: Settings) -> ScannerRegistry:
    return ScannerRegistry([
        ObservatoryScanner(
            api_url=settings.observatory_api_url,
            poll_interval=settings.observatory_poll_interval,
            max_attempts=settings.observatory_max_attempts,
            deadline=settings.scanner_timeout * OBSERVATORY_DEADLINE_SHARE,
        ),
        TLSInspector(timeout=settings.tls_timeout),
        ContentCrawler(
            delay=settings.crawler_delay,
            user_agent=settings.user_agent,
            verify_tls=settings.crawler_verify_tls,
        ),
        SafeBrowsingScanner(api_key=settings.safe_browsing_api_key),
    ])
