from typing import Iterable


class SecScanError(Exception):
    """Base class for errors raised by the scan service."""


class ScannerError(SecScanError):
    """Raised inside a scanner; converted to a failed outcome at the plugin boundary."""


class UnknownScannerError(SecScanError):
    def __init__(self, unknown: Iterable[str], available: Iterable[str]):
        self.unknown = sorted(set(unknown))
        self.available = sorted(available)
        super().__init__(
            f"Unknown scanner(s): {', '.join(self.unknown)}. "
            f"Available scanners: {', '.join(self.available) or 'none'}"
        )


class JobNotFoundError(SecScanError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class SiteNotFoundError(SecScanError):
    def __init__(self, site_id: str):
        self.site_id = site_id
        super().__init__(f"Site not found: {site_id}")


class InvalidTransitionError(SecScanError):
    def __init__(self, job_id: str, current: str, requested: str):
        self.job_id = job_id
        self.current = current
        self.requested = requested
        super().__init__(f"Job {job_id}: cannot move from '{current}' to '{requested}'")

