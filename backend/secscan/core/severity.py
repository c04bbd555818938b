from typing import Any, Dict, Iterable, List, Optional
from secscan.models.schemas import Finding, ScannerOutcome, Severity

SEVERITY_ORDER: tuple = ("critical", "high", "medium", "low", "info")

_RANK = {sev: i for i, sev in enumerate(SEVERITY_ORDER)}


def severity_rank(severity: str) -> int:
    """0 for critical ... 4 for info."""
    return _RANK[severity]


def empty_counts() -> Dict[str, int]:
    return {sev: 0 for sev in SEVERITY_ORDER}


def count_severities(findings: Iterable[Finding]) -> Dict[str, int]:
    counts = empty_counts()
    for f in findings:
        counts[f.severity] += 1
    return counts


def collect_findings(outcomes: Iterable[ScannerOutcome]) -> List[Finding]:
    return [f for o in outcomes for f in o.findings]


def worst_severity(counts: Dict[str, int]) -> Severity:
    for sev in SEVERITY_ORDER:
        if counts.get(sev, 0) > 0:
            return sev
    return "info"


def sort_findings(findings: Iterable[Any]) -> List[Any]:
    """Critical first; anything with a ``severity`` attribute. Stable."""
    return sorted(findings, key=lambda f: severity_rank(f.severity))


_GRADE_SEVERITY = {
    "F": "critical",
    "E": "high",
    "D": "high",
    "C": "medium",
    "B": "low",
    "A": "info",
}


def grade_to_severity(grade: Optional[str]) -> Optional[Severity]:
    """Map an A+..F letter grade onto a severity; modifiers (+/-) are ignored."""
    if not grade:
        return None
    return _GRADE_SEVERITY.get(grade.strip().upper()[:1])
