"""Tests for the scanner registry."""

import pytest

from secscan.config import Settings
from secscan.core.errors import UnknownScannerError
from secscan.scanners.registry import DEFAULT_SCANNERS, ScannerRegistry, build_registry


def test_resolve_keeps_caller_order(static_scanner) -> None:
    registry = ScannerRegistry([static_scanner("a", []), static_scanner("b", []), static_scanner("c", [])])

    resolved = registry.resolve(["c", "a"])

    assert [s.name for s in resolved] == ["c", "a"]


def test_resolve_rejects_unknown_names(static_scanner) -> None:
    registry = ScannerRegistry([static_scanner("a", [])])

    with pytest.raises(UnknownScannerError, match="Unknown scanner") as exc:
        registry.resolve(["a", "nmap", "zap"])

    assert exc.value.unknown == ["nmap", "zap"]
    assert exc.value.available == ["a"]


def test_get_unknown_raises(static_scanner) -> None:
    registry = ScannerRegistry([static_scanner("a", [])])

    with pytest.raises(UnknownScannerError):
        registry.get("b")


def test_register_replaces_by_name(static_scanner) -> None:
    first, second = static_scanner("a", []), static_scanner("a", [])
    registry = ScannerRegistry([first])

    registry.register(second)

    assert registry.get("a") is second
    assert registry.names() == ["a"]


def test_build_registry_contains_all_scanners() -> None:
    registry = build_registry(Settings(safe_browsing_api_key=None))

    assert registry.names() == ["crawler", "observatory", "safe_browsing", "ssl"]
    assert all(name in registry for name in DEFAULT_SCANNERS)
    assert registry.availability() == {
        "crawler": True,
        "observatory": True,
        "safe_browsing": False,
        "ssl": True,
    }


def test_build_registry_passes_settings_through() -> None:
    registry_settings = Settings(observatory_max_attempts=3, crawler_delay=0.5, tls_timeout=4,
                                 scanner_timeout=60, safe_browsing_api_key="key",
                                 user_agent="AgencyBot/2.0", crawler_verify_tls=False)
    registry = build_registry(registry_settings)

    assert registry.get("observatory").max_attempts == 3
    assert registry.get("observatory").deadline == pytest.approx(54)
    assert registry.get("crawler").delay == 0.5
    assert registry.get("crawler").user_agent == "AgencyBot/2.0"
    assert not registry.get("crawler").verify_tls
    assert registry.get("ssl").timeout == 4
    assert registry.get("safe_browsing").available
