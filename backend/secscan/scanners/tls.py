"""TLS/certificate inspection.

Connects to port 443 with certificate verification disabled so that expired,
self-signed or mismatched certificates can still be inspected. With
``CERT_NONE`` the ssl module hands back only the DER bytes, so the certificate
is decoded with ``cryptography``.
"""

import asyncio
import logging
import math
import socket
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID

from secscan.core.errors import ScannerError
from secscan.models.schemas import Finding
from secscan.scanners.base import RunResult, Scanner, hostname_of, make_finding

logger = logging.getLogger(__name__)

TLS_PORT = 443
TIMEOUT = 10.0
EXPIRY_WARNING_DAYS = 30
OUTDATED_PROTOCOLS = {"TLSv1", "TLSv1.1", "SSLv3", "SSLv2"}


@dataclass
class CertificateInfo:
    common_name: str
    sans: List[str] = field(default_factory=list)
    not_after: Optional[datetime] = None
    issuer: str = ""


def _name_attr(name: x509.Name, oid) -> str:
    attrs = name.get_attributes_for_oid(oid)
    return str(attrs[0].value) if attrs else ""


def parse_certificate(der: bytes) -> CertificateInfo:
    cert = x509.load_der_x509_certificate(der)
    try:
        san_ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        sans = list(san_ext.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        sans = []
    issuer = _name_attr(cert.issuer, NameOID.ORGANIZATION_NAME) or _name_attr(cert.issuer, NameOID.COMMON_NAME)
    return CertificateInfo(
        common_name=_name_attr(cert.subject, NameOID.COMMON_NAME),
        sans=sans,
        not_after=cert.not_valid_after_utc,
        issuer=issuer,
    )


def fetch_certificate(hostname: str, port: int = TLS_PORT, timeout: float = TIMEOUT) -> Tuple[bytes, Optional[str]]:
    """Blocking handshake; returns (DER certificate, negotiated protocol)."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    # Old protocol versions must negotiate so they can be reported. OpenSSL 3
    # refuses TLS 1.0/1.1 at the default security level, hence SECLEVEL=0.
    context.minimum_version = ssl.TLSVersion.MINIMUM_SUPPORTED
    context.set_ciphers("DEFAULT:@SECLEVEL=0")

    with socket.create_connection((hostname, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=hostname) as ssock:
            der = ssock.getpeercert(binary_form=True)
            protocol = ssock.version()
    if not der:
        raise ScannerError("No certificate found")
    return der, protocol


def hostname_matches(hostname: str, common_name: str, sans: List[str]) -> bool:
    host = hostname.lower().rstrip(".")
    for name in [common_name, *sans]:
        name = (name or "").lower().rstrip(".")
        if not name:
            continue
        if name == host:
            return True
        # *.example.com covers exactly one extra label
        if name.startswith("*.") and host.count(".") == name.count(".") and host.endswith(name[1:]):
            return True
    return False


def assess_certificate(target: str, hostname: str, cert: CertificateInfo,
                       protocol: Optional[str], now: Optional[datetime] = None) -> List[Finding]:
    now = now or datetime.now(timezone.utc)
    findings: List[Finding] = []
    meta = {"issuer": cert.issuer, "common_name": cert.common_name}

    if cert.not_after is not None:
        expiry = cert.not_after
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        days = math.floor((expiry - now).total_seconds() / 86400)
        expiry_date = expiry.date().isoformat()
        evidence = f"Expiry date: {expiry.isoformat()}"
        meta.update(expiry_date=expiry_date, days_until_expiry=days)
        if days < 0:
            findings.append(make_finding(
                "SSL Certificate Expired", "critical",
                f"The SSL certificate expired {abs(days)} days ago on {expiry_date}.",
                "Renew the SSL certificate immediately to avoid browser warnings and security risks.",
                target, evidence, **meta))
        elif days <= EXPIRY_WARNING_DAYS:
            findings.append(make_finding(
                "SSL Certificate Expiring Soon", "high",
                f"The SSL certificate will expire in {days} days on {expiry_date}.",
                "Renew the SSL certificate before it expires to avoid service disruption.",
                target, evidence, **meta))
        else:
            findings.append(make_finding(
                "SSL Certificate Valid", "info",
                f"The SSL certificate is valid for {days} more days (expires {expiry_date}).",
                "No action needed.",
                target, evidence, **meta))

    if protocol:
        if protocol in OUTDATED_PROTOCOLS:
            findings.append(make_finding(
                "Outdated TLS Version", "high",
                f"The server is using {protocol}, which is deprecated and considered insecure.",
                "Upgrade to TLS 1.2 or TLS 1.3.",
                target, f"Protocol: {protocol}", protocol=protocol))
        else:
            findings.append(make_finding(
                "TLS Version Check", "info",
                f"The server is using {protocol}, which is secure.",
                "No action needed.",
                target, f"Protocol: {protocol}", protocol=protocol))

    if not hostname_matches(hostname, cert.common_name, cert.sans):
        findings.append(make_finding(
            "SSL Certificate Hostname Mismatch", "high",
            f"The certificate is issued for '{cert.common_name}' but the site is accessed via '{hostname}'.",
            "Obtain a certificate that matches the domain name or add it to the Subject Alternative Names (SAN).",
            target, f"Certificate CN: {cert.common_name}, SANs: {', '.join(cert.sans)}",
            common_name=cert.common_name, sans=list(cert.sans)))

    return findings


def _is_connection_failure(exc: Exception) -> bool:
    if isinstance(exc, (ConnectionRefusedError, socket.gaierror, TimeoutError)):
        return True
    text = str(exc)
    return any(marker in text for marker in ("ECONNREFUSED", "ENOTFOUND", "Name or service not known",
                                              "Connection refused", "nodename nor servname"))


def _is_expiry_failure(exc: Exception) -> bool:
    text = str(exc)
    return "CERT_HAS_EXPIRED" in text or "certificate has expired" in text


class TLSInspector(Scanner):
    name = "ssl"
    label = "SSL/TLS"
    description = "Checks SSL certificate validity, expiry, hostname and TLS version"

    def __init__(self, timeout: float = TIMEOUT, port: int = TLS_PORT):
        self.timeout = timeout
        self.port = port

    async def _run(self, target: str) -> RunResult:
        hostname = hostname_of(target)
        der, protocol = await asyncio.to_thread(fetch_certificate, hostname, self.port, self.timeout)
        cert = parse_certificate(der)
        findings = assess_certificate(target, hostname, cert, protocol)
        metadata = {
            "protocol": protocol,
            "issuer": cert.issuer,
            "common_name": cert.common_name,
            "sans": cert.sans,
            "expiry_date": cert.not_after.isoformat() if cert.not_after else None,
        }
        return findings, metadata

    def _on_error(self, target: str, exc: Exception, error: str) -> List[Finding]:
        if _is_connection_failure(exc):
            return [make_finding(
                "SSL Connection Failed", "critical",
                "Unable to establish SSL connection to the target. The server may be down or not "
                f"accepting HTTPS connections on port {self.port}.",
                f"Verify the server is running and accessible, and that port {self.port} is open.",
                target, evidence=error)]
        if _is_expiry_failure(exc):
            return [make_finding(
                "SSL Certificate Expired", "critical",
                "The SSL certificate has expired.",
                "Renew the SSL certificate immediately.",
                target, evidence=error)]
        return [make_finding(
            "SSL Scan Error", "medium",
            f"SSL scan encountered an error: {error}",
            "Investigate the SSL configuration of the target server.",
            target, evidence=error)]
