import asyncio
import logging
import re
from typing import Dict, List, NamedTuple, Optional
from urllib.parse import urljoin

import httpx

from secscan.core.http import HTML, client_for
from secscan.models.schemas import Finding, Severity
from secscan.scanners.base import RunResult, Scanner, ensure_scheme, make_finding, site_root

logger = logging.getLogger(__name__)

REQUEST_DELAY = 0.2  # seconds between path probes


class SensitivePath(NamedTuple):
    path: str
    severity: Severity
    label: str


# Probed in this order, one at a time. No recursion.
SENSITIVE_PATHS: List[SensitivePath] = [
    # VCS / secrets
    SensitivePath("/.env", "critical", "Environment File"),
    SensitivePath("/.git/config", "critical", "Git Config"),
    SensitivePath("/.git/HEAD", "critical", "Git HEAD"),
    # WordPress
    SensitivePath("/wp-admin/", "high", "WordPress Admin"),
    SensitivePath("/wp-login.php", "high", "WordPress Login"),
    SensitivePath("/wp-config.php.bak", "critical", "WordPress Config Backup"),
    SensitivePath("/wp-content/debug.log", "medium", "WordPress Debug Log"),
    SensitivePath("/xmlrpc.php", "medium", "XML-RPC Endpoint"),
    # Admin / status
    SensitivePath("/phpmyadmin/", "high", "phpMyAdmin"),
    SensitivePath("/adminer.php", "high", "Adminer"),
    SensitivePath("/server-status", "high", "Apache Server Status"),
    SensitivePath("/server-info", "high", "Apache Server Info"),
    SensitivePath("/info.php", "high", "PHP Info"),
    SensitivePath("/phpinfo.php", "high", "PHP Info"),
    # APIs / docs
    SensitivePath("/api/", "medium", "API Endpoint"),
    SensitivePath("/graphql", "medium", "GraphQL Endpoint"),
    SensitivePath("/swagger.json", "medium", "Swagger API Doc"),
    SensitivePath("/openapi.json", "medium", "OpenAPI Spec"),
    # Manifests
    SensitivePath("/composer.json", "low", "Composer Config"),
    SensitivePath("/package.json", "low", "NPM Package Config"),
    # Backups / listings
    SensitivePath("/backup/", "medium", "Backup Directory"),
    SensitivePath("/backups/", "medium", "Backups Directory"),
    SensitivePath("/db/", "medium", "Database Directory"),
    # Public by convention
    SensitivePath("/robots.txt", "info", "Robots.txt"),
    SensitivePath("/sitemap.xml", "info", "Sitemap"),
    SensitivePath("/.well-known/security.txt", "info", "Security.txt"),
]

# pattern -> (name, category)
TECH_SIGNATURES = [
    (re.compile(r"wp-content|wp-includes", re.I), "WordPress", "CMS"),
    (re.compile(r"woocommerce", re.I), "WooCommerce", "E-commerce"),
    (re.compile(r"__NEXT_DATA__|next\.js", re.I), "Next.js", "Framework"),
    (re.compile(r"_nuxt|nuxt\.js", re.I), "Nuxt.js", "Framework"),
    (re.compile(r"__react|react\.js", re.I), "React", "Library"),
    (re.compile(r"vue\.js|__vue", re.I), "Vue.js", "Framework"),
    (re.compile(r"jquery\.js|jquery\.min\.js", re.I), "jQuery", "Library"),
    (re.compile(r"bootstrap\.css|bootstrap\.min\.css", re.I), "Bootstrap", "CSS Framework"),
    (re.compile(r"tailwindcss|tailwind\.min\.css", re.I), "Tailwind CSS", "CSS Framework"),
    (re.compile(r"x-powered-by.*php", re.I), "PHP", "Backend"),
    (re.compile(r"laravel", re.I), "Laravel", "Framework"),
    (re.compile(r"cloudflare", re.I), "Cloudflare", "CDN"),
    (re.compile(r"nginx", re.I), "Nginx", "Web Server"),
    (re.compile(r"apache", re.I), "Apache", "Web Server"),
    (re.compile(r"google-analytics|gtag\.js|ga\.js", re.I), "Google Analytics", "Analytics"),
    (re.compile(r"googletagmanager|gtm\.js", re.I), "Google Tag Manager", "Analytics"),
]

MIXED_CONTENT_RE = re.compile(r"""<(?:img|script|link|iframe)[^>]*(?:src|href)=["']http://[^"']*["']""", re.I)
HTTP_FORM_RE = re.compile(r"""<form[^>]*action=["']http://[^"']*["']""", re.I)

_EXPOSED_RECOMMENDATIONS = {
    "critical": "URGENT: Immediately restrict access to this file/directory. It should never be publicly accessible.",
    "high": "Restrict access to this path using authentication and IP whitelisting.",
    "medium": "Consider restricting access or disabling this feature if not needed.",
}


def detect_technologies(body: str, headers: Dict[str, str]) -> List[str]:
    haystack = body + " " + " ".join(f"{k}: {v}" for k, v in headers.items())
    return [f"{name} ({category})" for pattern, name, category in TECH_SIGNATURES if pattern.search(haystack)]


def classify_path(item: SensitivePath, url: str, status: int) -> Optional[Finding]:
    """200 -> exposed, 403 -> blocked (good), 401 -> auth required; anything else is ignored."""
    if status == 200:
        return make_finding(
            f"Exposed: {item.label}", item.severity,
            f"Sensitive path '{item.label}' is publicly accessible at {url}",
            _EXPOSED_RECOMMENDATIONS.get(item.severity, "Review if this information should be publicly accessible."),
            url, f"HTTP {status}", path=item.path, status_code=status)
    if status == 403:
        return make_finding(
            f"Detected: {item.label}", "low",
            f"Sensitive path '{item.label}' exists but is properly blocked (403 Forbidden) at {url}",
            "Good! This file/directory is protected. Consider configuring your server to return 404 "
            "instead of 403 to avoid revealing file existence.",
            url, f"HTTP {status}", path=item.path, status_code=status)
    if status == 401:
        return make_finding(
            f"Auth Required: {item.label}", "medium",
            f"Sensitive path '{item.label}' requires authentication (401) at {url}",
            "Authentication is in place, but verify it's using strong credentials and secure protocols.",
            url, f"HTTP {status}", path=item.path, status_code=status)
    return None


def inspect_body(base_url: str, body: str) -> List[Finding]:
    findings: List[Finding] = []
    if base_url.lower().startswith("https://"):
        mixed = MIXED_CONTENT_RE.findall(body)
        if mixed:
            findings.append(make_finding(
                "Mixed Content Detected", "medium",
                f"Found {len(mixed)} HTTP resources loaded on an HTTPS page. "
                "This can cause security warnings and broken content.",
                "Update all resource URLs to use HTTPS, or use protocol-relative URLs (//example.com/...).",
                base_url, ", ".join(mixed[:3]), count=len(mixed)))

    forms = HTTP_FORM_RE.findall(body)
    if forms:
        findings.append(make_finding(
            "Insecure Form Submission", "high",
            f"Found {len(forms)} forms submitting data over unencrypted HTTP connections.",
            "Update all form actions to use HTTPS to protect user data in transit.",
            base_url, ", ".join(forms[:3]), count=len(forms)))
    return findings


class ContentCrawler(Scanner):
    name = "crawler"
    label = "Site Crawler"
    description = "Scans for exposed sensitive files, mixed content and insecure forms; detects technologies"

    def __init__(self, delay: float = REQUEST_DELAY, paths: Optional[List[SensitivePath]] = None,
                 user_agent: Optional[str] = None, verify_tls: bool = True):
        self.delay = delay
        self.paths = list(paths) if paths is not None else SENSITIVE_PATHS
        self.user_agent = user_agent
        self.verify_tls = verify_tls

    async def _probe_paths(self, client: httpx.AsyncClient, base: str) -> List[Finding]:
        findings: List[Finding] = []
        for item in self.paths:
            await asyncio.sleep(self.delay)
            url = urljoin(base, item.path.lstrip("/"))
            try:
                head = await client.head(url, follow_redirects=False)
            except httpx.HTTPError as e:
                logger.debug("crawler: %s unreachable: %r", url, e)
                continue
            finding = classify_path(item, url, head.status_code)
            if finding is not None:
                findings.append(finding)
        return findings

    async def _run(self, target: str) -> RunResult:
        base_url = ensure_scheme(target)
        findings: List[Finding] = []

        async with client_for(HTML, user_agent=self.user_agent, verify=self.verify_tls) as client:
            r = await client.get(base_url)
            body = r.text or ""

            technologies = detect_technologies(body, dict(r.headers))
            if technologies:
                findings.append(make_finding(
                    "Technology Stack Detected", "info",
                    f"Identified technologies in use: {', '.join(technologies)}",
                    "Keep all software up to date and monitor for security vulnerabilities.",
                    base_url, ", ".join(technologies), technologies=technologies))

            findings.extend(await self._probe_paths(client, site_root(base_url)))

        findings.extend(inspect_body(base_url, body))

        if not findings:
            findings.append(make_finding(
                "Crawler Scan Completed", "info",
                "No sensitive paths, mixed content, or insecure forms detected.",
                "Continue monitoring and perform regular security audits.",
                base_url, "All checks passed"))
        return findings, {"status_code": r.status_code, "paths_checked": len(self.paths)}

    def _on_error(self, target: str, exc: Exception, error: str) -> List[Finding]:
        return [make_finding(
            "Crawler Scan Error", "medium",
            f"Failed to crawl target: {error}",
            "Verify the target URL is accessible and returns valid HTML.",
            target, evidence=error)]
