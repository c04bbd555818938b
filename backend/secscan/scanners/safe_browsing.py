from typing import List, Optional

from secscan.core.errors import ScannerError
from secscan.core.http import JSON, client_for
from secscan.models.schemas import Finding
from secscan.scanners.base import RunResult, Scanner, ensure_scheme, make_finding

API_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
CLIENT_ID = "secscan-dashboard"
CLIENT_VERSION = "1.0.0"

THREAT_TYPES = [
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
]


def build_request(url: str) -> dict:
    return {
        "client": {"clientId": CLIENT_ID, "clientVersion": CLIENT_VERSION},
        "threatInfo": {
            "threatTypes": THREAT_TYPES,
            "platformTypes": ["ANY_PLATFORM"],
            "threatEntryTypes": ["URL"],
            "threatEntries": [{"url": url}],
        },
    }


class SafeBrowsingScanner(Scanner):
    name = "safe_browsing"
    label = "Safe Browsing"
    description = "Checks the site against the Google Safe Browsing malware and phishing lists"

    def __init__(self, api_key: Optional[str] = None, api_url: str = API_URL):
        self.api_key = api_key
        self.api_url = api_url

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def _run(self, target: str) -> RunResult:
        if not self.api_key:
            # Missing key is a configuration state, not a failed scan.
            return [make_finding(
                "Safe Browsing Not Configured", "info",
                "Google Safe Browsing API key is not configured. Add GOOGLE_SAFE_BROWSING_API_KEY "
                "to .env to enable this scanner.",
                "Get an API key from Google Cloud Console and add it to your environment variables.",
                target, "Google Safe Browsing API key not configured")], {"configured": False}

        url = ensure_scheme(target)
        async with client_for(JSON) as client:
            resp = await client.post(self.api_url, params={"key": self.api_key}, json=build_request(url))
        if resp.status_code >= 400:
            raise ScannerError(f"Safe Browsing API error: {resp.status_code} - {resp.text[:200]}")

        matches = resp.json().get("matches") or []
        findings: List[Finding] = []
        for match in matches:
            threat = match.get("threatType", "UNKNOWN")
            platform = match.get("platformType", "ANY_PLATFORM")
            findings.append(make_finding(
                f"Safe Browsing Threat Detected: {threat}",
                "critical" if threat == "MALWARE" else "high",
                f"Google Safe Browsing has flagged this site as {threat.replace('_', ' ').lower()}.",
                "Investigate and remove malicious content immediately. Your site may be compromised.",
                target, f"Threat type: {threat}, Platform: {platform}",
                threat_type=threat, platform_type=platform))

        if not findings:
            findings.append(make_finding(
                "No Safe Browsing Threats Detected", "info",
                "Google Safe Browsing did not find any known malware, phishing, or harmful applications on this site.",
                "Continue monitoring your site for security threats.",
                target, "Clean scan - no matches found"))
        return findings, {"configured": True, "matches": len(matches)}

    def _on_error(self, target: str, exc: Exception, error: str) -> List[Finding]:
        return [make_finding(
            "Safe Browsing Scan Error", "medium",
            f"Unable to complete Google Safe Browsing scan: {error}",
            "Check your API key and network connectivity.",
            target, evidence=error)]
