import json
import logging
from datetime import date
from typing import Callable, List, Optional, Protocol, Sequence

from openai import AsyncOpenAI

from secscan.config import Settings
from secscan.core.severity import collect_findings
from secscan.models.schemas import Finding, ScannerOutcome

logger = logging.getLogger(__name__)

MEDIUM_LIST_CAP = 10

SYSTEM_PROMPT = """You are a senior security analyst writing a comprehensive security assessment report. Your audience is a non-technical website owner who needs to understand:
- What security issues were found
- How serious each issue is
- What they should do about it (in plain English)

Write your report in markdown format with these sections:

## Executive Summary
A 2-3 sentence overview of the security posture. Be direct and clear about the level of risk.

## Critical Findings (if any)
List any critical severity issues that need immediate attention. Explain what each issue means in simple terms and what action to take.

## High Priority Findings (if any)
List high severity issues that should be addressed soon. Explain impact and remediation.

## Medium Priority Findings (if any)
List medium severity issues that should be addressed during regular maintenance.

## Low Priority & Informational
Briefly mention low severity and informational findings.

## Recommendations
Provide 3-5 prioritized action items, starting with the most urgent.

## Next Steps
Suggest what to do next (e.g., schedule fixes, monitor specific areas, run follow-up scans).

Keep language clear, avoid jargon, and be specific in recommendations. If there are no serious findings, congratulate them but remind them to stay vigilant.
"""


class Summarizer(Protocol):
    async def summarize(self, target: str, outcomes: Sequence[ScannerOutcome]) -> str: ...


def _plural(n: int, one: str, many: str) -> str:
    return one if n == 1 else many


class FallbackSummarizer:
    """Template report built straight from the findings. Same input, same report."""

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    async def summarize(self, target: str, outcomes: Sequence[ScannerOutcome]) -> str:
        return self.render(target, outcomes)

    def render(self, target: str, outcomes: Sequence[ScannerOutcome]) -> str:
        findings = collect_findings(outcomes)
        by_sev = {sev: [f for f in findings if f.severity == sev]
                  for sev in ("critical", "high", "medium", "low", "info")}
        critical, high, medium = by_sev["critical"], by_sev["high"], by_sev["medium"]
        low, info = by_sev["low"], by_sev["info"]

        out: List[str] = [
            f"# Security Scan Report for {target}\n",
            f"*Generated on {self._today().isoformat()}*\n",
            "---\n",
            "## Executive Summary\n",
        ]

        if critical:
            lead = (f"**Critical issues detected!** This website has {len(critical)} critical security "
                    f"{_plural(len(critical), 'issue', 'issues')} that require immediate attention. ")
        elif high:
            lead = (f"This website has {len(high)} high-priority security "
                    f"{_plural(len(high), 'issue', 'issues')} that should be addressed soon. ")
        elif medium:
            lead = (f"No critical or high-priority issues found. However, there "
                    f"{_plural(len(medium), 'is', 'are')} {len(medium)} medium-priority "
                    f"{_plural(len(medium), 'item', 'items')} to address. ")
        else:
            lead = "Good news! No critical, high, or medium-priority security issues detected. "
        out.append(lead + f"This scan examined {len(findings)} security aspects across "
                          f"{len(outcomes)} different scanning tools.\n")

        if critical:
            out.append("## Critical Findings\n")
            out.append("**Immediate action required!**\n")
            for i, f in enumerate(critical, 1):
                out.append(f"### {i}. {f.title}\n")
                out.append(f"**Description:** {f.description}\n")
                out.append(f"**What to do:** {f.recommendation}\n")
                if f.affected_target:
                    out.append(f"**Affected:** {f.affected_target}\n")

        if high:
            out.append("## High Priority Findings\n")
            out.append("**Address these soon to improve security posture.**\n")
            for i, f in enumerate(high, 1):
                out.append(f"### {i}. {f.title}\n")
                out.append(f"{f.description}\n")
                out.append(f"**Recommendation:** {f.recommendation}\n")

        if medium:
            out.append("## Medium Priority Findings\n")
            lines = [f"- **{f.title}**: {f.recommendation}" for f in medium[:MEDIUM_LIST_CAP]]
            if len(medium) > MEDIUM_LIST_CAP:
                lines.append(f"\n*... and {len(medium) - MEDIUM_LIST_CAP} more medium-priority items.*")
            out.append("\n".join(lines) + "\n")

        if low or info:
            out.append("## Low Priority & Informational\n")
            out.append(f"Found {len(low)} low-priority and {len(info)} informational items. These are "
                       "noted for awareness but don't require urgent action.\n")

        out.append("## Recommendations\n")
        out.append(self._recommendations(critical, high, medium) + "\n")

        out.append("## Next Steps\n")
        if critical or high:
            out.append("We recommend prioritizing the critical and high-priority findings first. Once addressed, "
                       "run another scan to verify the issues are resolved. If you need assistance, consult "
                       "with a web security professional.\n")
        else:
            out.append("Your site is in good shape! Continue regular scans (monthly or quarterly) to catch new "
                       "issues early. Stay informed about security updates for your platform and plugins.\n")

        out.append("---\n")
        out.append("*This report was generated automatically. For AI-powered analysis with detailed "
                   "explanations, set OPENAI_API_KEY in the service environment.*")
        return "\n".join(out)

    @staticmethod
    def _recommendations(critical: List[Finding], high: List[Finding], medium: List[Finding]) -> str:
        if critical:
            items = ["**Immediately address all critical findings** listed above.",
                     "Schedule time to resolve high-priority issues within the next week."]
        elif high:
            items = ["Address high-priority issues within the next 1-2 weeks.",
                     "Review and fix medium-priority items during regular maintenance."]
        elif medium:
            items = ["Review and address medium-priority items during your next maintenance window."]
        else:
            items = ["Continue monitoring your site's security regularly.",
                     "Keep all software, plugins, and themes up to date."]
        items += ["Run follow-up scans after making changes to verify fixes.",
                  "Consider implementing a web application firewall (WAF) for ongoing protection."]
        return "\n".join(f"{i}. {text}" for i, text in enumerate(items, 1))


def outcomes_payload(outcomes: Sequence[ScannerOutcome]) -> list:
    return [
        {
            "scanner": o.scanner_name,
            "success": o.succeeded,
            "error": o.error,
            "findings": [f.model_dump() for f in o.findings],
            "duration": round(o.duration_seconds, 2),
        }
        for o in outcomes
    ]


class OpenAISummarizer:
    """Chat-completions report; any failure falls back to the template report."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini",
                 fallback: Optional[FallbackSummarizer] = None):
        self.client = client
        self.model = model
        self.fallback = fallback or FallbackSummarizer()

    async def summarize(self, target: str, outcomes: Sequence[ScannerOutcome]) -> str:
        user_message = (f"Analyze this security scan for {target}:\n\n"
                        f"{json.dumps(outcomes_payload(outcomes), indent=2, default=str)}")
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
                temperature=0.3,
            )
            analysis = (resp.choices[0].message.content or "").strip()
        except Exception as e:
            logger.error("AI analysis error for %s: %s; using template report", target, e)
            return await self.fallback.summarize(target, outcomes)
        if not analysis:
            logger.warning("AI analysis for %s came back empty; using template report", target)
            return await self.fallback.summarize(target, outcomes)
        return analysis


def build_summarizer(settings: Settings) -> Summarizer:
    if settings.openai_api_key:
        return OpenAISummarizer(AsyncOpenAI(api_key=settings.openai_api_key), model=settings.openai_model)
    return FallbackSummarizer()
