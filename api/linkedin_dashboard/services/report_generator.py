"""
Rapport narratif LLM sur les métriques du dashboard

Le pipeline d'agrégation ne dépend pas du fournisseur: il fournit les métriques,
build_report_prompt() construit le prompt, ReportGenerator.generate() renvoie
un ReportResult (texte OU erreur, jamais d'exception).
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from ..config import settings
from .metrics import metric_changes

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

RESPONSE_STRUCTURE = """Please provide your response in the following structure:

## Executive Summary
A 2-3 sentence overview of campaign performance.

## Performance Analysis
Analyze each key metric (CTR, CPM, CPC, CPL, Engagement Rate) and what the trends mean.

## What's Working Well
List 3-5 specific positive findings with brief explanations.

## Areas of Concern
List 3-5 specific issues or underperformance areas with brief explanations.

## Optimisation Recommendations
Provide 5-8 specific, actionable recommendations. For each:
- **Recommendation title**
- What to do (specific action)
- Why (data-backed reasoning)
- Expected impact

## Budget Recommendations
Specific advice on budget allocation and pacing based on the data.

## Next Steps
A prioritized list of the top 3 actions to take immediately.

Be specific, data-driven, and practical. Reference actual numbers from the data provided."""


@dataclass
class ReportResult:
    report: Optional[str] = None
    error: Optional[str] = None
    model: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.report is not None


def _metric_block(metrics: Dict[str, Any]) -> str:
    return "\n".join([
        f"- Impressions: {metrics.get('impressions', 0):,.0f}",
        f"- Clicks: {metrics.get('clicks', 0):,.0f}",
        f"- CTR: {metrics.get('ctr', 0):.2f}%",
        f"- Spend: {metrics.get('spent', 0):.2f}",
        f"- CPM: {metrics.get('cpm', 0):.2f}",
        f"- CPC: {metrics.get('cpc', 0):.2f}",
        f"- Leads: {metrics.get('leads', 0):,.0f}",
        f"- CPL: {metrics.get('cpl', 0):.2f}",
        f"- Engagement Rate: {metrics.get('engagementRate', 0):.2f}%",
        f"- Engagements: {metrics.get('engagements', 0):,.0f}",
    ])


def _format_change(change: Optional[float]) -> str:
    return "N/A" if change is None else f"{change:.1f}%"


def build_report_prompt(
    current: Dict[str, Any],
    previous: Dict[str, Any],
    top_performers: List[Dict[str, Any]],
    budget_pacing: Optional[Dict[str, Any]],
    current_range,
    previous_range,
    selected_entities: Optional[List[str]] = None,
) -> str:
    """Prompt Markdown: périodes, MetricSets, variations, top performers, pacing"""
    if top_performers:
        top_lines = "\n".join(
            f"- ID {row.get('id')}: {row.get('impressions', 0):,.0f} impressions, "
            f"{row.get('clicks', 0):,.0f} clicks, {row.get('ctr', 0):.2f}% CTR, "
            f"{row.get('spent', 0):.2f} spent"
            for row in top_performers
        )
    else:
        top_lines = "No data"

    changes = metric_changes(current, previous)
    pacing = budget_pacing or {}
    budget_line = f"{pacing['budget']:.2f}" if pacing.get("budget") else "Not set"

    sections = [
        "You are a LinkedIn Ads expert and performance marketing consultant. "
        "Analyze the following LinkedIn campaign data and provide a detailed report "
        "with actionable optimisation recommendations.",
        "## Campaign Data",
        f"**Reporting Period:** {current_range.start} to {current_range.end}\n"
        f"**Compare Period:** {previous_range.start} to {previous_range.end}\n"
        f"**Selected Entities:** {', '.join(selected_entities) if selected_entities else 'All campaigns'}",
        "### Current Period Performance\n" + _metric_block(current),
        "### Previous Period Performance\n" + _metric_block(previous),
        "### Period-over-Period Changes\n" + "\n".join(
            f"- {label}: {_format_change(changes.get(key))}"
            for label, key in (
                ("Impressions", "impressions"),
                ("Clicks", "clicks"),
                ("CTR", "ctr"),
                ("Spend", "spent"),
                ("CPL", "cpl"),
            )
        ),
        "### Top Performers\n" + top_lines,
        "### Budget & Pacing\n"
        f"- Budget: {budget_line}\n"
        f"- Total Spend: {pacing.get('spent', 0):.2f}\n"
        f"- Days Elapsed: {pacing.get('daysElapsed', 0)} of {pacing.get('daysTotal', 0)} days",
        RESPONSE_STRUCTURE,
    ]
    return "\n\n".join(sections)


class ReportGenerator:
    """Génération de texte via l'API Messages d'Anthropic"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.ANTHROPIC_API_KEY if api_key is None else api_key
        self.model = model or settings.REPORT_MODEL
        self.max_tokens = max_tokens or settings.REPORT_MAX_TOKENS
        self._transport = transport

    async def generate(self, prompt: str) -> ReportResult:
        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not configured, report generation disabled")
            return ReportResult(error="Report generation is not configured")

        logger.info(f"Sending report request: model={self.model}, prompt={len(prompt)} chars")

        try:
            async with httpx.AsyncClient(timeout=60.0, transport=self._transport) as client:
                response = await client.post(
                    ANTHROPIC_MESSAGES_URL,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "content-type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "max_tokens": self.max_tokens,
                        "messages": [{"role": "user", "content": prompt}],
                    },
                )
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Report API HTTP error: {e.response.status_code} - {e.response.text[:300]}")
            return ReportResult(error=f"Report API error: {e.response.status_code}", model=self.model)
        except (httpx.TransportError, ValueError) as e:
            logger.error(f"Report API request failed: {e}")
            return ReportResult(error=f"Report API request failed: {e}", model=self.model)

        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        ).strip()

        if not text:
            return ReportResult(error="Empty report returned by the model", model=data.get("model", self.model))

        usage = data.get("usage", {})
        logger.info(
            f"Report received: input_tokens={usage.get('input_tokens', 0)}, "
            f"output_tokens={usage.get('output_tokens', 0)}"
        )
        return ReportResult(report=text, model=data.get("model", self.model))


def get_report_generator() -> ReportGenerator:
    """Dependency FastAPI (surchargée dans les tests)"""
    return ReportGenerator()
