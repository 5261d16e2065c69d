"""
Narrative report generation via the Gemini Generative Language API.

Builds a prompt from the reconciliation summary plus a bounded sample of
flagged results and returns the model's HTML snippet. Failures raise;
the caller decides how to degrade.
"""
from typing import Any, Dict, List, Optional, Sequence
import re

import requests

from .config import config, NarrativeConfig
from .exceptions import MissingCredentialsError, NarrativeError
from .logging_config import get_logger
from .models import ReconResult, ReconSummary, MatchStatus, FixType

logger = get_logger("narrative")

FENCE_START = re.compile(r"^\s*```html\s*")
FENCE_END = re.compile(r"\s*```\s*$")

PROMPT_TEMPLATE = """
You are a Senior Financial Controller AI. Your goal is to generate a comprehensive, dashboard-style HTML report analyzing the reconciliation results.

**Data Context:**
- Match Rate: {match_rate:.1f}% ({matched_count} items)
- Total Variance Amount: {total_variance:,.2f}
- Unmatched Bank: {unmatched_bank}
- Unmatched Book: {unmatched_book}

**Detected Anomalies (Smart Fixes):**
- Potential Transposition Errors: {transpositions}
- Potential Scaling/Decimal Errors: {scaling}
- Potential ID Typos: {typos}
- Total Actionable Fixes Identified: {total}

**Sample Exceptions:**
{sample}

**Instructions:**
1. Generate a raw **HTML** snippet (no code fences, just the inner HTML).
2. Use **Tailwind CSS** classes for styling. The background is white. Use 'indigo', 'emerald', 'amber', 'rose', 'slate' color palettes.
3. Structure:
   - **Executive Summary Box**: A high-level assessment of the financial data health.
   - **Error Trend Grid**: A 2-column grid showing the breakdown of error types.
   - **Root Cause Analysis**: Why are these errors happening? (e.g., manual entry fatigue, system sync timing).
   - **Strategic Recommendations**: Bullet points on how to improve the process.
   - **Learning Notes**: A brief note on what this dataset suggests for improving future matching.
4. Make it look like a professional dashboard report.

**Tone:** Professional, analytical, insightful, and constructive.
"""


def anomaly_stats(results: Sequence[ReconResult]) -> Dict[str, int]:
    """Count smart fix types among flagged results."""
    flagged = [r for r in results if r.status != MatchStatus.MATCHED and r.smart_fix]
    stats = {
        "transpositions": sum(1 for r in flagged if r.smart_fix.type == FixType.TRANSPOSED_DIGITS),
        "scaling": sum(1 for r in flagged if r.smart_fix.type == FixType.SCALING_ERROR),
        "typos": sum(1 for r in flagged if r.smart_fix.type == FixType.ID_TYPO),
        "timing": sum(1 for r in flagged if r.smart_fix.type == FixType.TIMING_DIFF),
    }
    stats["total"] = sum(stats.values())
    return stats


def describe_result(result: ReconResult) -> str:
    """One prompt line for a flagged result."""
    fix = result.smart_fix
    fix_msg = f"[Detected: {fix.type.value} - {fix.message}]" if fix else ""
    bank = result.bank_record
    book = result.book_record

    if result.status == MatchStatus.VARIANCE:
        return (
            f"- Variance: Inv {bank.invoice_number} (Bank: {bank.total_amount}, Book: {book.amount}). "
            f"Diff: {result.amount_difference:.2f}. {fix_msg}"
        ).rstrip()
    if result.status == MatchStatus.UNMATCHED_BANK:
        return f"- Orphan Bank: Inv {bank.invoice_number}, Amt {bank.total_amount}. {fix_msg}".rstrip()
    return f"- Orphan Book: Doc {book.document_no}, Amt {book.amount}. {fix_msg}".rstrip()


class NarrativeGenerator:
    """Client for narrative generation."""

    def __init__(
        self,
        cfg: Optional[NarrativeConfig] = None,
        session: Optional[requests.Session] = None
    ):
        self.config = cfg or config.narrative
        self.session = session or requests.Session()

    def build_prompt(self, summary: ReconSummary, results: Sequence[ReconResult]) -> str:
        stats = anomaly_stats(results)
        flagged = [r for r in results if r.status != MatchStatus.MATCHED]
        sample = "\n".join(describe_result(r) for r in flagged[:self.config.sample_size])

        return PROMPT_TEMPLATE.format(
            match_rate=summary.match_rate,
            matched_count=summary.matched_count,
            total_variance=summary.total_variance_amount,
            unmatched_bank=summary.unmatched_bank_count,
            unmatched_book=summary.unmatched_book_count,
            sample=sample or "- None",
            **stats
        )

    def generate(self, summary: ReconSummary, results: Sequence[ReconResult]) -> str:
        """Request the narrative report and return its HTML text."""
        if not self.config.is_configured():
            raise MissingCredentialsError("gemini")

        prompt = self.build_prompt(summary, results)
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        data = self._send_request(payload)

        text = self._extract_text(data)
        if not text:
            return "<p>Analysis unavailable.</p>"
        return self._strip_fences(text)

    def _send_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.endpoint}/models/{self.config.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key,
        }

        logger.debug(f"Requesting narrative from {self.config.model}")
        try:
            response = self.session.post(
                url,
                json=payload,
                headers=headers,
                timeout=self.config.timeout_seconds
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise NarrativeError(f"HTTP request failed: {e}", status_code=status, model=self.config.model)
        except requests.RequestException as e:
            raise NarrativeError(f"HTTP request failed: {e}", model=self.config.model)

        try:
            return response.json()
        except ValueError as e:
            raise NarrativeError(f"Failed to parse response: {e}", model=self.config.model)

    def _extract_text(self, data: Dict[str, Any]) -> str:
        candidates: List[Dict[str, Any]] = data.get("candidates") or []
        if not candidates:
            raise NarrativeError("Response contained no candidates", model=self.config.model)

        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)

    @staticmethod
    def _strip_fences(text: str) -> str:
        text = FENCE_START.sub("", text)
        return FENCE_END.sub("", text)
