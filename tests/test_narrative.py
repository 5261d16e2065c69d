"""
Tests for narrative generation.
"""
import pytest
from decimal import Decimal
import requests

from finrecon.config import NarrativeConfig
from finrecon.exceptions import MissingCredentialsError, NarrativeError
from finrecon.models import ReconResult, ReconSummary, SmartFix, MatchStatus, FixType
from finrecon.narrative import NarrativeGenerator, anomaly_stats, describe_result

from conftest import make_bank, make_book


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    """Records posted requests and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def narrative_config():
    return NarrativeConfig(api_key="test-key", model="test-model", sample_size=2)


@pytest.fixture
def flagged_results():
    bank = make_bank("A1", "54.00")
    return [
        ReconResult(
            "R-00001", MatchStatus.VARIANCE, Decimal("-9.00"),
            bank_record=bank, book_record=make_book("A1", "45.00"),
            smart_fix=SmartFix(FixType.TRANSPOSED_DIGITS, "Possible Transposed Digits.", 90, bank)
        ),
        ReconResult("R-00002", MatchStatus.UNMATCHED_BANK, Decimal("300.00"), bank_record=make_bank("B1", "300.00")),
        ReconResult(
            "R-00003", MatchStatus.UNMATCHED_BOOK, Decimal("-100.00"),
            book_record=make_book("X1", "100.00", document_no="D1"),
            smart_fix=SmartFix(FixType.SCALING_ERROR, "Possible Decimal Point Error.", 80, bank)
        ),
        ReconResult("R-00004", MatchStatus.UNMATCHED_BOOK, Decimal("-5.00"), book_record=make_book("X2", "5.00", document_no="D2")),
    ]


@pytest.fixture
def summary():
    return ReconSummary(
        total_bank=2, total_book=3, matched_count=0, variance_count=1,
        unmatched_bank_count=1, unmatched_book_count=2,
        match_rate=0.0, total_variance_amount=Decimal("9.00")
    )


class TestPromptBuilding:
    """Tests for prompt content."""

    def test_anomaly_stats(self, flagged_results):
        stats = anomaly_stats(flagged_results)
        assert stats == {"transpositions": 1, "scaling": 1, "typos": 0, "timing": 0, "total": 2}

    def test_describe_variance(self, flagged_results):
        line = describe_result(flagged_results[0])
        assert line.startswith("- Variance: Inv A1 (Bank: 54.00, Book: 45.00)")
        assert "TRANSPOSED_DIGITS" in line

    def test_describe_orphans(self, flagged_results):
        assert describe_result(flagged_results[1]) == "- Orphan Bank: Inv B1, Amt 300.00."
        assert describe_result(flagged_results[3]) == "- Orphan Book: Doc D2, Amt 5.00."

    def test_sample_is_bounded(self, narrative_config, summary, flagged_results):
        prompt = NarrativeGenerator(narrative_config, session=FakeSession()).build_prompt(summary, flagged_results)

        assert "- Variance: Inv A1" in prompt
        assert "- Orphan Bank: Inv B1" in prompt
        assert "Doc D1" not in prompt
        assert "Potential Transposition Errors: 1" in prompt
        assert "Total Variance Amount: 9.00" in prompt


class TestNarrativeGenerator:
    """Tests for the HTTP exchange."""

    def test_generate(self, narrative_config, summary, flagged_results):
        session = FakeSession(FakeResponse(gemini_payload("```html\n<div>Report</div>\n```")))
        text = NarrativeGenerator(narrative_config, session=session).generate(summary, flagged_results)

        assert text == "<div>Report</div>"
        url, kwargs = session.calls[0]
        assert url.endswith("/models/test-model:generateContent")
        assert kwargs["headers"]["x-goog-api-key"] == "test-key"
        assert kwargs["timeout"] == narrative_config.timeout_seconds
        assert "Senior Financial Controller" in kwargs["json"]["contents"][0]["parts"][0]["text"]

    def test_missing_key(self, summary):
        generator = NarrativeGenerator(NarrativeConfig(api_key=""), session=FakeSession())
        with pytest.raises(MissingCredentialsError):
            generator.generate(summary, [])

    def test_http_error(self, narrative_config, summary):
        session = FakeSession(FakeResponse(status_code=500))
        with pytest.raises(NarrativeError) as exc_info:
            NarrativeGenerator(narrative_config, session=session).generate(summary, [])
        assert exc_info.value.details["status_code"] == 500

    def test_connection_error(self, narrative_config, summary):
        session = FakeSession(error=requests.ConnectionError("refused"))
        with pytest.raises(NarrativeError):
            NarrativeGenerator(narrative_config, session=session).generate(summary, [])

    def test_invalid_json(self, narrative_config, summary):
        session = FakeSession(FakeResponse(payload=None))
        with pytest.raises(NarrativeError):
            NarrativeGenerator(narrative_config, session=session).generate(summary, [])

    def test_no_candidates(self, narrative_config, summary):
        session = FakeSession(FakeResponse({"candidates": []}))
        with pytest.raises(NarrativeError):
            NarrativeGenerator(narrative_config, session=session).generate(summary, [])

    def test_empty_text(self, narrative_config, summary):
        session = FakeSession(FakeResponse(gemini_payload("")))
        text = NarrativeGenerator(narrative_config, session=session).generate(summary, [])
        assert text == "<p>Analysis unavailable.</p>"
