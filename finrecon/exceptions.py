"""
Exceptions raised around the reconciliation core.

Matching, smart fixes and summaries never raise on parsed input; these
cover ingestion, settings, the narrative service and report output.
Every error carries a stable ``code`` and a ``details`` dict so the CLI
and API can report it without string matching.
"""


class FinReconError(Exception):
    """Base exception for reconciliation errors."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        self.message = message
        self.code = code or "FINRECON_ERROR"
        self.details = details or {}
        super().__init__(self.message)


# ============== Settings ==============

class ConfigurationError(FinReconError):
    """A setting is missing or out of range."""

    def __init__(self, message: str, setting: str = None, code: str = "CONFIG_ERROR"):
        super().__init__(message, code=code, details={"setting": setting})


class MissingCredentialsError(ConfigurationError):
    """An external service was called without its API key."""

    def __init__(self, service: str):
        super().__init__(
            f"No API key configured for {service}",
            setting=f"{service.upper()}_API_KEY",
            code="MISSING_CREDENTIALS"
        )


# ============== Ingestion ==============

class DataError(FinReconError):
    """Input data could not be turned into ledger records."""


class ParseError(DataError):
    """A ledger export (or one of its rows) is malformed."""

    def __init__(self, source: str, line: int = None, reason: str = None):
        self.source = source
        self.line = line
        self.reason = reason

        location = f"{source} at line {line}" if line else source
        message = f"Failed to parse {location}"
        if reason:
            message = f"{message}: {reason}"

        super().__init__(
            message,
            code="PARSE_ERROR",
            details={"source": source, "line": line, "reason": reason}
        )


# ============== External services ==============

class APIError(FinReconError):
    """An external HTTP service failed or answered unusably."""

    def __init__(self, service: str, message: str, status_code: int = None, code: str = "API_ERROR"):
        self.service = service
        self.status_code = status_code
        super().__init__(
            f"{service} API error: {message}",
            code=code,
            details={"service": service, "status_code": status_code}
        )


class NarrativeError(APIError):
    """The narrative model request failed."""

    def __init__(self, message: str, status_code: int = None, model: str = None):
        super().__init__("Gemini", message, status_code, code="NARRATIVE_ERROR")
        self.details["model"] = model


# ============== Output ==============

class ReportError(FinReconError):
    """A report file could not be produced."""

    def __init__(self, report_type: str, message: str):
        super().__init__(
            f"Failed to generate {report_type} report: {message}",
            code="REPORT_ERROR",
            details={"report_type": report_type}
        )
