"""
Structured logging for the reconciliation pipeline.

Every module logs under the ``finrecon`` namespace. The ``log_*`` helpers
attach an ``extra_data`` dict to the record so that ``JSONFormatter`` can
emit machine-readable events while the plain formatter stays readable.
"""
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
import json
from typing import Any, Dict, List, Optional

ROOT_LOGGER = "finrecon"

PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per line; event fields are merged in at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(getattr(record, "extra_data", {}))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = None
) -> logging.Logger:
    """
    Configure the ``finrecon`` logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives the same records as stdout
        json_format: Emit JSON lines; when None, LOG_FORMAT=json turns it on

    Returns:
        The configured package logger

    Calling this again replaces the previous handlers.
    """
    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "plain").lower() == "json"

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = (
        JSONFormatter() if json_format
        else logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT)
    )
    for handler in _build_handlers(log_file):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """Child logger of the package logger, e.g. ``finrecon.smart_fix``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def _event(logger: logging.Logger, level: int, message: str, event: str, **fields):
    logger.log(level, message, extra={"extra_data": {"event": event, **fields}})


# Pipeline events

def log_reconciliation_start(logger: logging.Logger, run_id: str, bank_count: int, book_count: int):
    _event(
        logger, logging.INFO,
        f"Run {run_id[:8]} started with {bank_count} bank and {book_count} book records",
        "reconciliation_start",
        run_id=run_id, bank_record_count=bank_count, book_record_count=book_count
    )


def log_reconciliation_complete(
    logger: logging.Logger,
    run_id: str,
    matched: int,
    flagged: int,
    match_rate: float,
    duration_seconds: float
):
    _event(
        logger, logging.INFO,
        f"Run {run_id[:8]} finished: {matched} matched, {flagged} flagged, "
        f"{match_rate:.1f}% match rate in {duration_seconds:.2f}s",
        "reconciliation_complete",
        run_id=run_id, matched_count=matched, flagged_count=flagged,
        match_rate=match_rate, duration_seconds=duration_seconds
    )


def log_smart_fix(
    logger: logging.Logger,
    result_id: str,
    fix_type: str,
    confidence: int,
    suggested_invoice: str = None
):
    _event(
        logger, logging.DEBUG,
        f"{result_id}: {fix_type} ({confidence}%)"
        + (f" -> invoice {suggested_invoice}" if suggested_invoice else ""),
        "smart_fix",
        result_id=result_id, fix_type=fix_type, confidence=confidence,
        suggested_invoice=suggested_invoice
    )


def log_row_skipped(logger: logging.Logger, source: str, line: int, width: int, required: int):
    _event(
        logger, logging.WARNING,
        f"Skipping {source}:{line}, {width} of {required} required columns",
        "row_skipped",
        source=source, line=line, width=width, required=required
    )


def log_report_written(logger: logging.Logger, report_type: str, path: Path):
    _event(
        logger, logging.INFO,
        f"Wrote {report_type} report to {path}",
        "report_written",
        report_type=report_type, path=str(path)
    )


def log_narrative_fallback(logger: logging.Logger, run_id: str, error: Exception):
    """Narrative failures are expected (no key, quota); no traceback."""
    _event(
        logger, logging.WARNING,
        f"Run {run_id[:8]} narrative unavailable: {error}",
        "narrative_fallback",
        run_id=run_id, error_type=type(error).__name__,
        error_code=getattr(error, "code", None)
    )


def log_api_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: str = None
):
    _event(
        logger, logging.INFO,
        f"{method} {path} -> {status_code} in {duration_ms:.0f}ms",
        "api_request",
        method=method, path=path, status_code=status_code,
        duration_ms=duration_ms, client_ip=client_ip
    )


def log_error(
    logger: logging.Logger,
    error: Exception,
    context: str = None,
    extra: Dict[str, Any] = None
):
    """Log an unexpected error with its traceback."""
    logger.error(
        f"{type(error).__name__} during {context or 'processing'}: {error}",
        exc_info=error,
        extra={"extra_data": {
            "event": "error",
            "error_type": type(error).__name__,
            "context": context,
            **(extra or {})
        }}
    )
