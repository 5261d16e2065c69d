"""
FastAPI backend for the Ledger Reconciliation Tool.

Provides REST API endpoints for:
- Running reconciliations (demo data or uploaded CSV exports)
- Browsing results of recent runs with status and search filters

Recent runs are kept in memory only; nothing is persisted.
"""
from collections import OrderedDict
from typing import Any, Dict, List, Optional
import os
import time

from fastapi import FastAPI, HTTPException, UploadFile, File, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import config
from .exceptions import FinReconError
from .logging_config import setup_logging, log_api_request
from .reconciler import LedgerReconciler, ReconciliationResult, create_sample_data
from .reporting import filter_results, result_to_dict, summary_to_dict

logger = setup_logging(level=config.log_level)

app = FastAPI(
    title="Ledger Reconciliation API",
    description="API for bank-to-book reconciliation with smart fix suggestions",
    version="1.0.0"
)

ALLOWED_ORIGINS = os.environ.get(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Most recent runs only
MAX_CACHED_RUNS = 20


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log request timing."""
    client_ip = request.client.host if request.client else "unknown"
    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000

    log_api_request(
        logger,
        request.method,
        str(request.url.path),
        response.status_code,
        duration_ms,
        client_ip
    )

    return response


_reconciler: Optional[LedgerReconciler] = None
_recent_results: "OrderedDict[str, ReconciliationResult]" = OrderedDict()


def get_reconciler() -> LedgerReconciler:
    global _reconciler
    if _reconciler is None:
        _reconciler = LedgerReconciler()
    return _reconciler


def _remember(result: ReconciliationResult):
    _recent_results[result.run_id] = result
    while len(_recent_results) > MAX_CACHED_RUNS:
        _recent_results.popitem(last=False)


def _parse_uploads(reconciler, bank_text, book_text, bank_source, book_source):
    return (
        reconciler.parser.parse_bank_csv(bank_text, source=bank_source),
        reconciler.parser.parse_book_csv(book_text, source=book_source),
    )


# ============== Pydantic Models ==============

class RunResponse(BaseModel):
    run_id: str
    status: str
    summary: Dict[str, Any]
    narrative: Optional[str] = None
    narrative_failed: bool = False
    processing_time_seconds: float


class ResultsResponse(BaseModel):
    run_id: str
    total: int
    results: List[Dict[str, Any]]


class ConfigStatus(BaseModel):
    narrative_configured: bool
    narrative_model: str
    amount_epsilon: str
    date_window_days: int


def _run_response(result: ReconciliationResult) -> RunResponse:
    return RunResponse(
        run_id=result.run_id,
        status="completed",
        summary=summary_to_dict(result.summary),
        narrative=result.narrative,
        narrative_failed=result.narrative_failed,
        processing_time_seconds=result.processing_time_seconds
    )


# ============== API Endpoints ==============

@app.get("/")
async def root():
    return {
        "name": "Ledger Reconciliation API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/api/status", response_model=ConfigStatus)
async def get_status():
    """Get current configuration status."""
    return ConfigStatus(
        narrative_configured=config.narrative.is_configured(),
        narrative_model=config.narrative.model,
        amount_epsilon=str(config.matching.amount_epsilon),
        date_window_days=config.matching.date_window_days
    )


@app.post("/api/reconcile/demo", response_model=RunResponse)
def run_demo_reconciliation(narrative: bool = Query(True, description="Request a narrative report")):
    """Run a reconciliation with the built-in sample ledgers."""
    bank_records, book_records = create_sample_data()
    result = get_reconciler().reconcile(
        bank_records=bank_records,
        book_records=book_records,
        generate_narrative=narrative
    )
    _remember(result)
    return _run_response(result)


@app.post("/api/reconcile/upload", response_model=RunResponse)
async def run_reconciliation_with_files(
    bank_file: UploadFile = File(...),
    book_file: UploadFile = File(...),
    narrative: bool = Query(True, description="Request a narrative report")
):
    """Run a reconciliation on uploaded bank and book CSV exports."""
    reconciler = get_reconciler()
    try:
        bank_text = (await bank_file.read()).decode("utf-8-sig")
        book_text = (await book_file.read()).decode("utf-8-sig")
        bank_records, book_records = await run_in_threadpool(
            _parse_uploads, reconciler, bank_text, book_text,
            bank_file.filename or "bank.csv", book_file.filename or "book.csv"
        )
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Uploaded files must be UTF-8 encoded CSV")
    except FinReconError as e:
        raise HTTPException(status_code=400, detail=e.message)

    # Matching and the narrative request block, so keep them off the event loop
    result = await run_in_threadpool(
        reconciler.reconcile,
        bank_records=bank_records,
        book_records=book_records,
        generate_narrative=narrative
    )
    _remember(result)
    return _run_response(result)


@app.get("/api/reconcile/{run_id}/results", response_model=ResultsResponse)
async def get_run_results(
    run_id: str,
    status: str = Query("ALL", description="Filter by status"),
    search: str = Query("", description="Search invoice number, description or document no")
):
    """Get results for a recent run."""
    result = _recent_results.get(run_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")

    filtered = filter_results(result.results, status, search)
    return ResultsResponse(
        run_id=run_id,
        total=len(filtered),
        results=[result_to_dict(r) for r in filtered]
    )
