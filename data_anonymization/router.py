"""
FastAPI Router for Anonymization Endpoints.

Provides REST API for:
- Anonymizing the caller's data
- Exporting an anonymization as JSON or CSV
- Viewing the caller's anonymization history
- Aggregate statistics (admin)
- Quality evaluation of a past anonymization
- Listing supported privacy methods

Authentication happens upstream; the authenticated subject
arrives in the X-Subject-Id header and its role in
X-Subject-Role.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import Response

from database.engine import create_all_tables

from .audit import AuditReader, create_audit_reader
from .config import AnonymizationConfig
from .exceptions import InvalidAnonymizationRequest, StoreError
from .export import export_result
from .models import AnonymizationResult, get_method_catalog, get_quality_report
from .schemas import (
    AnonymizationRequestCreate,
    AnonymizationResponse,
    LogEntryResponse,
    LogListResponse,
    MethodInfo,
    MethodListResponse,
    QualityReportResponse,
    StatsResponse,
)
from .service import AnonymizationService, create_anonymization_service
from .stores import LogStore, RecordStore, SqlAlchemyLogStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/anonymization", tags=["Data Anonymization"])


# =============================================================
# HELPER: Dependencies
# =============================================================

def get_anonymization_service(request: Request) -> AnonymizationService:
    return request.app.state.anonymization_service


def get_audit_reader(request: Request) -> AuditReader:
    return request.app.state.audit_reader


def get_config(request: Request) -> AnonymizationConfig:
    return request.app.state.anonymization_config


def _run_anonymization(
    service: AnonymizationService,
    subject_id: str,
    body: AnonymizationRequestCreate,
) -> AnonymizationResult:
    try:
        return service.anonymize(subject_id, body.data_types, body.purpose, body.method)
    except InvalidAnonymizationRequest as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StoreError as e:
        logger.error(f"Anonymization failed: {e.to_dict()}")
        raise HTTPException(status_code=500, detail="Data anonymization failed")


# =============================================================
# ANONYMIZATION ENDPOINTS
# =============================================================

@router.post("", response_model=AnonymizationResponse, status_code=status.HTTP_201_CREATED)
def anonymize_data(
    body: AnonymizationRequestCreate,
    x_subject_id: str = Header(...),
    service: AnonymizationService = Depends(get_anonymization_service),
):
    """Anonymize the caller's records for the requested data types."""
    result = _run_anonymization(service, x_subject_id, body)
    return AnonymizationResponse.from_result(result)


@router.post("/export")
def export_anonymized_data(
    body: AnonymizationRequestCreate,
    format: str = Query("json", pattern="^(json|csv)$"),
    x_subject_id: str = Header(...),
    service: AnonymizationService = Depends(get_anonymization_service),
):
    """Anonymize and return the result as a downloadable document."""
    result = _run_anonymization(service, x_subject_id, body)
    content = export_result(result, format)
    media_type = "text/csv" if format == "csv" else "application/json"
    filename = f"anonymized_data_{result.pseudonymous_subject_id}.{format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================
# AUDIT ENDPOINTS
# =============================================================

@router.get("/logs", response_model=LogListResponse)
def get_anonymization_logs(
    purpose: Optional[str] = Query(None, description="Filter by purpose"),
    # Upper bound is clamped by the reader to max_log_limit
    limit: Optional[int] = Query(None, ge=1),
    x_subject_id: str = Header(...),
    reader: AuditReader = Depends(get_audit_reader),
):
    """The caller's anonymization history, newest first."""
    try:
        entries = reader.list_logs(subject_id=x_subject_id, purpose=purpose, limit=limit)
    except StoreError as e:
        logger.error(f"Log query failed: {e.to_dict()}")
        raise HTTPException(status_code=500, detail="Failed to fetch anonymization logs")
    return LogListResponse(logs=[LogEntryResponse.from_entry(e) for e in entries])


@router.get("/stats", response_model=StatsResponse)
def get_anonymization_stats(
    x_subject_role: Optional[str] = Header(None),
    reader: AuditReader = Depends(get_audit_reader),
):
    """Aggregate statistics across all subjects. Admin only."""
    if x_subject_role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    try:
        stats = reader.aggregate_stats()
    except StoreError as e:
        logger.error(f"Stats query failed: {e.to_dict()}")
        raise HTTPException(status_code=500, detail="Failed to fetch anonymization stats")
    return StatsResponse.from_stats(stats)


@router.get("/quality/{pseudonymous_subject_id}", response_model=QualityReportResponse)
def evaluate_data_quality(
    pseudonymous_subject_id: str,
    x_subject_id: str = Header(...),
    reader: AuditReader = Depends(get_audit_reader),
    config: AnonymizationConfig = Depends(get_config),
):
    """Quality evaluation for one of the caller's past anonymizations."""
    try:
        entry = reader.find_by_pseudonym(x_subject_id, pseudonymous_subject_id)
    except StoreError as e:
        logger.error(f"Log query failed: {e.to_dict()}")
        raise HTTPException(status_code=500, detail="Failed to evaluate data quality")
    if entry is None:
        raise HTTPException(status_code=404, detail="Anonymized data not found")
    return QualityReportResponse(**get_quality_report(pseudonymous_subject_id, config.k))


@router.get("/methods", response_model=MethodListResponse)
def get_anonymization_methods(config: AnonymizationConfig = Depends(get_config)):
    """Supported privacy methods and their parameters."""
    catalog = get_method_catalog(k=config.k, l=config.l, t=config.t, epsilon=config.epsilon)
    return MethodListResponse(methods=[MethodInfo(**m) for m in catalog])


# =============================================================
# APPLICATION FACTORY
# =============================================================

def create_app(
    record_store: RecordStore,
    log_store: Optional[LogStore] = None,
    config: Optional[AnonymizationConfig] = None,
) -> FastAPI:
    """
    Build a FastAPI app serving the anonymization router.

    The record store is supplied by the host application. The log
    store defaults to the SQLAlchemy-backed audit table.
    """
    config = config or AnonymizationConfig.from_env()
    if log_store is None:
        create_all_tables()
        log_store = SqlAlchemyLogStore()

    app = FastAPI(
        title="Health Data Anonymization API",
        description="De-identifies personal health records under a selectable privacy model.",
        version="1.0.0",
    )
    app.state.anonymization_config = config
    app.state.anonymization_service = create_anonymization_service(record_store, log_store, config)
    app.state.audit_reader = create_audit_reader(log_store, config)
    app.include_router(router)
    return app
