"""
HTTP routes for the case-management API.

Handlers stay thin: they parse the request, pick the client tier, and hand
off to the service modules. Errors raised there are rendered by the
handlers in ``casework.errors``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from casework import accounts, applicants, field_activity, merge, reports, uploads
from casework.config import Settings, get_settings
from casework.db import DbClient
from casework.dependencies import (
    get_db_client,
    get_identity_provider,
    get_service_db_client,
    get_storage_client,
)
from casework.errors import InvalidRequest
from casework.identity import IdentityProvider
from casework.schemas import (
    ApplicantVisitsResponse,
    ApplicationSubmission,
    CaseEventCreate,
    CountedDataResponse,
    CreateUserRequest,
    DataResponse,
    DuplicateGroupsResponse,
    FieldVisitCreate,
    FieldVisitUpdate,
    LoginRequest,
    LoginResponse,
    MergeRequest,
    ReportResponse,
    SuccessResponse,
)
from casework.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or "unknown"
    )


async def _buffer(file: Optional[UploadFile]) -> Optional[uploads.UploadedFile]:
    if file is None or not file.filename:
        return None
    return uploads.UploadedFile(
        filename=file.filename,
        content_type=file.content_type,
        data=await file.read(),
    )


# Applications


@router.post("/applications", response_model=SuccessResponse, status_code=201)
def submit_application(
    form: ApplicationSubmission,
    request: Request,
    db: DbClient = Depends(get_service_db_client),
):
    created = applicants.submit_application(
        db,
        form,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent") or "unknown",
    )
    return SuccessResponse(message="Application submitted successfully", data=created)


@router.get("/applications", response_model=CountedDataResponse)
def list_applications(
    status: Optional[str] = Query(None),
    db: DbClient = Depends(get_service_db_client),
    settings: Settings = Depends(get_settings),
):
    rows = applicants.list_applications(db, status, limit=settings.applications_list_limit)
    total = applicants.count_applications(db, status)
    logger.debug("Applications fetch - rows: %d, count: %d", len(rows), total)
    return CountedDataResponse(data=rows, count=total)


@router.post("/applications/documents", response_model=SuccessResponse, status_code=201)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    applicationId: Optional[str] = Form(None),
    document_type: Optional[str] = Form(None),
    db: DbClient = Depends(get_service_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    upload = await _buffer(file)
    row = await run_in_threadpool(
        uploads.upload_document,
        db,
        storage,
        settings.documents_bucket,
        upload,
        applicationId,
        document_type,
    )
    return SuccessResponse(data=row)


@router.get("/applications/documents", response_model=DataResponse)
def list_documents(
    applicationId: Optional[str] = Query(None),
    db: DbClient = Depends(get_service_db_client),
):
    return DataResponse(data=uploads.list_documents(db, applicationId))


@router.get("/applications/{applicant_id}", response_model=DataResponse)
def get_application(applicant_id: str, db: DbClient = Depends(get_db_client)):
    return DataResponse(data=applicants.get_application(db, applicant_id))


@router.patch("/applications/{applicant_id}", response_model=SuccessResponse)
def update_application(
    applicant_id: str,
    changes: dict = Body(...),
    db: DbClient = Depends(get_db_client),
):
    updated = applicants.update_application(db, applicant_id, changes)
    return SuccessResponse(message="Application updated successfully", data=updated)


# Applicants


@router.get("/applicants/search", response_model=DataResponse)
def search_applicants(
    q: str = Query(""),
    db: DbClient = Depends(get_service_db_client),
    settings: Settings = Depends(get_settings),
):
    return DataResponse(
        data=applicants.search_applicants(db, q, limit=settings.search_result_limit)
    )


@router.get("/applicants/duplicates", response_model=DuplicateGroupsResponse)
def list_duplicate_groups(db: DbClient = Depends(get_service_db_client)):
    return DuplicateGroupsResponse(data=applicants.find_duplicate_groups(db))


@router.get("/applicants/{applicant_id}/visits", response_model=ApplicantVisitsResponse)
def applicant_visits(applicant_id: str, db: DbClient = Depends(get_service_db_client)):
    return applicants.applicant_visit_history(db, applicant_id)


@router.post("/applicants/{applicant_id}/merge", response_model=SuccessResponse)
def merge_applicants(
    applicant_id: str,
    payload: MergeRequest,
    db: DbClient = Depends(get_service_db_client),
):
    merged = merge.merge_applicants(db, applicant_id, payload.duplicateId)
    return SuccessResponse(message="Applications merged successfully", data=merged)


# Case events


@router.post("/case-events", response_model=SuccessResponse, status_code=201)
def create_case_event(payload: CaseEventCreate, db: DbClient = Depends(get_db_client)):
    created = field_activity.create_case_event(db, payload)
    return SuccessResponse(message="Case event created successfully", data=created)


@router.get("/case-events", response_model=DataResponse)
def list_case_events(
    applicant_id: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    return DataResponse(data=field_activity.list_case_events(db, applicant_id, client_id))


# Dashboard


@router.get("/dashboard/field-visits", response_model=DataResponse)
def dashboard_field_visits(db: DbClient = Depends(get_service_db_client)):
    return DataResponse(data=field_activity.list_all_visits(db))


@router.get("/dashboard/reports", response_model=ReportResponse)
def dashboard_reports(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    db: DbClient = Depends(get_service_db_client),
    settings: Settings = Depends(get_settings),
):
    metrics = reports.build_report(
        db,
        start_date=start_date,
        end_date=end_date,
        auction_window_days=settings.report_auction_window_days,
        applications_limit=settings.applications_list_limit,
    )
    return ReportResponse(data=metrics)


# Worker app


@router.get("/worker/visits", response_model=DataResponse)
def list_worker_visits(
    userId: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    db: DbClient = Depends(get_service_db_client),
    settings: Settings = Depends(get_settings),
):
    visits = field_activity.list_worker_visits(
        db, userId, limit or settings.worker_visits_default_limit
    )
    return DataResponse(data=visits)


@router.post("/worker/visits", response_model=SuccessResponse, status_code=201)
def create_worker_visit(payload: FieldVisitCreate, db: DbClient = Depends(get_service_db_client)):
    return SuccessResponse(data=field_activity.create_visit(db, payload))


@router.get("/worker/visits/{visit_id}", response_model=DataResponse)
def get_worker_visit(visit_id: str, db: DbClient = Depends(get_service_db_client)):
    return DataResponse(data=field_activity.get_visit(db, visit_id))


@router.patch("/worker/visits/{visit_id}", response_model=SuccessResponse)
def update_worker_visit(
    visit_id: str,
    payload: FieldVisitUpdate,
    db: DbClient = Depends(get_service_db_client),
):
    return SuccessResponse(data=field_activity.update_visit(db, visit_id, payload))


@router.delete("/worker/visits/{visit_id}", response_model=SuccessResponse)
def delete_worker_visit(visit_id: str, db: DbClient = Depends(get_service_db_client)):
    field_activity.delete_visit(db, visit_id)
    return SuccessResponse()


@router.post("/worker/photos", response_model=SuccessResponse, status_code=201)
async def upload_visit_photo(
    file: Optional[UploadFile] = File(None),
    visitId: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    photo_type: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    db: DbClient = Depends(get_service_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    upload = await _buffer(file)
    row = await run_in_threadpool(
        uploads.upload_photo,
        db,
        storage,
        settings.photos_bucket,
        upload,
        visitId,
        caption=caption,
        photo_type=photo_type,
        latitude=latitude,
        longitude=longitude,
    )
    return SuccessResponse(data=row)


@router.get("/worker/photos", response_model=DataResponse)
def list_visit_photos(
    visitId: Optional[str] = Query(None),
    db: DbClient = Depends(get_service_db_client),
):
    return DataResponse(data=uploads.list_photos(db, visitId))


@router.get("/worker/cases", response_model=DataResponse)
def worker_cases(
    userId: Optional[str] = Query(None),
    db: DbClient = Depends(get_service_db_client),
):
    if not userId:
        raise InvalidRequest("User ID required")
    return DataResponse(data=applicants.worker_caseload(db, userId))


@router.get("/worker/urgent", response_model=DataResponse)
def worker_urgent_cases(
    db: DbClient = Depends(get_service_db_client),
    settings: Settings = Depends(get_settings),
):
    return DataResponse(
        data=applicants.urgent_auctions(db, settings.urgent_auction_window_days)
    )


@router.get("/workers", response_model=DataResponse)
def list_workers(db: DbClient = Depends(get_service_db_client)):
    return DataResponse(data=field_activity.list_workers(db))


# Auth and administration


@router.post("/auth/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
    db: DbClient = Depends(get_service_db_client),
):
    result = accounts.login(identity, db, payload.email, payload.password)
    return LoginResponse(data=result)


@router.get("/admin/users", response_model=DataResponse)
def list_users(db: DbClient = Depends(get_service_db_client)):
    return DataResponse(data=accounts.list_staff_users(db))


@router.post("/admin/users", response_model=SuccessResponse, status_code=201)
def create_user(
    payload: CreateUserRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
    db: DbClient = Depends(get_service_db_client),
):
    return SuccessResponse(data=accounts.create_staff_user(identity, db, payload))
