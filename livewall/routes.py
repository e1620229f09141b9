"""
HTTP routes for the live wall API.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from livewall.accounts import AccountService
from livewall.dependencies import (
    get_account_service,
    get_submission_service,
    require_admin_secret,
)
from livewall.errors import ValidationError
from livewall.schemas import (
    AccountCreateRequest,
    AccountResponse,
    AccountUpdateRequest,
    BulkTransitionRequest,
    BulkTransitionResponse,
    DisplayedResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SubmissionListResponse,
    SubmissionResponse,
    TransitionRequest,
)
from livewall.submissions import PhotoFile, SubmissionService, resolve_upload_source


MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_BATCH_FILES = 20
IMAGE_CONTENT_TYPE = re.compile(r"/(jpg|jpeg|png|gif|webp)$")

DISPLAYED_FILTERS = {"displayed": True, "not-displayed": False}

uploads_router = APIRouter(prefix="/uploads", tags=["Uploads"])
users_router = APIRouter(prefix="/users", tags=["Users"])

router = APIRouter()


async def _read_photo(upload: Optional[UploadFile]) -> Optional[PhotoFile]:
    """Validate an uploaded image and read it into memory."""
    if upload is None or not upload.filename:
        return None
    content_type = upload.content_type or ""
    if not IMAGE_CONTENT_TYPE.search(content_type):
        raise ValidationError("Only image files are allowed")
    content = await upload.read(MAX_FILE_SIZE + 1)
    if len(content) > MAX_FILE_SIZE:
        raise ValidationError("File too large. Maximum size is 10MB")
    if not content:
        return None
    return PhotoFile(content=content, filename=upload.filename, content_type=content_type)


# Uploads


@uploads_router.post("", response_model=SubmissionResponse, status_code=201)
async def create_upload(
    photo: Optional[UploadFile] = File(None),
    message: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    uploadedBy: Optional[str] = Form(None),
    uploadSource: Optional[str] = Form(None),
    service: SubmissionService = Depends(get_submission_service),
):
    photo_file = await _read_photo(photo)
    record = service.create(
        photo_file,
        message,
        username=username,
        email=email,
        uploaded_by=uploadedBy,
        upload_source=resolve_upload_source(uploadSource),
    )
    return SubmissionResponse.from_record(record)


@uploads_router.post(
    "/batch", response_model=list[SubmissionResponse], status_code=201
)
async def create_upload_batch(
    photos: Optional[list[UploadFile]] = File(None),
    message: Optional[str] = Form(None),
    uploadedBy: Optional[str] = Form(None),
    service: SubmissionService = Depends(get_submission_service),
):
    photos = photos or []
    if len(photos) > MAX_BATCH_FILES:
        raise ValidationError(f"Too many files. Maximum is {MAX_BATCH_FILES}")
    photo_files = []
    for upload in photos:
        photo_file = await _read_photo(upload)
        if photo_file:
            photo_files.append(photo_file)
    records = service.create_batch(photo_files, message, uploaded_by=uploadedBy)
    return [SubmissionResponse.from_record(record) for record in records]


@uploads_router.get("", response_model=SubmissionListResponse)
def list_uploads(
    status: Optional[str] = Query(None),
    displayed: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    service: SubmissionService = Depends(get_submission_service),
):
    result = service.list_submissions(
        status=status,
        displayed=DISPLAYED_FILTERS.get(displayed),
        page=page,
        page_size=limit,
    )
    return SubmissionListResponse(
        uploads=[SubmissionResponse.from_record(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.page_size,
        totalPages=math.ceil(result.total / result.page_size),
    )


# Declared before "/{upload_id}" so "bulk" is not taken for an id.
@uploads_router.patch("/bulk", response_model=BulkTransitionResponse)
def bulk_update_uploads(
    payload: BulkTransitionRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    modified = service.bulk_transition(payload.ids, payload.action)
    return BulkTransitionResponse(modifiedCount=modified)


@uploads_router.get("/{upload_id}", response_model=SubmissionResponse)
def get_upload(
    upload_id: str,
    service: SubmissionService = Depends(get_submission_service),
):
    return SubmissionResponse.from_record(service.get(upload_id))


@uploads_router.patch("/{upload_id}", response_model=SubmissionResponse)
def update_upload_status(
    upload_id: str,
    payload: TransitionRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    record = service.transition(upload_id, payload.action, payload.scheduledFor)
    return SubmissionResponse.from_record(record)


@uploads_router.patch("/{upload_id}/displayed", response_model=DisplayedResponse)
def mark_upload_displayed(
    upload_id: str,
    service: SubmissionService = Depends(get_submission_service),
):
    record = service.mark_displayed(upload_id)
    return DisplayedResponse(id=record.id, displayed=record.displayed)


@uploads_router.delete("/{upload_id}", response_model=MessageResponse)
def delete_upload(
    upload_id: str,
    service: SubmissionService = Depends(get_submission_service),
):
    service.delete(upload_id)
    return MessageResponse(message="Upload deleted successfully")


# Users


@users_router.post("", response_model=AccountResponse, status_code=201)
def create_user(
    payload: AccountCreateRequest,
    service: AccountService = Depends(get_account_service),
):
    account = service.create(payload.username, payload.password)
    return AccountResponse.from_account(account)


@users_router.get("", response_model=list[AccountResponse])
def list_users(service: AccountService = Depends(get_account_service)):
    return [AccountResponse.from_account(account) for account in service.list_accounts()]


@users_router.post(
    "/admin/create",
    response_model=AccountResponse,
    status_code=201,
    dependencies=[Depends(require_admin_secret)],
)
def create_admin_user(
    payload: AccountCreateRequest,
    service: AccountService = Depends(get_account_service),
):
    account = service.create_admin(payload.username, payload.password)
    return AccountResponse.from_account(account)


@users_router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_account_service),
):
    profile = service.login(payload.username, payload.password)
    return LoginResponse.from_profile(profile)


@users_router.get("/{user_id}", response_model=AccountResponse)
def get_user(user_id: str, service: AccountService = Depends(get_account_service)):
    return AccountResponse.from_account(service.get(user_id))


@users_router.patch("/{user_id}", response_model=AccountResponse)
def update_user(
    user_id: str,
    payload: AccountUpdateRequest,
    service: AccountService = Depends(get_account_service),
):
    account = service.update(
        user_id,
        username=payload.username,
        password=payload.password,
        is_active=payload.isActive,
        role=payload.role,
    )
    return AccountResponse.from_account(account)


@users_router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: str, service: AccountService = Depends(get_account_service)):
    service.delete(user_id)
    return MessageResponse(message="User deleted successfully")


router.include_router(uploads_router)
router.include_router(users_router)
