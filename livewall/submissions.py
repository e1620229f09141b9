"""
Submission workflow: creation, moderation transitions, scheduled activation,
display marking and deletion.

Status transitions are unconditional overwrites. Any action is accepted from
any state, so an approved item can be rejected again and a rejected one
scheduled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from livewall.db import (
    SubmissionFilter,
    SubmissionRecord,
    SubmissionStatus,
    SubmissionStore,
    UploadSource,
    new_id,
    utcnow,
)
from livewall.errors import NotFoundError, StorageError, ValidationError
from livewall.storage import StorageClient

logger = logging.getLogger(__name__)

ACTION_STATUSES = {
    "approve": SubmissionStatus.APPROVED,
    "reject": SubmissionStatus.REJECTED,
    "schedule": SubmissionStatus.SCHEDULED,
}


@dataclass
class PhotoFile:
    """An uploaded photo as received at the boundary."""

    content: bytes
    filename: Optional[str] = None
    content_type: str = "application/octet-stream"


@dataclass
class SubmissionPage:
    items: list[SubmissionRecord]
    total: int
    page: int
    page_size: int


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_action(action: Optional[str]) -> SubmissionStatus:
    status = ACTION_STATUSES.get((action or "").strip().lower())
    if status is None:
        raise ValidationError("Invalid action. Must be approve, reject, or schedule")
    return status


def resolve_upload_source(value: Optional[str]) -> UploadSource:
    if value is None or not value.strip():
        return UploadSource.PUBLIC
    try:
        return UploadSource(value.strip().lower())
    except ValueError:
        raise ValidationError(
            "Invalid uploadSource. Must be public or photographer"
        ) from None


class SubmissionService:
    def __init__(
        self,
        store: SubmissionStore,
        storage: StorageClient,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.storage = storage
        self.clock = clock

    def create(
        self,
        photo: Optional[PhotoFile] = None,
        message: Optional[str] = None,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        uploaded_by: Optional[str] = None,
        upload_source: UploadSource = UploadSource.PUBLIC,
    ) -> SubmissionRecord:
        """
        Create a PENDING submission from a photo, a message, or both.

        The photo is stored before anything is persisted; a StorageError
        aborts creation without leaving a record behind.
        """
        message = _clean(message)
        has_photo = photo is not None and bool(photo.content)
        if not has_photo and not message:
            raise ValidationError(
                "Either a photo or message (or both) must be provided"
            )

        photo_url = None
        if has_photo:
            photo_url = self.storage.upload(
                photo.content, photo.filename, photo.content_type
            )

        record = SubmissionRecord(
            id=new_id(),
            photo_url=photo_url,
            message=message,
            username=_clean(username),
            email=_clean(email),
            uploaded_by=_clean(uploaded_by),
            upload_source=upload_source,
        )
        return self.store.insert_submission(record)

    def create_batch(
        self,
        photos: Sequence[PhotoFile],
        message: Optional[str] = None,
        *,
        uploaded_by: Optional[str] = None,
    ) -> list[SubmissionRecord]:
        """
        Record one photographer submission per photo.

        Photos that fail to upload are logged and left out of the result;
        the rest of the batch still goes through.
        """
        if not photos:
            raise ValidationError("No files provided")

        message = _clean(message)
        created: list[SubmissionRecord] = []
        for photo in photos:
            try:
                photo_url = self.storage.upload(
                    photo.content, photo.filename, photo.content_type
                )
            except StorageError as exc:
                logger.warning(
                    "Skipping %s in batch upload: %s", photo.filename, exc.message
                )
                continue
            record = SubmissionRecord(
                id=new_id(),
                photo_url=photo_url,
                message=message,
                uploaded_by=_clean(uploaded_by),
                upload_source=UploadSource.PHOTOGRAPHER,
            )
            created.append(self.store.insert_submission(record))
        if len(created) < len(photos):
            logger.warning(
                "Batch upload stored %d of %d photos", len(created), len(photos)
            )
        return created

    def activate_scheduled(self) -> int:
        """Approve every scheduled submission whose time has come."""
        activated = self.store.activate_due_submissions(self.clock())
        if activated:
            logger.info("Activated %d scheduled submission(s)", activated)
        return activated

    def list_submissions(
        self,
        status: Optional[str] = None,
        displayed: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> SubmissionPage:
        """
        Newest-first page of submissions matching the filters.

        Scheduled items that are due are activated first, so listing is what
        publishes scheduled content.
        """
        if page < 1 or page_size < 1:
            raise ValidationError("page and limit must be positive integers")
        self.activate_scheduled()

        status = _clean(status)
        criteria = SubmissionFilter(
            status=status.upper() if status else None,
            displayed=displayed,
        )
        items, total = self.store.list_submissions(
            criteria, offset=(page - 1) * page_size, limit=page_size
        )
        return SubmissionPage(items=items, total=total, page=page, page_size=page_size)

    def get(self, submission_id: str) -> SubmissionRecord:
        record = self.store.get_submission(submission_id)
        if not record:
            raise NotFoundError(f"Upload with ID {submission_id} not found")
        return record

    def transition(
        self,
        submission_id: str,
        action: str,
        scheduled_for: Optional[datetime] = None,
    ) -> SubmissionRecord:
        status = resolve_action(action)
        if status == SubmissionStatus.SCHEDULED:
            # Without an explicit time the item is due on the next listing.
            when = _to_utc(scheduled_for) if scheduled_for else self.clock()
        else:
            when = None
        record = self.store.update_submission(
            submission_id, status=status, scheduled_for=when
        )
        if not record:
            raise NotFoundError(f"Upload with ID {submission_id} not found")
        return record

    def bulk_transition(self, submission_ids: Iterable[str], action: str) -> int:
        """Apply ``action`` to every existing id; unknown ids are ignored."""
        ids = [submission_id for submission_id in submission_ids if submission_id]
        if not ids:
            raise ValidationError("ids must be a non-empty array")
        status = resolve_action(action)
        when = self.clock() if status == SubmissionStatus.SCHEDULED else None
        return self.store.update_submissions(ids, status=status, scheduled_for=when)

    def mark_displayed(self, submission_id: str) -> SubmissionRecord:
        record = self.get(submission_id)
        if record.displayed:
            return record
        updated = self.store.update_submission(submission_id, displayed=True)
        if not updated:
            raise NotFoundError(f"Upload with ID {submission_id} not found")
        return updated

    def delete(self, submission_id: str) -> None:
        record = self.get(submission_id)
        if record.photo_url:
            try:
                self.storage.delete(record.photo_url)
            except StorageError as exc:
                logger.warning(
                    "Could not delete photo for upload %s: %s",
                    submission_id,
                    exc.message,
                )
        if not self.store.delete_submission(submission_id):
            raise NotFoundError(f"Upload with ID {submission_id} not found")
