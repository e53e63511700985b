"""Chat attachments: validated upload into object storage, owner-only signed
retrieval, and the retention sweep.

Uploads follow reserve -> store -> commit. The storage path is reserved up
front, the bytes are written, then the metadata row is committed; when the
commit fails the stored object is released again. A failed release leaves an
orphaned object which is logged and counted, never raised.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from vectorius.constants import (
    ALLOWED_MIME_TYPES,
    ATTACHMENT_BUCKET,
    DEFAULT_ATTACHMENT_EXTENSION,
    DEFAULT_RETENTION_DAYS,
    MAX_ATTACHMENT_BYTES,
    SIGNED_URL_TTL_SECONDS,
    SWEEP_BATCH_SIZE,
)
from vectorius.exceptions import (
    AuthorizationException,
    FatalException,
    FileTooLargeException,
    NotFoundException,
    StorageException,
    UnsupportedTypeException,
    ValidationException,
)
from vectorius.metrics import attachment_orphans_total, attachment_uploads_total, attachments_swept_total
from vectorius.repositories.chatattachment_repository import ChatAttachmentRepository
from vectorius.services.provider_client import ProviderAPIException
from vectorius.utils import format_size_py, now_utc

logger = logging.getLogger("main")


def validate_upload(file_name, mime_type, size):
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedTypeException(f"Unsupported file type: {mime_type}. Allowed: jpg, png, heic")
    if size > MAX_ATTACHMENT_BYTES:
        raise FileTooLargeException(f"File too large ({format_size_py(size)}). Max: 8MB")


def file_extension(file_name):
    if file_name and "." in file_name:
        ext = file_name.rsplit(".", 1)[1].lower()
        if ext and ext.isalnum():
            return ext
    return DEFAULT_ATTACHMENT_EXTENSION


def reserve_storage_path(owner_id, file_name):
    """Per-uploader namespace keeps paths collision free and easy to bulk delete"""
    return f"{owner_id}/{uuid.uuid4()}.{file_extension(file_name)}"


def release_storage_path(storage, storage_path):
    """Best-effort removal of an object whose metadata never got committed"""
    try:
        storage.remove(ATTACHMENT_BUCKET, [storage_path])
        logger.info(f"Released storage object {storage_path} after failed metadata insert")
        return True
    except ProviderAPIException as e:
        attachment_orphans_total.inc()
        logger.error(f"Orphaned storage object {storage_path}: cleanup failed: {e}")
        return False


def store(storage, owner_id, upload):
    """Validate and persist an uploaded image for its owner.

    ``upload`` is a werkzeug FileStorage. Nothing is written to storage unless
    the type and size checks pass.
    """
    if upload is None:
        raise ValidationException("No file provided")

    file_name = upload.filename or "upload"
    mime_type = upload.mimetype
    # One byte past the ceiling is enough to know the file is too large
    content = upload.stream.read(MAX_ATTACHMENT_BYTES + 1)
    size = len(content)
    if size > MAX_ATTACHMENT_BYTES and upload.content_length:
        size = max(size, upload.content_length)

    try:
        validate_upload(file_name, mime_type, size)
    except ValidationException:
        attachment_uploads_total.labels(outcome="rejected").inc()
        raise

    storage_path = reserve_storage_path(owner_id, file_name)

    try:
        storage.upload(ATTACHMENT_BUCKET, storage_path, content, mime_type)
    except ProviderAPIException as e:
        attachment_uploads_total.labels(outcome="error").inc()
        logger.error(f"Storage upload error for {storage_path}: {e}")
        raise StorageException("Failed to upload file")

    try:
        attachment = ChatAttachmentRepository.create(
            uploader_user_id=owner_id,
            storage_path=storage_path,
            file_name=file_name,
            mime_type=mime_type,
            file_size_bytes=size,
        )
    except SQLAlchemyError as e:
        attachment_uploads_total.labels(outcome="error").inc()
        logger.error(f"Insert error for attachment {storage_path}: {e}")
        release_storage_path(storage, storage_path)
        raise FatalException("Failed to record attachment")

    attachment_uploads_total.labels(outcome="stored").inc()
    logger.info(f"Stored attachment {attachment.id} ({format_size_py(size)}) for user {owner_id}")
    return attachment


def get_signed_url(storage, attachment_id, requester_id):
    """Fresh 10-minute read URL, only for the uploader"""
    attachment = ChatAttachmentRepository.get_live_by_id(attachment_id)
    if attachment is None:
        raise NotFoundException()

    if attachment.uploader_user_id != requester_id:
        raise AuthorizationException()

    try:
        url = storage.create_signed_url(ATTACHMENT_BUCKET, attachment.storage_path, SIGNED_URL_TTL_SECONDS)
    except ProviderAPIException as e:
        logger.error(f"Signing failed for attachment {attachment_id}: {e}")
        url = None
    if not url:
        raise StorageException("Failed to generate URL")
    return url


@dataclass
class SweepReport:
    cutoff: datetime
    dry_run: bool
    candidates: List = field(default_factory=list)
    deleted_objects: int = 0
    failed_batches: List[int] = field(default_factory=list)
    soft_deleted: int = 0


def sweep(storage, days=DEFAULT_RETENTION_DAYS, dry_run=False, batch_size=SWEEP_BATCH_SIZE, now=None):
    """Soft-delete attachments older than ``days``.

    Storage objects go first, batch by batch, then the rows are marked. A
    crash in between leaves rows unmarked whose objects are already gone;
    running the sweep again just repeats a harmless delete.
    """
    now = now or now_utc()
    cutoff = now - timedelta(days=days)
    report = SweepReport(cutoff=cutoff, dry_run=dry_run)

    report.candidates = ChatAttachmentRepository.get_expired(cutoff)
    if not report.candidates or dry_run:
        return report

    paths = [attachment.storage_path for attachment in report.candidates]
    for start in range(0, len(paths), batch_size):
        batch = paths[start:start + batch_size]
        batch_number = start // batch_size + 1
        try:
            storage.remove(ATTACHMENT_BUCKET, batch)
            report.deleted_objects += len(batch)
            logger.info(f"Deleted {len(batch)} storage object(s) (batch {batch_number})")
        except ProviderAPIException as e:
            report.failed_batches.append(batch_number)
            logger.error(f"Storage delete error (batch {batch_number}): {e}")

    ids = [attachment.id for attachment in report.candidates]
    report.soft_deleted = ChatAttachmentRepository.mark_deleted(ids, now)
    attachments_swept_total.inc(report.soft_deleted)
    return report
