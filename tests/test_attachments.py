"""
Tests for chat attachment upload, signed retrieval and the retention sweep
"""
import io
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import auth_headers, make_upload
from vectorius.constants import ATTACHMENT_BUCKET, MAX_ATTACHMENT_BYTES, SIGNED_URL_TTL_SECONDS
from vectorius.exceptions import (
    AuthorizationException,
    FatalException,
    FileTooLargeException,
    NotFoundException,
    StorageException,
    UnsupportedTypeException,
    ValidationException,
)
from vectorius.repositories.chatattachment_repository import ChatAttachmentRepository
from vectorius.services import attachment_service
from vectorius.services.provider_client import ProviderAPIException
from vectorius.utils import now_utc


class TestStore:
    """Tests for validating and persisting uploads"""

    def test_stores_object_and_row(self, app_ctx, storage):
        """Test a valid image is written under the uploader's prefix and recorded"""
        attachment = attachment_service.store(storage, "user-a", make_upload())

        bucket, path, content, mime_type = storage.upload.call_args[0]
        assert bucket == ATTACHMENT_BUCKET
        assert path.startswith("user-a/") and path.endswith(".png")
        assert mime_type == "image/png"
        assert attachment.storage_path == path
        assert attachment.file_size_bytes == len(content)
        assert attachment.deleted_at is None
        assert ChatAttachmentRepository.count() == 1

    def test_rejects_unsupported_type(self, app_ctx, storage):
        """Test non-image uploads never reach storage"""
        upload = make_upload(b"%PDF-1.7", filename="report.pdf", content_type="application/pdf")

        with pytest.raises(UnsupportedTypeException):
            attachment_service.store(storage, "user-a", upload)
        storage.upload.assert_not_called()
        assert ChatAttachmentRepository.count() == 0

    def test_rejects_oversized_file(self, app_ctx, storage):
        """Test files over 8 MiB never reach storage"""
        upload = make_upload(b"0" * (MAX_ATTACHMENT_BYTES + 1), filename="huge.jpg", content_type="image/jpeg")

        with pytest.raises(FileTooLargeException):
            attachment_service.store(storage, "user-a", upload)
        storage.upload.assert_not_called()

    def test_accepts_exactly_max_size(self, app_ctx, storage):
        """Test the size ceiling is inclusive"""
        upload = make_upload(b"0" * MAX_ATTACHMENT_BYTES, filename="big.heic", content_type="image/heic")

        attachment = attachment_service.store(storage, "user-a", upload)

        assert attachment.file_size_bytes == MAX_ATTACHMENT_BYTES

    def test_missing_file(self, app_ctx, storage):
        """Test a request without a file is rejected"""
        with pytest.raises(ValidationException):
            attachment_service.store(storage, "user-a", None)

    def test_storage_failure(self, app_ctx, storage):
        """Test storage errors fail the upload without writing a row"""
        storage.upload.side_effect = ProviderAPIException("bucket offline", status_code=503)

        with pytest.raises(StorageException):
            attachment_service.store(storage, "user-a", make_upload())
        assert ChatAttachmentRepository.count() == 0

    def test_insert_failure_releases_object(self, app_ctx, storage):
        """Test the stored object is deleted again when the row cannot be written"""
        with patch.object(ChatAttachmentRepository, "create", side_effect=SQLAlchemyError("insert failed")):
            with pytest.raises(FatalException) as exc_info:
                attachment_service.store(storage, "user-a", make_upload())

        assert exc_info.value.message == "Failed to record attachment"
        path = storage.upload.call_args[0][1]
        storage.remove.assert_called_once_with(ATTACHMENT_BUCKET, [path])

    def test_failed_release_is_not_raised(self, app_ctx, storage):
        """Test an orphaned object is logged and the original failure still surfaces"""
        storage.remove.side_effect = ProviderAPIException("delete failed")

        with patch.object(ChatAttachmentRepository, "create", side_effect=SQLAlchemyError("insert failed")):
            with pytest.raises(FatalException):
                attachment_service.store(storage, "user-a", make_upload())
        storage.remove.assert_called_once()

    @pytest.mark.parametrize("file_name,expected", [
        ("photo.JPG", "jpg"),
        ("scan.heic", "heic"),
        ("noextension", "jpg"),
        ("", "jpg"),
    ])
    def test_file_extension(self, file_name, expected):
        """Test the storage extension comes from the file name"""
        assert attachment_service.file_extension(file_name) == expected


class TestSignedUrl:
    """Tests for owner-only signed retrieval"""

    def test_owner_gets_url(self, app_ctx, storage):
        """Test the uploader gets a ten minute URL"""
        attachment = attachment_service.store(storage, "user-a", make_upload())

        url = attachment_service.get_signed_url(storage, attachment.id, "user-a")

        assert url == storage.create_signed_url.return_value
        storage.create_signed_url.assert_called_once_with(
            ATTACHMENT_BUCKET, attachment.storage_path, SIGNED_URL_TTL_SECONDS
        )

    def test_other_user_forbidden(self, app_ctx, storage):
        """Test another user is refused without a URL being signed"""
        attachment = attachment_service.store(storage, "user-a", make_upload())

        with pytest.raises(AuthorizationException):
            attachment_service.get_signed_url(storage, attachment.id, "user-b")
        storage.create_signed_url.assert_not_called()

    def test_swept_attachment_not_found(self, app_ctx, storage):
        """Test soft-deleted attachments are gone for good"""
        attachment = attachment_service.store(storage, "user-a", make_upload())
        ChatAttachmentRepository.mark_deleted([attachment.id], now_utc())

        with pytest.raises(NotFoundException):
            attachment_service.get_signed_url(storage, attachment.id, "user-a")

    def test_signing_failure(self, app_ctx, storage):
        """Test signing errors surface as a storage failure"""
        attachment = attachment_service.store(storage, "user-a", make_upload())
        storage.create_signed_url.side_effect = ProviderAPIException("sign failed")

        with pytest.raises(StorageException):
            attachment_service.get_signed_url(storage, attachment.id, "user-a")


class TestSweep:
    """Tests for the retention sweep"""

    def test_dry_run_changes_nothing(self, app_ctx, storage, old_attachments):
        """Test a dry run lists candidates and mutates neither storage nor rows"""
        report = attachment_service.sweep(storage, days=7, dry_run=True)

        assert report.dry_run
        assert {a.id for a in report.candidates} == set(old_attachments[:3])
        assert report.soft_deleted == 0
        storage.remove.assert_not_called()
        for attachment_id in old_attachments:
            assert ChatAttachmentRepository.get_by_id(attachment_id).deleted_at is None

    def test_deletes_in_batches(self, app_ctx, storage, old_attachments):
        """Test objects are removed batch by batch and rows are soft-deleted"""
        report = attachment_service.sweep(storage, days=7, batch_size=2)

        assert storage.remove.call_count == 2
        assert [len(call[0][1]) for call in storage.remove.call_args_list] == [2, 1]
        assert report.deleted_objects == 3
        assert report.soft_deleted == 3
        assert ChatAttachmentRepository.get_by_id(old_attachments[3]).deleted_at is None
        for attachment_id in old_attachments[:3]:
            assert ChatAttachmentRepository.get_by_id(attachment_id).deleted_at is not None

    def test_failed_batch_still_marks_rows(self, app_ctx, storage, old_attachments):
        """Test a failed storage batch is reported and the rows are still marked"""
        storage.remove.side_effect = [ProviderAPIException("timeout"), []]

        report = attachment_service.sweep(storage, days=7, batch_size=2)

        assert report.failed_batches == [1]
        assert report.deleted_objects == 1
        assert report.soft_deleted == 3

    def test_nothing_to_do(self, app_ctx, storage):
        """Test an empty table is a no-op"""
        report = attachment_service.sweep(storage, days=7)

        assert report.candidates == []
        storage.remove.assert_not_called()

    def test_repeat_sweep_skips_marked_rows(self, app_ctx, storage, old_attachments):
        """Test already soft-deleted rows are not swept again"""
        attachment_service.sweep(storage, days=7)
        storage.remove.reset_mock()

        report = attachment_service.sweep(storage, days=7)

        assert report.candidates == []
        storage.remove.assert_not_called()


class TestChatEndpoints:
    """Tests for /api/chat/upload and /api/chat/attachment/<id>"""

    def _upload(self, client, storage, access_token, content=b"\xff\xd8\xff" + b"0" * 32, name="worksheet.jpg",
                content_type="image/jpeg"):
        with patch("vectorius.routes.chat.StorageClient.from_settings", return_value=storage):
            return client.post(
                "/api/chat/upload",
                data={"file": (io.BytesIO(content), name, content_type)},
                content_type="multipart/form-data",
                headers=auth_headers(access_token),
            )

    def test_upload_requires_session(self, client, storage, provider_sessions):
        """Test anonymous uploads get 401"""
        response = self._upload(client, storage, "not-a-session")

        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized", "code": "AUTH_ERROR"}
        storage.upload.assert_not_called()

    def test_upload(self, client, storage, provider_sessions):
        """Test a signed-in user can upload an image"""
        response = self._upload(client, storage, "token-student-a")

        assert response.status_code == 200
        data = response.get_json()
        assert data["fileName"] == "worksheet.jpg"
        assert data["mimeType"] == "image/jpeg"
        assert data["attachmentId"]

    def test_upload_rejects_type(self, client, storage, provider_sessions):
        """Test unsupported types get 400 with a useful message"""
        response = self._upload(client, storage, "token-student-a", content=b"GIF89a", name="a.gif",
                                content_type="image/gif")

        assert response.status_code == 400
        assert response.get_json()["error"] == "Unsupported file type: image/gif. Allowed: jpg, png, heic"
        storage.upload.assert_not_called()

    def test_other_user_gets_403(self, client, storage, provider_sessions):
        """Test user B cannot get a URL for user A's attachment"""
        attachment_id = self._upload(client, storage, "token-student-a").get_json()["attachmentId"]

        with patch("vectorius.routes.chat.StorageClient.from_settings", return_value=storage):
            response = client.get(f"/api/chat/attachment/{attachment_id}", headers=auth_headers("token-student-b"))

        assert response.status_code == 403
        storage.create_signed_url.assert_not_called()

    def test_owner_gets_url(self, client, storage, provider_sessions):
        """Test user A gets a signed URL for their own attachment"""
        attachment_id = self._upload(client, storage, "token-student-a").get_json()["attachmentId"]

        with patch("vectorius.routes.chat.StorageClient.from_settings", return_value=storage):
            response = client.get(f"/api/chat/attachment/{attachment_id}", headers=auth_headers("token-student-a"))

        assert response.status_code == 200
        assert response.get_json() == {"url": storage.create_signed_url.return_value}

    def test_unknown_attachment(self, client, storage, provider_sessions):
        """Test unknown ids get 404"""
        with patch("vectorius.routes.chat.StorageClient.from_settings", return_value=storage):
            response = client.get("/api/chat/attachment/missing", headers=auth_headers("token-student-a"))

        assert response.status_code == 404
