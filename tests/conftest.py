"""
Pytest fixtures and configuration for Vectorius tests
"""
import io
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from werkzeug.datastructures import FileStorage

from vectorius.app import create_app
from vectorius.db import db
from vectorius.services.provider_client import IdentityClient
from vectorius.settings import load_settings
from vectorius.utils import now_utc

PROVIDER_URL = "https://abcdefgh.supabase.co"
AUTH_COOKIE = "sb-abcdefgh-auth-token"

TEST_ENVIRONMENT = {
    "APP_ENV": "development",
    "PUBLIC_BASE_URL": "https://vectorius.test",
    "SECRET_KEY": "test-secret-key",
    "SUPABASE_URL": PROVIDER_URL,
    "SUPABASE_ANON_KEY": "anon-key",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
    "AZURE_OPENAI_ENDPOINT": "https://vectorius-ai.openai.azure.com",
    "AZURE_OPENAI_API_KEY": "model-key",
    "AZURE_OPENAI_DEPLOYMENT": "gpt-4o-mini",
}

# Access token -> provider user, as answered by GET /auth/v1/user
SESSIONS = {
    "token-student-a": {"id": "user-a", "email": "maya@example.com", "user_metadata": {"role": "student"}},
    "token-student-b": {"id": "user-b", "email": "leo@example.com", "user_metadata": {"role": "student"}},
}


@pytest.fixture
def settings(tmp_path):
    """Settings built the same way as in production, from a fixed environment"""
    settings = load_settings(force=True, config_file=str(tmp_path / "settings.yaml"), environ=TEST_ENVIRONMENT)
    settings["database"]["url"] = "sqlite://"
    settings["database"]["auto_create_tables"] = True
    return settings


@pytest.fixture
def app(settings):
    app = create_app(settings, TESTING=True, RATELIMIT_ENABLED=False)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Pushed app context for tests that call services directly"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def provider_sessions():
    """Resolve the bearer tokens in SESSIONS without talking to the provider"""
    with patch.object(IdentityClient, "get_user_for_access_token", side_effect=lambda token: SESSIONS.get(token)) as lookup:
        yield lookup


def auth_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def storage():
    """Stand-in for the object storage client"""
    storage = MagicMock()
    storage.remove.return_value = []
    storage.create_signed_url.return_value = f"{PROVIDER_URL}/storage/v1/object/sign/chat-attachments/x?token=signed"
    return storage


def make_upload(content=b"\x89PNG\r\n\x1a\n" + b"0" * 64, filename="worksheet.png", content_type="image/png"):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=content_type)


@pytest.fixture
def old_attachments(app_ctx):
    """Three attachments past a 7 day retention and one recent one"""
    from vectorius.repositories.chatattachment_repository import ChatAttachmentRepository

    now = now_utc()
    created = []
    for index, age in enumerate([10, 9, 8, 1]):
        attachment = ChatAttachmentRepository.create(
            uploader_user_id="user-a",
            storage_path=f"user-a/attachment-{index}.png",
            file_name=f"homework-{index}.png",
            mime_type="image/png",
            file_size_bytes=2048,
            created_at=now - timedelta(days=age),
        )
        created.append(attachment.id)
    return created
