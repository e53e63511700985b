"""
Model: ChatAttachment
Metadata for images uploaded to the chat-attachments bucket
"""

import uuid

from vectorius.db import db, now_utc


def _new_id():
    return str(uuid.uuid4())


class ChatAttachment(db.Model):
    __tablename__ = "chat_attachments"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    uploader_user_id = db.Column(db.String(64), nullable=False, index=True)
    storage_path = db.Column(db.String(255), unique=True, nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(64), nullable=False)
    file_size_bytes = db.Column(db.BigInteger, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True))

    __table_args__ = (
        # Retention sweep scans live rows by age
        db.Index("idx_chat_attachments_created_deleted", "created_at", "deleted_at"),
    )
