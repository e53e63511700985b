"""
Repository for ChatAttachment database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from vectorius.db import db
from vectorius.models.chatattachment import ChatAttachment


class ChatAttachmentRepository:
    """Repository for ChatAttachment database operations"""

    @staticmethod
    def get_by_id(id):
        """Get ChatAttachment by ID, soft-deleted rows included"""
        return db.session.get(ChatAttachment, id)

    @staticmethod
    def get_live_by_id(id):
        """Get ChatAttachment by ID unless it has been swept"""
        return ChatAttachment.query.filter(
            ChatAttachment.id == id, ChatAttachment.deleted_at.is_(None)
        ).first()

    @staticmethod
    def create(**kwargs):
        """Create new ChatAttachment record"""
        try:
            item = ChatAttachment(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def get_expired(cutoff):
        """Live attachments created before the cutoff, oldest first"""
        return (
            ChatAttachment.query
            .filter(ChatAttachment.created_at < cutoff, ChatAttachment.deleted_at.is_(None))
            .order_by(ChatAttachment.created_at)
            .all()
        )

    @staticmethod
    def mark_deleted(ids, deleted_at):
        """Soft-delete the given attachments, returns the number of rows marked"""
        if not ids:
            return 0
        try:
            updated = (
                ChatAttachment.query
                .filter(ChatAttachment.id.in_(ids))
                .update({ChatAttachment.deleted_at: deleted_at}, synchronize_session=False)
            )
            db.session.commit()
            return updated
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def count():
        """Count total ChatAttachment records"""
        return ChatAttachment.query.count()
