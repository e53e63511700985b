"""
Repository for PersonaToken database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from vectorius.db import db
from vectorius.models.personatoken import PersonaToken


class PersonaTokenRepository:
    """Repository for PersonaToken database operations"""

    @staticmethod
    def get_by_token(token):
        """Get PersonaToken by its opaque token value"""
        return PersonaToken.query.filter_by(token=token).first()

    @staticmethod
    def create(**kwargs):
        """Create new PersonaToken record"""
        try:
            item = PersonaToken(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def consume(id, used_at):
        """Mark a token used if nobody else has.

        Single conditional UPDATE; returns False when the row was already
        consumed by a concurrent redemption.
        """
        try:
            updated = (
                PersonaToken.query
                .filter(PersonaToken.id == id, PersonaToken.used_at.is_(None))
                .update({PersonaToken.used_at: used_at}, synchronize_session=False)
            )
            db.session.commit()
            return updated == 1
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def count():
        """Count total PersonaToken records"""
        return PersonaToken.query.count()
