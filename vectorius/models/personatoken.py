"""
Model: PersonaToken
Single-use, time-limited login tokens for test personas
"""

from vectorius.db import db, now_utc


class PersonaToken(db.Model):
    __tablename__ = "persona_tokens"

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    persona_name = db.Column(db.String(100), nullable=False, default="test-persona")
    role = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True))
