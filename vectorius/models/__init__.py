"""
Models package

Tables owned by the hosted Postgres database:
- persona_tokens
- chat_attachments
"""

from .personatoken import PersonaToken
from .chatattachment import ChatAttachment

__all__ = [
    "PersonaToken",
    "ChatAttachment",
]
