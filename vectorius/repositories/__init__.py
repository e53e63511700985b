"""
Repositories package

Each repository encapsulates database operations for a model:
- personatoken_repository.py
- chatattachment_repository.py

Usage:
    from vectorius.repositories.personatoken_repository import PersonaTokenRepository
    record = PersonaTokenRepository.get_by_token(token)
"""
