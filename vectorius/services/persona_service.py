"""Persona tokens: issuing single-use login links for test identities and redeeming them.

A token is usable while ``now < expires_at`` and ``used_at`` is unset. Redemption
burns the token before the identity provider is asked for a login link, so a
provider failure still leaves the token consumed.
"""

import logging
import secrets
from datetime import timedelta

from vectorius.constants import DEFAULT_PERSONA_NAME, DEFAULT_TOKEN_TTL_HOURS, PERSONA_TOKEN_BYTES
from vectorius.exceptions import (
    InvalidTokenException,
    PersonaDisabledException,
    SessionMintFailedException,
    TokenAlreadyUsedException,
    TokenExpiredException,
    UserNotFoundException,
)
from vectorius.metrics import persona_redemptions_total, persona_tokens_issued_total
from vectorius.repositories.personatoken_repository import PersonaTokenRepository
from vectorius.services.provider_client import ProviderAPIException
from vectorius.settings import is_production
from vectorius.utils import ensure_utc, now_utc

logger = logging.getLogger("main")


def generate_token_value():
    return secrets.token_urlsafe(PERSONA_TOKEN_BYTES)


def build_magic_link(base_url, token):
    base_url = base_url if base_url.startswith("http") else f"https://{base_url}"
    return f"{base_url.rstrip('/')}/api/auth/persona?token={token}"


def issue_token(user_id, role, persona=DEFAULT_PERSONA_NAME, ttl_hours=DEFAULT_TOKEN_TTL_HOURS, now=None):
    """Insert a new persona token and return the stored record"""
    now = now or now_utc()
    record = PersonaTokenRepository.create(
        token=generate_token_value(),
        user_id=user_id,
        persona_name=persona,
        role=role,
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    persona_tokens_issued_total.labels(role=role).inc()
    logger.info(f"Issued persona token for user {user_id} as {role} ({persona}), expires {record.expires_at}")
    return record


def redeem(token, settings, identity_client, base_url, now=None):
    """Validate and burn a persona token, then mint a provider login link.

    Returns the provider-issued link the browser should be sent to.
    """
    if is_production(settings):
        persona_redemptions_total.labels(outcome="disabled").inc()
        raise PersonaDisabledException()

    now = now or now_utc()

    record = PersonaTokenRepository.get_by_token(token)
    if record is None:
        persona_redemptions_total.labels(outcome="invalid").inc()
        raise InvalidTokenException()

    if now > ensure_utc(record.expires_at):
        persona_redemptions_total.labels(outcome="expired").inc()
        raise TokenExpiredException()

    if record.used_at is not None:
        persona_redemptions_total.labels(outcome="already_used").inc()
        raise TokenAlreadyUsedException()

    if not PersonaTokenRepository.consume(record.id, now):
        # Lost the race against a concurrent redemption of the same token
        persona_redemptions_total.labels(outcome="already_used").inc()
        raise TokenAlreadyUsedException()

    try:
        user = identity_client.get_user_by_id(record.user_id)
    except ProviderAPIException as e:
        persona_redemptions_total.labels(outcome="error").inc()
        logger.error(f"Identity lookup failed for persona user {record.user_id}: {e}")
        raise UserNotFoundException()
    if not user or not user.get("email"):
        persona_redemptions_total.labels(outcome="error").inc()
        raise UserNotFoundException()

    redirect_to = f"{base_url.rstrip('/')}/{record.role}"
    try:
        action_link = identity_client.generate_magic_link(user["email"], redirect_to)
    except ProviderAPIException as e:
        persona_redemptions_total.labels(outcome="error").inc()
        logger.error(f"Failed to generate session: {e}")
        raise SessionMintFailedException()
    if not action_link:
        persona_redemptions_total.labels(outcome="error").inc()
        raise SessionMintFailedException("Failed to create magic link")

    persona_redemptions_total.labels(outcome="success").inc()
    logger.info(f"Persona token {record.id} redeemed for {user['email']} -> {redirect_to}")
    return action_link
