import base64
import json
import logging
from urllib.parse import unquote

from flask import Blueprint, jsonify, redirect, request
from flask_login import LoginManager, UserMixin

from vectorius.exceptions import FatalException, PersonaDisabledException, ValidationException
from vectorius.services import persona_service
from vectorius.services.provider_client import IdentityClient, ProviderAPIException
from vectorius.settings import auth_cookie_name, get_settings, is_production

# Retrieve main logger
logger = logging.getLogger("main")

login_manager = LoginManager()
# Identity comes from the provider's cookie on every request, not from the Flask session
login_manager.session_protection = None

auth_blueprint = Blueprint("auth", __name__)


class AuthUser(UserMixin):
    """Identity resolved from the provider for the current request"""

    def __init__(self, id, email=None, role=None):
        self.id = id
        self.email = email
        self.role = role

    @classmethod
    def from_provider(cls, user):
        metadata = user.get("user_metadata") or {}
        return cls(user["id"], email=user.get("email"), role=metadata.get("role"))

    def __repr__(self):
        return f"<AuthUser {self.id}>"


def _decode_cookie_value(value):
    if value.startswith("base64-"):
        encoded = value[len("base64-"):]
        encoded += "=" * (-len(encoded) % 4)
        value = base64.urlsafe_b64decode(encoded).decode("utf-8")
    elif value.startswith("%"):
        value = unquote(value)
    return json.loads(value)


def read_session_cookie(cookies, cookie_name):
    """Reassemble the provider session cookie, which may be split into .0, .1, ... chunks"""
    if cookie_name in cookies:
        return cookies[cookie_name]
    chunks = []
    index = 0
    while f"{cookie_name}.{index}" in cookies:
        chunks.append(cookies[f"{cookie_name}.{index}"])
        index += 1
    return "".join(chunks) or None


def read_access_token(req, settings):
    header = req.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None

    cookie_name = auth_cookie_name(settings)
    if not cookie_name:
        return None
    raw = read_session_cookie(req.cookies, cookie_name)
    if not raw:
        return None
    try:
        session_data = _decode_cookie_value(raw)
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Unreadable auth cookie: {e}")
        return None
    if isinstance(session_data, dict):
        return session_data.get("access_token")
    if isinstance(session_data, list) and session_data:
        return session_data[0]
    return None


@login_manager.request_loader
def load_user_from_request(req):
    """Resolve the caller's identity with the provider, None when anonymous"""
    settings = get_settings()
    provider = settings.get("provider", {})
    if not provider.get("url") or not provider.get("anon_key"):
        return None

    access_token = read_access_token(req, settings)
    if not access_token:
        return None

    client = IdentityClient(provider["url"], provider["anon_key"])
    try:
        user = client.get_user_for_access_token(access_token)
    except ProviderAPIException as e:
        logger.error(f"Session lookup failed: {e}")
        return None
    if not user or not user.get("id"):
        return None
    return AuthUser.from_provider(user)


def get_base_url(settings):
    base_url = settings.get("app", {}).get("base_url")
    if base_url:
        return base_url if base_url.startswith("http") else f"https://{base_url}"
    host = request.host or "localhost"
    scheme = "http" if host.startswith(("localhost", "127.0.0.1")) else "https"
    return f"{scheme}://{host}"


@auth_blueprint.route("/api/auth/persona")
def persona_login():
    """Redeem a persona token and forward the browser to the provider's login link"""
    settings = get_settings()
    if is_production(settings):
        raise PersonaDisabledException()

    token = request.args.get("token")
    if not token:
        raise ValidationException("Missing token parameter")

    identity_client = IdentityClient.from_settings(settings)
    action_link = persona_service.redeem(token, settings, identity_client, get_base_url(settings))
    return redirect(action_link, code=302)


@auth_blueprint.route("/api/auth/logout", methods=["POST"])
def logout():
    """Expire every provider auth cookie the browser sent"""
    cookie_name = auth_cookie_name(get_settings())
    if not cookie_name:
        raise FatalException("Missing Supabase URL")

    host = request.host or ""
    is_secure = request.headers.get("X-Forwarded-Proto") == "https" or (
        "localhost" not in host and "127.0.0.1" not in host
    )

    response = jsonify({"ok": True})
    for name in request.cookies:
        if name == cookie_name or name.startswith(f"{cookie_name}."):
            response.set_cookie(name, "", path="/", httponly=False, samesite="Lax", secure=is_secure, expires=0)
    return response
