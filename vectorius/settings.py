import copy
import logging
import os
from urllib.parse import urlparse

import yaml
from flask import current_app

from vectorius.constants import CONFIG_FILE, DEFAULT_SETTINGS, ENV_OVERRIDES, PRODUCTION_ENV

# Retrieve main logger
logger = logging.getLogger("main")

# Cache variable
_cached_settings = None


def _merge(base, overrides):
    merged = copy.deepcopy(base)
    for section, values in (overrides or {}).items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def _apply_environment(settings, environ):
    seen = set()
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value or (section, key) in seen:
            continue
        settings.setdefault(section, {})[key] = value
        seen.add((section, key))
    return settings


def normalize_database_url(url):
    """Hosted Postgres hands out postgres:// URLs, SQLAlchemy wants postgresql://"""
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def load_settings(force=False, config_file=None, environ=None):
    """Load settings from defaults, the optional YAML file and the environment.

    Secrets are expected in the environment; the YAML file only carries
    non-secret tuning such as retention days or rate limits.
    """
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    config_file = config_file or CONFIG_FILE
    environ = os.environ if environ is None else environ

    file_settings = {}
    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            file_settings = yaml.safe_load(yaml_file) or {}

    settings = _merge(DEFAULT_SETTINGS, file_settings)
    settings = _apply_environment(settings, environ)
    settings["database"]["url"] = normalize_database_url(settings["database"]["url"])

    _cached_settings = settings
    return settings


def get_settings():
    """Settings bound to the running app, falling back to the process-wide ones"""
    try:
        return current_app.config["SETTINGS"]
    except (RuntimeError, KeyError):
        return load_settings()


def is_production(settings):
    """True when either our own or the hosting platform's environment says production"""
    app = settings.get("app", {})
    return any(
        (app.get(key) or "").lower() == PRODUCTION_ENV
        for key in ("environment", "platform_environment")
    )


def model_config(settings):
    """Model endpoint configuration, or None when extraction is switched off"""
    model = settings.get("model", {})
    if not (model.get("endpoint") and model.get("api_key") and model.get("deployment")):
        return None
    return model


def provider_project_ref(settings):
    url = settings.get("provider", {}).get("url")
    if not url:
        return None
    hostname = urlparse(url).hostname
    return hostname.split(".")[0] if hostname else None


def auth_cookie_name(settings):
    project_ref = provider_project_ref(settings)
    if not project_ref:
        return None
    return f"sb-{project_ref}-auth-token"


def verify_settings(settings, section):
    success = True
    errors = []
    if section == "provider":
        provider = settings.get("provider", {})
        if not provider.get("url"):
            success = False
            errors.append({"path": "provider/url", "error": "SUPABASE_URL is not set."})
        if not provider.get("service_role_key"):
            success = False
            errors.append({"path": "provider/service_role_key", "error": "SUPABASE_SERVICE_ROLE_KEY is not set."})
    elif section == "database":
        if not settings.get("database", {}).get("url"):
            success = False
            errors.append({"path": "database/url", "error": "DATABASE_URL is not set."})
    return success, errors
