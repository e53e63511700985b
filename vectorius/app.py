import logging
import os
import sys

import structlog
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from vectorius.auth import auth_blueprint, login_manager
from vectorius.constants import BUILD_VERSION, CONFIG_DIR, LOCAL_DB
from vectorius.db import db, init_db
from vectorius.exceptions import register_exception_handlers
from vectorius.metrics import init_metrics
from vectorius.routes.chat import chat_bp
from vectorius.routes.extraction import extraction_bp
from vectorius.routes.system import system_bp
from vectorius.settings import load_settings, model_config
from vectorius.utils import ColoredFormatter, FilterRemoveDateFromWerkzeugLogs, get_or_create_secret_key, sanitize_sensitive_data

# Logging configuration
formatter = ColoredFormatter(
    '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(formatter)

logging.basicConfig(
    level=logging.INFO,
    handlers=[handler]
)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if os.environ.get('LOG_FORMAT') == 'json' else structlog.dev.ConsoleRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger('main')

# Apply filter to hide date from http access logs
logging.getLogger('werkzeug').addFilter(FilterRemoveDateFromWerkzeugLogs())


def create_app(settings=None, **config):
    """Application factory

    ``settings`` defaults to the merged defaults/YAML/environment settings;
    keyword arguments are applied to ``app.config`` last (tests pass an
    in-memory database and ``AUTO_CREATE_TABLES`` this way).
    """
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["SQLALCHEMY_DATABASE_URI"] = settings["database"]["url"] or LOCAL_DB
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["AUTO_CREATE_TABLES"] = settings["database"].get("auto_create_tables", False)
    app.config.update(config)

    if not app.config.get("SECRET_KEY"):
        app.config["SECRET_KEY"] = settings["app"].get("secret_key") or get_or_create_secret_key(CONFIG_DIR)

    # Initialize components
    db.init_app(app)
    login_manager.init_app(app)

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=settings["limits"]["default"],
        storage_uri="memory://",
    )
    limiter.init_app(app)

    # Register exception handlers
    register_exception_handlers(app)

    # Register blueprints
    app.register_blueprint(auth_blueprint)
    app.register_blueprint(chat_bp)
    app.register_blueprint(extraction_bp)
    app.register_blueprint(system_bp)

    # Initialize metrics
    init_metrics(app)

    # Initialize database
    init_db(app)

    logger.info(
        "Application created",
        version=BUILD_VERSION,
        environment=settings["app"]["environment"],
        extraction_enabled=model_config(settings) is not None,
    )
    logger.debug("Effective settings", settings=sanitize_sensitive_data(settings))
    return app
