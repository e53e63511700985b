"""
System Routes - health endpoint for monitoring
"""
from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vectorius.constants import BUILD_VERSION
from vectorius.db import db, logger

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


@system_bp.route("/health", methods=["GET"])
def health_check_api():
    database = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = "error"
    return jsonify({
        "status": "healthy" if database == "ok" else "degraded",
        "version": BUILD_VERSION,
        "database": database,
    })
