"""
Extraction Routes - school e-mail parsing and study plan generation
"""
from flask import Blueprint, jsonify, request

from vectorius.services import extraction_service
from vectorius.services.model_client import ModelClient
from vectorius.settings import get_settings, model_config

extraction_bp = Blueprint("extraction", __name__, url_prefix="/api")


@extraction_bp.route("/parse-email", methods=["POST"])
def parse_email():
    client = ModelClient.from_settings(get_settings(), feature="Email parsing")
    raw_text = extraction_service.read_email_text(request.get_json(silent=True))
    events = extraction_service.extract_events(client, raw_text)
    return jsonify({"events": events})


@extraction_bp.route("/generate-study-plan", methods=["POST"])
def generate_study_plan():
    client = ModelClient.from_settings(get_settings(), feature="Study plan generation")
    title, due_date, hints = extraction_service.read_study_plan_request(request.get_json(silent=True))
    milestones = extraction_service.generate_study_plan(client, title, due_date, hints)
    return jsonify({"milestones": milestones})


@extraction_bp.route("/extraction/status", methods=["GET"])
def extraction_status():
    """Lets the UI hide the extraction features when the model is not configured"""
    return jsonify({"enabled": model_config(get_settings()) is not None})
