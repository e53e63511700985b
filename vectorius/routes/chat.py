"""
Chat Routes - tutor chat and image attachments for the chat thread
"""
import logging

from flask import Blueprint, jsonify, request

from vectorius.middleware.auth import session_required
from vectorius.services import attachment_service, tutor_service
from vectorius.services.model_client import ModelClient
from vectorius.services.provider_client import StorageClient
from vectorius.settings import get_settings, model_config

logger = logging.getLogger("main")

chat_bp = Blueprint("chat", __name__, url_prefix="/api/chat")


@chat_bp.route("", methods=["GET"])
def chat_status():
    return jsonify({"enabled": model_config(get_settings()) is not None})


@chat_bp.route("", methods=["POST"])
def ask_tutor():
    client = ModelClient.from_settings(get_settings(), feature="Chat")
    question, mode, history = tutor_service.read_chat_request(request.get_json(silent=True))
    return jsonify(tutor_service.ask(client, question, mode, history))


@chat_bp.route("/upload", methods=["POST"])
@session_required
def upload_attachment(identity):
    storage = StorageClient.from_settings(get_settings())
    attachment = attachment_service.store(storage, identity.id, request.files.get("file"))
    return jsonify({
        "attachmentId": attachment.id,
        "fileName": attachment.file_name,
        "mimeType": attachment.mime_type,
    })


@chat_bp.route("/attachment/<attachment_id>", methods=["GET"])
@session_required
def get_attachment_url(attachment_id, identity):
    storage = StorageClient.from_settings(get_settings())
    url = attachment_service.get_signed_url(storage, attachment_id, identity.id)
    return jsonify({"url": url})
