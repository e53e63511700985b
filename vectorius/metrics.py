from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from flask import Response, request
import time
import logging

logger = logging.getLogger("main")

# API Metrics
api_request_duration_seconds = Histogram(
    "vectorius_api_request_duration_seconds", "API request duration", ["endpoint", "method"]
)

api_requests_total = Counter("vectorius_api_requests_total", "Total API requests", ["endpoint", "method", "status_code"])

# Persona Metrics
persona_redemptions_total = Counter(
    "vectorius_persona_redemptions_total", "Persona token redemption attempts", ["outcome"]
)

persona_tokens_issued_total = Counter("vectorius_persona_tokens_issued_total", "Persona tokens issued", ["role"])

# Extraction Metrics
extraction_requests_total = Counter(
    "vectorius_extraction_requests_total", "Structured extraction requests", ["kind", "outcome"]
)

extraction_duration_seconds = Histogram(
    "vectorius_extraction_duration_seconds", "Time spent waiting for the model", ["kind"]
)

# Tutor Chat Metrics
tutor_requests_total = Counter("vectorius_tutor_requests_total", "Tutor chat questions", ["mode", "outcome"])

# Attachment Metrics
attachment_uploads_total = Counter("vectorius_attachment_uploads_total", "Chat attachment uploads", ["outcome"])

attachment_orphans_total = Counter(
    "vectorius_attachment_orphans_total", "Stored objects left behind after a failed metadata insert"
)

attachments_swept_total = Counter(
    "vectorius_attachments_swept_total", "Attachments soft-deleted by the retention sweep"
)


def init_metrics(app):
    @app.route("/api/metrics")
    def metrics():
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    @app.before_request
    def before_request():
        request.start_time = time.time()

    @app.after_request
    def after_request(response):
        duration = time.time() - getattr(request, "start_time", time.time())
        api_request_duration_seconds.labels(endpoint=request.endpoint or "unknown", method=request.method).observe(
            duration
        )
        api_requests_total.labels(
            endpoint=request.endpoint or "unknown", method=request.method, status_code=response.status_code
        ).inc()
        return response

    logger.info("Prometheus metrics initialized at /api/metrics")
