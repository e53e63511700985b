"""Structured extraction: free text in, strictly shaped JSON array out.

Two instantiations share one contract. ``extract_events`` turns a school e-mail
into calendar events and ``generate_study_plan`` turns an assignment into study
milestones. The model reply must decode to a JSON array whose items match the
record schema; anything else fails the whole request. Nothing is repaired,
retried or cached.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from vectorius.constants import (
    EVENTS_TEMPERATURE,
    EXTRACTION_KIND_EVENTS,
    EXTRACTION_KIND_MILESTONES,
    MILESTONES_TEMPERATURE,
)
from vectorius.exceptions import (
    SchemaMismatchException,
    UnparseableResponseException,
    UpstreamException,
    ValidationException,
)
from vectorius.metrics import extraction_duration_seconds, extraction_requests_total
from vectorius.schemas import ExtractedEvent, ExtractedMilestone, ScheduleHint

logger = logging.getLogger("main")

EVENTS_SYSTEM_PROMPT = " ".join([
    "You extract calendar events from school emails.",
    "Return ONLY valid JSON: an array of objects with fields:",
    "title (string), date (YYYY-MM-DD), start_time (HH:MM 24h or null),",
    "end_time (HH:MM 24h or null), type (appointment|school_event|travel|extracurricular|study_block|other),",
    "all_day (boolean), description (string or null).",
    "If time is not provided, set all_day=true and leave start_time/end_time null.",
    "Do not include any additional keys or text.",
])

MILESTONES_SYSTEM_PROMPT = " ".join([
    "You create study milestones for a student.",
    "Return ONLY valid JSON: an array of 3-6 objects with fields:",
    "title (string), date (YYYY-MM-DD), start_time (HH:MM 24h), duration_minutes (number), type ('study_block').",
    "Use dates between today and the due date. Avoid times that conflict with schedule hints when possible.",
    "Do not include any additional text.",
])

_ADAPTERS = {
    EXTRACTION_KIND_EVENTS: TypeAdapter(List[ExtractedEvent]),
    EXTRACTION_KIND_MILESTONES: TypeAdapter(List[ExtractedMilestone]),
}

DECODE_OK = "ok"
DECODE_PARSE_ERROR = "parse_error"
DECODE_SCHEMA_MISMATCH = "schema_mismatch"


@dataclass
class DecodeResult:
    status: str
    records: List[dict] = field(default_factory=list)
    detail: Optional[str] = None

    @property
    def ok(self):
        return self.status == DECODE_OK


def decode_records(content: str, kind: str) -> DecodeResult:
    """Decode model text into records of the given kind.

    Prose or a non-array top level is a parse error; an array whose items
    have the wrong fields is a schema mismatch.
    """
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError) as e:
        return DecodeResult(DECODE_PARSE_ERROR, detail=str(e))

    if not isinstance(parsed, list):
        return DecodeResult(DECODE_PARSE_ERROR, detail=f"expected a JSON array, got {type(parsed).__name__}")

    try:
        items = _ADAPTERS[kind].validate_python(parsed)
    except ValidationError as e:
        return DecodeResult(DECODE_SCHEMA_MISMATCH, detail=str(e))

    return DecodeResult(DECODE_OK, records=[item.model_dump() for item in items])


def _run(client, kind, messages, temperature):
    start_time = time.time()
    try:
        content = client.complete(messages, temperature=temperature)
    except UpstreamException:
        extraction_requests_total.labels(kind=kind, outcome="upstream_error").inc()
        raise
    finally:
        extraction_duration_seconds.labels(kind=kind).observe(time.time() - start_time)

    result = decode_records(content, kind)
    extraction_requests_total.labels(kind=kind, outcome=result.status).inc()

    if result.status == DECODE_PARSE_ERROR:
        logger.warning(f"Model reply for {kind} is not a JSON array: {result.detail}")
        raise UnparseableResponseException()
    if result.status == DECODE_SCHEMA_MISMATCH:
        logger.warning(f"Model reply for {kind} has the wrong shape: {result.detail}")
        raise SchemaMismatchException()

    logger.info(f"Extracted {len(result.records)} {kind} record(s)")
    return result.records


def read_email_text(body: Any) -> str:
    """Pull the e-mail text out of a request body ({text} or legacy {rawText})"""
    if not isinstance(body, dict):
        raise ValidationException("Invalid email text.")
    raw_text = body.get("text") if isinstance(body.get("text"), str) else body.get("rawText")
    if not raw_text or not isinstance(raw_text, str):
        raise ValidationException("Invalid email text.")
    return raw_text


def extract_events(client, raw_text: str) -> List[dict]:
    messages = [
        {"role": "system", "content": EVENTS_SYSTEM_PROMPT},
        {"role": "user", "content": raw_text},
    ]
    return _run(client, EXTRACTION_KIND_EVENTS, messages, EVENTS_TEMPERATURE)


def read_study_plan_request(body: Any):
    """Validate {title, dueDate, schedule?} and return (title, due_date, hints)"""
    if not isinstance(body, dict):
        raise ValidationException("Missing title or dueDate.")
    title = body.get("title") if isinstance(body.get("title"), str) else None
    due_date = body.get("dueDate") if isinstance(body.get("dueDate"), str) else None
    if not title or not due_date:
        raise ValidationException("Missing title or dueDate.")

    schedule = body.get("schedule") if isinstance(body.get("schedule"), list) else []
    hints = []
    for item in schedule:
        if not isinstance(item, dict):
            continue
        try:
            hints.append(ScheduleHint.model_validate(item))
        except ValidationError:
            continue
    return title, due_date, hints


def format_schedule_hints(hints: List[ScheduleHint]) -> str:
    if not hints:
        return "No existing events provided."
    lines = []
    for hint in hints:
        parts = [hint.title, hint.date, hint.start_time, hint.end_time]
        lines.append(" | ".join(part for part in parts if part))
    return "\n".join(lines)


def generate_study_plan(client, title: str, due_date: str, hints: List[ScheduleHint], today: Optional[date] = None) -> List[dict]:
    today = today or date.today()
    user_prompt = "\n".join([
        f"Target: {title}",
        f"Due date: {due_date}",
        f"Today: {today.isoformat()}",
        "Schedule hints:",
        format_schedule_hints(hints),
    ])
    messages = [
        {"role": "system", "content": MILESTONES_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]
    return _run(client, EXTRACTION_KIND_MILESTONES, messages, MILESTONES_TEMPERATURE)
