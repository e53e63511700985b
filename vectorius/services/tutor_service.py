"""Tutor chat: one question, optional prior turns, one model reply.

The conversation sent to the model is the shared system prompt, the prompt of
the selected mode, the sanitised history and finally the new question.
"""

import logging
import os
from typing import Any, Dict, List

from vectorius.constants import CHAT_HISTORY_ROLES, CHAT_MODES, CHAT_SYSTEM_PROMPT, DEFAULT_CHAT_MODE, PROMPTS_DIR
from vectorius.exceptions import UpstreamException, ValidationException
from vectorius.metrics import tutor_requests_total

logger = logging.getLogger("main")


def read_prompt(name: str) -> str:
    with open(os.path.join(PROMPTS_DIR, name), "r", encoding="utf-8") as prompt_file:
        return prompt_file.read()


def select_mode(mode: Any) -> str:
    """Unknown or missing modes fall back to tutor"""
    return mode if mode in CHAT_MODES else DEFAULT_CHAT_MODE


def sanitize_history(history: Any) -> List[Dict[str, str]]:
    if not isinstance(history, list):
        return []
    messages = []
    for message in history:
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            continue
        role = message.get("role") if message.get("role") in CHAT_HISTORY_ROLES else "user"
        messages.append({"role": role, "content": message["content"]})
    return messages


def read_chat_request(body: Any):
    """Validate {question, mode?, history?} and return (question, mode, history)"""
    if not isinstance(body, dict):
        raise ValidationException("Invalid 'question'")
    question = body.get("question")
    if not question or not isinstance(question, str):
        raise ValidationException("Invalid 'question'")
    return question, select_mode(body.get("mode")), sanitize_history(body.get("history"))


def build_messages(question: str, mode: str, history: List[Dict[str, str]]) -> List[Dict[str, str]]:
    messages = [
        {"role": "system", "content": read_prompt(CHAT_SYSTEM_PROMPT)},
        {"role": "system", "content": read_prompt(CHAT_MODES[mode]["prompt"])},
    ]
    messages.extend(history)
    messages.append({"role": "user", "content": question})
    return messages


def ask(client, question: str, mode: str, history: List[Dict[str, str]]) -> Dict[str, str]:
    messages = build_messages(question, mode, history)
    try:
        reply = client.complete(messages, temperature=CHAT_MODES[mode]["temperature"], max_tokens=None)
    except UpstreamException:
        tutor_requests_total.labels(mode=mode, outcome="upstream_error").inc()
        raise
    tutor_requests_total.labels(mode=mode, outcome="ok").inc()
    logger.info(f"Tutor reply in {mode} mode after {len(history)} prior message(s)")
    return {"reply": reply, "role": "assistant", "modeUsed": mode}
