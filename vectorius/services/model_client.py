"""
Client for the hosted language model (Azure OpenAI chat completions)
"""
import logging
from typing import Dict, List, Optional

import requests

from vectorius.constants import MODEL_MAX_TOKENS, MODEL_TIMEOUT
from vectorius.exceptions import NotConfiguredException, UpstreamException
from vectorius.settings import model_config

logger = logging.getLogger("main")


class ModelClient:
    """Single-shot, non-streaming chat completions"""

    def __init__(self, endpoint: str, api_key: str, deployment: str, api_version: str, timeout: int = MODEL_TIMEOUT):
        self.endpoint = endpoint.rstrip("/")
        self.deployment = deployment
        self.api_version = api_version
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "api-key": api_key,
        })

    @classmethod
    def from_settings(cls, settings, feature="Extraction"):
        config = model_config(settings)
        if config is None:
            raise NotConfiguredException(f"{feature} is not enabled. Missing Azure OpenAI configuration.")
        return cls(config["endpoint"], config["api_key"], config["deployment"], config["api_version"])

    @property
    def url(self):
        return f"{self.endpoint}/openai/deployments/{self.deployment}/chat/completions"

    def complete(self, messages: List[Dict], temperature: float, max_tokens: Optional[int] = MODEL_MAX_TOKENS) -> str:
        """Send the conversation and return the text of the single completion.

        ``max_tokens=None`` leaves the reply length to the deployment default.
        """
        payload = {
            "messages": messages,
            "temperature": temperature,
            "n": 1,
            "stream": False,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        try:
            response = self.session.post(
                self.url,
                params={"api-version": self.api_version},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamException(f"Azure OpenAI request failed: {e}")

        if not response.ok:
            raise UpstreamException(f"Azure OpenAI error: {response.status_code} {response.text}")

        try:
            data = response.json()
        except ValueError:
            return ""
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""
