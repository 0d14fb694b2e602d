"""
Generation provider adapter.

The pool builder only needs `generate(kind, count, theme) -> list[str]`.
`OllamaProvider` implements it against a local Ollama server; the retry and
timeout helpers wrap any provider call.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import ollama

from .errors import ConfigurationError, ProviderError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

KIND_PROMPTS = {
    "alert_names": "short security alert titles as shown in a SIEM alert queue",
    "alert_descriptions": "one-sentence descriptions of security alerts",
    "threat_names": "threat actor, malware family or attack tool names",
    "process_names": "Windows or Linux process executable names such as powershell.exe",
    "file_names": "file names with extensions that could appear in malware investigations",
    "domains": "fictional but realistic-looking domain names",
    "ip_addresses": "IPv4 addresses",
    "registry_keys": "Windows registry key paths starting with HKLM or HKCU",
    "urls": "full https URLs on fictional domains",
    "event_descriptions": "one-sentence descriptions of security log events",
    "usernames": "usernames in first.last form",
    "hostnames": "lowercase hostnames like web-prod-01",
    "organization_names": "organization or team names",
    "application_names": "internal application or service names",
    "technique_ids": "MITRE ATT&CK technique ids such as T1059 or T1059.001",
    "extended_field_names": "lowercase dotted security telemetry field names such as endpoint.process.injection_score",
}


class GenerationProvider:
    """Anything that can produce `count` strings of a given kind."""

    last_token_count: int = 0

    def generate(self, kind: str, count: int, theme: Optional[str] = None) -> List[str]:
        raise NotImplementedError


def build_prompt(kind: str, count: int, theme: Optional[str] = None) -> str:
    what = KIND_PROMPTS.get(kind, kind.replace("_", " "))
    themed = f" Use the theme '{theme}' for names where it fits." if theme else ""
    return (
        f"Generate {count} distinct {what} for synthetic security test data.{themed} "
        f'Respond with JSON only, shaped as {{"values": ["..."]}}.'
    )


def parse_string_list(text: str) -> List[str]:
    """Pull a list of non-empty strings out of a provider's JSON reply."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"provider reply is not JSON: {e}") from e
    if isinstance(payload, dict):
        payload = payload.get("values", next((v for v in payload.values() if isinstance(v, list)), None))
    if not isinstance(payload, list):
        raise ValidationError("provider reply has no list of values")
    values = [str(v).strip() for v in payload if isinstance(v, (str, int, float)) and str(v).strip()]
    if not values:
        raise ValidationError("provider reply contained no usable values")
    return values


class OllamaProvider(GenerationProvider):
    def __init__(
        self,
        model: Optional[str] = None,
        host: Optional[str] = None,
        temperature: float = 0.7,
    ) -> None:
        self.model = model or os.getenv("OLLAMA_MODEL", "llama3.1:8b")
        self.host = host or os.getenv("OLLAMA_URL", None)
        self.temperature = float(temperature)
        if not self.model:
            raise ConfigurationError("Ollama provider enabled without a model name")
        if self.temperature < 0.0 or self.temperature > 2.0:
            raise ConfigurationError(f"temperature must be between 0.0 and 2.0, got {self.temperature}")
        self.client = ollama.Client(host=self.host) if self.host else None
        self.last_token_count = 0

    def _chat(self, prompt: str) -> Any:
        kwargs = dict(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            options={"temperature": self.temperature},
            format="json",
        )
        if self.client is not None:
            return self.client.chat(**kwargs)
        return ollama.chat(**kwargs)

    def generate(self, kind: str, count: int, theme: Optional[str] = None) -> List[str]:
        try:
            response = self._chat(build_prompt(kind, count, theme))
        except ollama.ResponseError as e:
            if getattr(e, "status_code", None) == 404:
                raise ConfigurationError(f"model {self.model!r} is not available: {e}") from e
            raise ProviderError(f"ollama request failed: {e}") from e
        except (ConnectionError, OSError) as e:
            raise ProviderError(f"ollama unreachable: {e}") from e

        self.last_token_count = int(response.get("prompt_eval_count") or 0) + int(response.get("eval_count") or 0)
        return parse_string_list(response["message"]["content"])[:count]


def call_with_timeout(fn: Callable[[], T], timeout_seconds: float) -> T:
    """Race `fn` against a timer. A late result is discarded, the call is not cancelled.

    The call runs on a daemon thread so an abandoned call never holds up
    interpreter exit.
    """
    outcome: Dict[str, Any] = {}

    def run() -> None:
        try:
            outcome["value"] = fn()
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=run, name="provider-call", daemon=True)
    worker.start()
    worker.join(timeout_seconds)
    if worker.is_alive():
        raise ProviderError(f"provider call timed out after {timeout_seconds}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def with_retry(
    operation: Callable[[], T],
    max_retries: int = 2,
    delay_seconds: float = 1.0,
    context: str = "provider call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run `operation`, retrying ProviderError with linear backoff.

    ConfigurationError and ValidationError are raised straight away; other
    exceptions are treated as provider failures.
    """
    attempts = max(0, int(max_retries)) + 1
    last: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except (ConfigurationError, ValidationError):
            raise
        except ProviderError as e:
            last = e
        except Exception as e:
            last = ProviderError(f"{context} failed: {e}")
        logger.debug("%s attempt %d/%d failed: %s", context, attempt, attempts, last)
        if attempt < attempts:
            sleep(delay_seconds * attempt)
    raise ProviderError(f"{context} failed after {attempts} attempts: {last}", {"attempts": attempts})
