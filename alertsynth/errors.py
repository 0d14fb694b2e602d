from __future__ import annotations

from typing import Any, Dict, Optional


class AlertSynthError(Exception):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = dict(details or {})


class ConfigurationError(AlertSynthError):
    """Missing or unusable provider configuration. Never retried."""


class ProviderError(AlertSynthError):
    """Transient provider failure or timeout."""


class ValidationError(AlertSynthError):
    """Provider output that cannot be used as a list of values."""


class AssemblyError(AlertSynthError):
    """Assembly options that cannot produce a record."""
