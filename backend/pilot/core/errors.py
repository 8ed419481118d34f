"""Error types for pilot.

Cancellation is deliberately absent: a cancelled operation ends with a
result variant, never with one of these exceptions.
"""

from __future__ import annotations

from typing import Any, Dict


class PilotError(Exception):
    """Base error with a stable code for logging and HTTP responses."""

    code = "pilot_error"
    user_visible = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(PilotError):
    """Missing or invalid configuration (e.g. no model name)."""

    code = "config_error"
    user_visible = True


class TransientIOError(PilotError):
    """A file could not be stat'ed or read. The item is skipped."""

    code = "transient_io"


class PersistenceCorruptionError(PilotError):
    """The persisted index could not be decoded."""

    code = "persistence_corruption"


class ModelServiceError(PilotError):
    """Base for failures reported by the model service."""

    code = "model_service_error"


class ServiceUnavailableError(ModelServiceError):
    """The model or embedding backend is unreachable."""

    code = "service_unavailable"
    user_visible = True


class ModelError(ModelServiceError):
    """A generation call failed."""

    code = "model_error"


class EmbeddingError(ModelServiceError):
    """A single embedding call failed."""

    code = "embedding_error"


class ModelLoadError(ModelServiceError):
    """Loading or unloading a model failed."""

    code = "model_load_error"
    user_visible = True
