"""Exception hierarchy for the pipeline."""

import json
from typing import Any, Optional

from pydantic import ValidationError


class TrendFactoryError(Exception):
    """Base class for every error raised by the pipeline."""


class StateValidationError(TrendFactoryError):
    """A payload failed schema validation.

    Carries the offending field paths and the raw payload so a corrupt file or
    a malformed agent result can be diagnosed after the fact.
    """

    def __init__(
        self,
        message: str,
        field_errors: Optional[list[tuple[str, str]]] = None,
        payload: Any = None,
    ) -> None:
        self.field_errors = field_errors or []
        self.payload = payload
        details = "\n".join(f"  - {path}: {msg}" for path, msg in self.field_errors)
        super().__init__(f"{message}\n{details}" if details else message)

    @classmethod
    def from_validation_error(
        cls, message: str, error: ValidationError, payload: Any = None
    ) -> "StateValidationError":
        """Build from a pydantic ValidationError."""
        field_errors = [
            (".".join(str(part) for part in item["loc"]) or "<root>", item["msg"])
            for item in error.errors()
        ]
        return cls(message, field_errors=field_errors, payload=payload)

    def payload_json(self) -> str:
        """Render the raw payload for logs."""
        try:
            return json.dumps(self.payload, indent=2, default=str)
        except (TypeError, ValueError):
            return repr(self.payload)


class CorruptStateError(StateValidationError):
    """The persisted state file exists but is unreadable or schema-invalid."""


class InvalidStateError(StateValidationError):
    """An attempt was made to save a state that does not validate."""


class DeltaValidationError(StateValidationError):
    """Applying a delta would produce an invalid state."""


class AgentOutputError(StateValidationError):
    """A model returned output that does not match the expected shape."""


class IllegalDeltaError(TrendFactoryError):
    """A delta was applied in a stage where it is not legal."""

    def __init__(self, kind: str, stage: str, required: str) -> None:
        self.kind = kind
        self.stage = stage
        self.required = required
        super().__init__(
            f"Cannot apply {kind} in stage {stage} (legal only in {required})"
        )


class InvalidTransitionError(TrendFactoryError):
    """A stage transition outside the fixed linear order was requested."""


class SceneNotFoundError(TrendFactoryError):
    """A per-scene delta referenced a scene id that is not in the state."""

    def __init__(self, scene_id: str) -> None:
        self.scene_id = scene_id
        super().__init__(f"Scene not found: {scene_id}")


class MissingDataError(TrendFactoryError):
    """A stage handler needs data that earlier stages did not commit."""

    def __init__(self, field: str, detail: Optional[str] = None) -> None:
        self.field = field
        message = f"State is missing required {field}"
        super().__init__(f"{message}: {detail}" if detail else message)


class QualityGateExhaustedError(TrendFactoryError):
    """Every trend synthesis attempt was rejected by the quality gate."""

    def __init__(self, attempts: int, last_reason: Optional[str] = None) -> None:
        self.attempts = attempts
        self.last_reason = last_reason
        message = f"Trend rejected by quality gate after {attempts} attempts"
        super().__init__(f"{message}: {last_reason}" if last_reason else message)


class ExternalServiceError(TrendFactoryError):
    """A model API or the media tool failed after the adapter's own retries."""
