"""File-backed state store.

The store is the only component that touches ``project.state.json``. Every
write is validated first and lands through a temp-file rename, so a reader
never sees a partially written or schema-invalid record.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from ..errors import CorruptStateError, InvalidStateError
from ..models import ProjectState
from ..models.project import utcnow

logger = logging.getLogger(__name__)

STATE_FILE = "project.state.json"


class StateStore:
    """Load, save and reset one project's state file.

    No file locking: at most one pipeline may run against a given directory.
    """

    def __init__(self, base_dir: Union[str, Path] = ".") -> None:
        self._base_dir = Path(base_dir)

    @property
    def path(self) -> Path:
        """Return the state file path."""
        return self._base_dir / STATE_FILE

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> ProjectState:
        """Read the persisted state, creating a fresh one if none exists.

        Raises:
            CorruptStateError: If the file cannot be read, is not JSON or fails
                validation.
        """
        if not self.path.exists():
            logger.info(f"No state at {self.path}, creating a new project")
            return self.save(ProjectState.initial())

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptStateError(f"State file {self.path} is unreadable: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptStateError(
                f"State file {self.path} is not valid JSON: {e}", payload=raw
            ) from e

        try:
            return ProjectState.model_validate(data)
        except ValidationError as e:
            raise CorruptStateError.from_validation_error(
                f"Invalid state file {self.path}", e, payload=data
            ) from e

    def save(self, state: ProjectState) -> ProjectState:
        """Validate, stamp ``updated_at`` and atomically persist ``state``.

        Returns:
            The state exactly as written.

        Raises:
            InvalidStateError: If ``state`` does not validate.
        """
        data = state.model_dump(by_alias=True)
        try:
            validated = ProjectState.model_validate(data)
        except ValidationError as e:
            raise InvalidStateError.from_validation_error(
                "Attempted to save invalid state", e, payload=data
            ) from e

        stamped = validated.model_copy(update={"updated_at": utcnow()})
        self._write(json.dumps(stamped.to_json_dict(), indent=2))
        logger.debug(f"Saved state (stage={stamped.stage.value}) to {self.path}")
        return stamped

    def reset(self, seed: Optional[int] = None) -> ProjectState:
        """Discard all progress and persist a brand-new initial state."""
        state = ProjectState.initial(seed=seed)
        logger.info(f"Reset state at {self.path} (seed={state.seed})")
        return self.save(state)

    def _write(self, content: str) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self._base_dir, prefix=f".{STATE_FILE}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
